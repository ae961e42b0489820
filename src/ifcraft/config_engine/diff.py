"""Diff engine comparing rendered content with the file on disk."""
import difflib
from pathlib import Path
from typing import Optional

from .schema import ContentDiff


def read_existing(path: Path) -> Optional[bytes]:
    """Return the current file bytes, or None if the file is absent."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


class DiffEngine:
    """Calculate differences between desired content and current file."""

    def calculate(self, path: Path, content: str) -> ContentDiff:
        """
        Calculate the diff for one managed file.

        Args:
            path: Target file path
            content: Desired file content

        Returns:
            ContentDiff; changed is True when the file is absent or differs
        """
        existing = read_existing(path)
        desired = content.encode("utf-8")

        if existing == desired:
            return ContentDiff(path=str(path), exists=True, changed=False)

        current_text = (
            existing.decode("utf-8", errors="replace") if existing is not None else ""
        )
        diff_lines = list(difflib.unified_diff(
            current_text.splitlines(),
            content.splitlines(),
            fromfile=str(path) if existing is not None else "/dev/null",
            tofile=str(path),
            lineterm="",
        ))

        return ContentDiff(
            path=str(path),
            exists=existing is not None,
            changed=True,
            diff_lines=diff_lines,
        )


def summarize_diff(diff: ContentDiff) -> str:
    """
    Create a human-readable summary of a diff.

    Useful for dry-run output and logging.
    """
    if diff.no_change:
        return f"{diff.path}: no changes needed - file matches desired state"

    action = "modify" if diff.exists else "create"
    lines = [f"{diff.path}: {action}"]
    lines.extend(f"  {line}" for line in diff.diff_lines)
    return "\n".join(lines)
