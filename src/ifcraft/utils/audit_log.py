"""Audit logging for interface reconciliation.

Provides change tracking with:
- Timestamped entries for every apply pass
- Final state, executed commands and errors
- Structured JSON-lines log format
- Separate audit log file
"""
import json
import logging
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from ..config_engine.schema import ApplyResult

# Dedicated audit logger
audit_logger = logging.getLogger("ifcraft.audit")

AUDIT_FILE_NAME = "audit.log"


def default_audit_dir() -> Path:
    return Path(os.path.expanduser("~/.ifcraft"))


def setup_audit_logging(log_dir: Optional[Path] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.ifcraft/

    Returns:
        Path of the audit log file
    """
    log_dir = Path(log_dir) if log_dir else default_audit_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    audit_file = log_dir / AUDIT_FILE_NAME

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False

    return audit_file


@dataclass
class ChangeRecord:
    """Record of one reconciliation pass."""
    timestamp: str
    interface: str
    operation: str
    kind: str
    user: str
    dry_run: bool
    changed: bool
    success: bool
    state: str
    path: str = ""
    commands: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        return cls(**json.loads(json_str))


def log_apply(
    result: ApplyResult,
    operation: str,
    kind: str = "",
    user: Optional[str] = None,
) -> ChangeRecord:
    """Log the outcome of an apply pass.

    Args:
        result: Result returned by the reconciler
        operation: Dispatcher that produced it (e.g. "static", "bond_slave")
        kind: Interface kind
        user: Operator identifier

    Returns:
        The ChangeRecord that was logged
    """
    record = ChangeRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        interface=result.name,
        operation=operation,
        kind=kind,
        user=user or os.environ.get("USER", "system"),
        dry_run=result.dry_run,
        changed=result.changed,
        success=result.success,
        state=result.state.value,
        path=result.path,
        commands=list(result.commands_executed),
        warnings=list(result.warnings),
        error=result.error,
    )

    audit_logger.info(record.to_json())

    return record


def get_recent_changes(
    log_file: Optional[Path] = None,
    interface: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.ifcraft/audit.log
        interface: Filter by interface name
        operation: Filter by operation
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    log_file = Path(log_file) if log_file else default_audit_dir() / AUDIT_FILE_NAME

    if not log_file.exists():
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if interface and record.interface != interface:
                continue
            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
