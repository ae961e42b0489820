"""Reconciler converging one interface file and its live connection.

Runs the ordered chain write -> reload -> activate -> cleanup as an
explicit state machine. Every failure is recorded on the ApplyResult.
"""
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from ..host.base import CommandRunner, PackageEnsurer
from ..utils.logging_config import timed_section
from .diff import DiffEngine
from .errors import ActivationError, CleanupError, IfcraftError, WriteError
from .schema import (
    ActivationPolicy,
    ApplyResult,
    CommandOutcome,
    Ensure,
    ReconcileState,
)

logger = logging.getLogger(__name__)

DEFAULT_SCRIPTS_DIR = Path("/etc/sysconfig/network-scripts")
DEFAULT_TOOL = "nmcli"
FILE_MODE = 0o644


def split_terse(line: str) -> list[str]:
    """Split one line of ``nmcli -t`` output on unescaped colons."""
    fields = []
    current = []
    chars = iter(line)
    for char in chars:
        if char == "\\":
            current.append(next(chars, ""))
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


class Reconciler:
    """Converge a managed file and its connection to the desired content."""

    def __init__(
        self,
        runner: CommandRunner,
        scripts_dir: Optional[Path] = None,
        tool: str = DEFAULT_TOOL,
        timeout: Optional[float] = None,
        packages: Optional[PackageEnsurer] = None,
    ):
        """
        Initialize reconciler.

        Args:
            runner: Command runner used for every external tool call
            scripts_dir: Directory holding ifcfg-* files
            tool: Connection-management binary
            timeout: Per-command timeout passed to the runner
            packages: Ensurer for packages required before activation
        """
        self.runner = runner
        self.scripts_dir = Path(scripts_dir) if scripts_dir else DEFAULT_SCRIPTS_DIR
        self.tool = tool
        self.timeout = timeout
        self.packages = packages
        self.diff_engine = DiffEngine()

    def target_path(self, name: str, prefix: str = "ifcfg") -> Path:
        return self.scripts_dir / f"{prefix}-{name}"

    def apply(
        self,
        name: str,
        content: str,
        policy: ActivationPolicy,
        ensure: Ensure = Ensure.UP,
        prefix: str = "ifcfg",
        flush_device: Optional[str] = None,
        connection: Optional[str] = None,
        requires: Iterable[str] = (),
    ) -> ApplyResult:
        """
        Reconcile one managed file.

        Args:
            name: Interface name (file suffix)
            content: Rendered file content
            policy: Which activation steps to run after a write
            ensure: Bring the connection up or down
            prefix: File prefix (ifcfg or route)
            flush_device: Device whose addresses are flushed before bring-up
            connection: Connection id to activate, defaults to name. Route
                files reload the ifcfg file of this connection.
            requires: Packages that must be present before activation

        Returns:
            ApplyResult with final state, transitions and commands
        """
        path = self.target_path(name, prefix)
        connection = connection or name
        load_path = path if prefix == "ifcfg" else self.target_path(connection)
        requires = list(requires)

        result = ApplyResult(name=name, path=str(path), dry_run=policy.dry_run)
        result.transition(ReconcileState.START)

        diff = self.diff_engine.calculate(path, content)
        if diff.no_change:
            logger.info(f"{path} already up to date")
            result.transition(ReconcileState.APPLIED)
            return result

        result.changed = True
        if policy.dry_run:
            return self._dry_run(
                result, path, load_path, connection, policy, ensure,
                flush_device, requires,
            )

        try:
            with timed_section("write", name):
                self._write_atomic(path, content)
        except OSError as e:
            return self._fail(result, WriteError(f"Failed to write {path}: {e}"))
        logger.info(f"Wrote {path}")
        result.transition(ReconcileState.WRITTEN)

        if not policy.reload:
            result.transition(ReconcileState.APPLIED)
            return result

        try:
            with timed_section("reload", name):
                self._run_checked(result, self.reload_command(load_path), "reload")
            result.transition(ReconcileState.RELOADED)

            with timed_section("activate", name, ensure=ensure.value):
                self._ensure_packages(result, requires)
                if flush_device and ensure == Ensure.UP:
                    self._run_checked(
                        result, self.flush_command(flush_device), "flush"
                    )
                self._run_checked(
                    result, self.activate_command(connection, ensure), ensure.value
                )
            result.transition(ReconcileState.ACTIVATED)
        except ActivationError as e:
            return self._fail(result, e)

        # Route files back no connection of their own
        if policy.cleanup and prefix == "ifcfg":
            try:
                with timed_section("cleanup", name):
                    self._cleanup(result, name, path)
            except CleanupError as e:
                logger.warning(e.message)
                result.warnings.append(e.message)

        result.transition(ReconcileState.APPLIED)
        return result

    def reload_command(self, path: Path) -> list[str]:
        return [self.tool, "connection", "load", str(path)]

    def activate_command(self, connection: str, ensure: Ensure) -> list[str]:
        return [self.tool, "connection", ensure.value, "id", connection]

    def flush_command(self, device: str) -> list[str]:
        return ["ip", "addr", "flush", "dev", device]

    def list_command(self) -> list[str]:
        return [self.tool, "-t", "-f", "UUID,NAME,FILENAME", "connection", "show"]

    def _dry_run(
        self,
        result: ApplyResult,
        path: Path,
        load_path: Path,
        connection: str,
        policy: ActivationPolicy,
        ensure: Ensure,
        flush_device: Optional[str],
        requires: list[str],
    ) -> ApplyResult:
        """Report what would run without touching the host."""
        planned = [f"write {path}"]
        if policy.reload:
            planned.append(" ".join(self.reload_command(load_path)))
            planned.extend(f"ensure package {package}" for package in requires)
            if flush_device and ensure == Ensure.UP:
                planned.append(" ".join(self.flush_command(flush_device)))
            planned.append(" ".join(self.activate_command(connection, ensure)))
            if policy.cleanup and path == load_path:
                planned.append(" ".join(self.list_command()))
        result.commands_executed = [f"[DRY-RUN] {cmd}" for cmd in planned]
        result.transition(ReconcileState.APPLIED)
        return result

    def _ensure_packages(self, result: ApplyResult, requires: list[str]) -> None:
        """Install packages the activation depends on.

        Raises:
            PackageError: If a package cannot be installed
        """
        if not requires:
            return
        if self.packages is None:
            logger.debug(f"No package ensurer; assuming {', '.join(requires)} present")
            return
        for package in requires:
            self.packages.ensure(package)
            result.commands_executed.append(f"ensure package {package}")

    def _run(self, result: ApplyResult, command: list[str]) -> CommandOutcome:
        outcome = self.runner.run(command, timeout=self.timeout)
        result.commands_executed.append(" ".join(command))
        result.returncode = outcome.returncode
        return outcome

    def _run_checked(
        self,
        result: ApplyResult,
        command: list[str],
        step: str
    ) -> CommandOutcome:
        outcome = self._run(result, command)
        if not outcome.success:
            raise ActivationError(
                f"{step} of {result.name} failed: {outcome.describe()}",
                returncode=outcome.returncode,
                output=outcome.output,
            )
        return outcome

    def _cleanup(self, result: ApplyResult, name: str, path: Path) -> None:
        """Delete connections for this interface not backed by our file.

        Only entries named ``<name>`` or ``System <name>`` are considered,
        so connections of other interfaces are never touched.
        """
        listing = self._run(result, self.list_command())
        if not listing.success:
            raise CleanupError(
                f"cleanup of {name} could not list connections: {listing.describe()}"
            )

        names = {name, f"System {name}"}
        stale = []
        for line in listing.output.splitlines():
            if not line.strip():
                continue
            fields = split_terse(line)
            if len(fields) < 3:
                continue
            uuid, conn_name, filename = fields[0], fields[1], fields[2]
            if conn_name in names and filename != str(path):
                stale.append(uuid)

        failures = []
        for uuid in stale:
            logger.info(f"Deleting stale connection {uuid} for {name}")
            outcome = self._run(result, [self.tool, "connection", "delete", "uuid", uuid])
            if not outcome.success:
                failures.append(outcome.describe())

        if failures:
            raise CleanupError(
                f"cleanup of {name} failed: {'; '.join(failures)}"
            )

    def _write_atomic(self, path: Path, content: str) -> None:
        """Write via a temp file in the same directory and rename it."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise

    def _fail(self, result: ApplyResult, error: IfcraftError) -> ApplyResult:
        logger.error(error.message)
        result.error = error.message
        result.exception = error
        if isinstance(error, ActivationError) and error.returncode is not None:
            result.returncode = error.returncode
        result.transition(ReconcileState.FAILED)
        return result
