"""Engine settings shared by the library, the inventory file and the CLI."""
import os
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any, Optional

from ..config_engine.executor import DEFAULT_SCRIPTS_DIR, DEFAULT_TOOL
from ..config_engine.schema import ActivationPolicy
from ..host.runner import DEFAULT_TIMEOUT

ENV_PREFIX = "IFCRAFT_"

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


@dataclass
class EngineSettings:
    """Where files live, which tool activates them and how patiently."""
    scripts_dir: Path = DEFAULT_SCRIPTS_DIR
    tool: str = DEFAULT_TOOL
    command_timeout: float = DEFAULT_TIMEOUT
    # 1 disables retrying
    command_retries: int = 1
    reload: bool = True
    cleanup: bool = True
    audit_dir: Optional[Path] = None
    sysfs_root: Optional[Path] = None
    package_installer: str = "yum"
    workers: int = 1

    def policy(self, dry_run: bool = False) -> ActivationPolicy:
        """Default activation policy for these settings."""
        return ActivationPolicy(
            reload=self.reload,
            cleanup=self.cleanup,
            dry_run=dry_run,
        )

    def merged(self, overrides: Optional[dict[str, Any]]) -> "EngineSettings":
        """Return a copy with keys from ``overrides`` applied.

        Raises:
            ValueError: If a key is not a known setting
        """
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")
        return replace(self, **_coerce(overrides))

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("scripts_dir", "audit_dir", "sysfs_root"):
            if data[key] is not None:
                data[key] = str(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "EngineSettings":
        return cls().merged(data)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "EngineSettings":
        """Build settings from IFCRAFT_* environment variables.

        Environment Variables:
            IFCRAFT_SCRIPTS_DIR: Directory holding ifcfg-* files
            IFCRAFT_TOOL: Connection-management binary (default: nmcli)
            IFCRAFT_COMMAND_TIMEOUT: Seconds per external command (default: 30)
            IFCRAFT_COMMAND_RETRIES: Attempts for transient failures (default: 1)
            IFCRAFT_RELOAD: Run reload and activation after a write (default: yes)
            IFCRAFT_CLEANUP: Remove stale connections (default: yes)
            IFCRAFT_AUDIT_DIR: Directory for audit.log (default: disabled)
            IFCRAFT_WORKERS: Interfaces reconciled in parallel (default: 1)
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in environ and environ[key] != "":
                overrides[f.name] = environ[key]
        return cls().merged(overrides)


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Convert string values (env, YAML) to each field's type."""
    result = {}
    for key, value in values.items():
        if value is None:
            result[key] = None
        elif key in ("scripts_dir", "audit_dir", "sysfs_root"):
            result[key] = Path(os.path.expanduser(str(value)))
        elif key in ("reload", "cleanup"):
            result[key] = value if isinstance(value, bool) else _env_bool(str(value))
        elif key == "command_timeout":
            result[key] = float(value)
        elif key in ("command_retries", "workers"):
            result[key] = max(1, int(value))
        else:
            result[key] = str(value)
    return result
