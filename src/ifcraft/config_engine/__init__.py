"""Config Engine - Declarative interface configuration management.

The Config Engine converges ifcfg-* files and their connections:
- Send desired state, not individual commands
- Validation before any file is touched
- Deterministic rendering and byte-level diffing
- Ordered write, reload, activate and cleanup steps

Usage:
    from ifcraft.config_engine import ActivationPolicy, ConfigEngine, kinds

    engine = ConfigEngine()
    result = kinds.static(
        engine,
        name="eth0",
        ipaddress=["10.0.0.5", "10.0.0.6"],
        netmask=["255.255.255.0", "255.255.255.0"],
        policy=ActivationPolicy(dry_run=True),
    )
"""

from .engine import ConfigEngine
from .schema import (
    Ensure,
    BootProto,
    InterfaceKind,
    ReconcileState,
    Single,
    Multiple,
    IPv4Address,
    IPv6Address,
    InterfaceFlags,
    InterfaceSpec,
    StaticRoute,
    RouteSpec,
    ValidationResult,
    ContentDiff,
    ActivationPolicy,
    CommandOutcome,
    ApplyResult,
)
from .errors import (
    IfcraftError,
    ValidationError,
    WriteError,
    ActivationError,
    PackageError,
    CleanupError,
)
from .parser import ConfigParser
from .validator import ConfigValidator
from .renderer import IfcfgRenderer
from .diff import DiffEngine, summarize_diff
from .executor import Reconciler
from .kinds import InterfaceRequest, PRESETS, prepare
from . import kinds

__all__ = [
    # Main engine
    "ConfigEngine",
    "kinds",
    "InterfaceRequest",
    "PRESETS",
    "prepare",
    # Schema classes
    "Ensure",
    "BootProto",
    "InterfaceKind",
    "ReconcileState",
    "Single",
    "Multiple",
    "IPv4Address",
    "IPv6Address",
    "InterfaceFlags",
    "InterfaceSpec",
    "StaticRoute",
    "RouteSpec",
    "ValidationResult",
    "ContentDiff",
    "ActivationPolicy",
    "CommandOutcome",
    "ApplyResult",
    # Errors
    "IfcraftError",
    "ValidationError",
    "WriteError",
    "ActivationError",
    "PackageError",
    "CleanupError",
    # Components
    "ConfigParser",
    "ConfigValidator",
    "IfcfgRenderer",
    "DiffEngine",
    "summarize_diff",
    "Reconciler",
]
