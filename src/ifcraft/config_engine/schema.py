"""Schema definitions for the Config Engine.

Defines the desired interface state and all related dataclasses.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class Ensure(str, Enum):
    """Target live state for an interface."""
    UP = "up"
    DOWN = "down"


class BootProto(str, Enum):
    """Boot protocol written to BOOTPROTO."""
    NONE = "none"
    DHCP = "dhcp"
    BOOTP = "bootp"


class InterfaceKind(str, Enum):
    """Family of the managed interface file."""
    ETHERNET = "ethernet"
    BRIDGE = "bridge"
    BOND = "bond"
    ALIAS = "alias"
    ALIAS_RANGE = "alias_range"
    VLAN = "vlan"


class ReconcileState(str, Enum):
    """States of the per-interface reconciliation machine."""
    START = "start"
    WRITTEN = "written"
    RELOADED = "reloaded"
    ACTIVATED = "activated"
    APPLIED = "applied"
    FAILED = "failed"


# --- Scalar-or-sequence inputs ---

@dataclass(frozen=True)
class Single:
    """A parameter given as one scalar value."""
    value: Any

    def items(self) -> tuple:
        return (self.value,)


@dataclass(frozen=True)
class Multiple:
    """A parameter given as an ordered sequence."""
    values: tuple

    def items(self) -> tuple:
        return tuple(self.values)


AddressInput = Union[Single, Multiple]


def tag_value(value: Any) -> Optional[AddressInput]:
    """Wrap a raw scalar-or-list parameter into its tagged form."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return Multiple(tuple(value))
    return Single(value)


# --- Desired state ---

@dataclass(frozen=True)
class IPv4Address:
    """One IPv4 address with its netmask."""
    address: str
    netmask: str


@dataclass(frozen=True)
class IPv6Address:
    """One IPv6 address, optionally with a /prefix."""
    address: str


@dataclass(frozen=True)
class InterfaceFlags:
    """Boolean switches of an interface file."""
    userctl: bool = False
    manage_hwaddr: bool = True
    ipv6init: bool = False
    ipv6autoconf: bool = False
    peerdns: bool = False
    ipv6peerdns: bool = False
    flush: bool = False
    defroute: Optional[bool] = None


@dataclass(frozen=True)
class InterfaceSpec:
    """Canonical desired state for a single interface."""
    name: str
    device: str
    kind: InterfaceKind = InterfaceKind.ETHERNET
    ensure: Ensure = Ensure.UP
    bootproto: BootProto = BootProto.NONE
    ipv4: tuple[IPv4Address, ...] = ()
    ipv6: tuple[IPv6Address, ...] = ()
    gateway: Optional[str] = None
    ipv6_gateway: Optional[str] = None
    macaddress: Optional[str] = None
    flags: InterfaceFlags = field(default_factory=InterfaceFlags)
    mtu: Optional[int] = None
    dns: tuple[str, ...] = ()
    domain: Optional[str] = None
    zone: Optional[str] = None
    scope: Optional[str] = None
    metric: Optional[str] = None
    linkdelay: Optional[str] = None
    ethtool_opts: Optional[str] = None
    # Kind-specific keys already in file-key form (BRIDGE, MASTER, ...)
    extra: tuple[tuple[str, str], ...] = ()

    @property
    def primary_ipv4(self) -> Optional[IPv4Address]:
        return self.ipv4[0] if self.ipv4 else None

    @property
    def secondary_ipv4(self) -> tuple[IPv4Address, ...]:
        return self.ipv4[1:]

    @property
    def primary_ipv6(self) -> Optional[IPv6Address]:
        return self.ipv6[0] if self.ipv6 else None

    @property
    def secondary_ipv6(self) -> tuple[IPv6Address, ...]:
        return self.ipv6[1:]

    @property
    def onboot(self) -> bool:
        return self.ensure == Ensure.UP


@dataclass(frozen=True)
class StaticRoute:
    """One entry of a route-<interface> file."""
    address: str
    netmask: str
    gateway: str


@dataclass(frozen=True)
class RouteSpec:
    """Desired static routes bound to one interface."""
    name: str
    routes: tuple[StaticRoute, ...] = ()


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of parameter validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Diff Results ---

@dataclass
class ContentDiff:
    """Difference between rendered content and the file on disk."""
    path: str
    exists: bool
    changed: bool
    diff_lines: list[str] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return not self.changed


# --- Execution ---

@dataclass
class ActivationPolicy:
    """Which activation steps follow a file write."""
    reload: bool = True
    cleanup: bool = True
    dry_run: bool = False


@dataclass
class CommandOutcome:
    """Exit status and output of one external command."""
    command: list[str]
    returncode: Optional[int]
    output: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def describe(self) -> str:
        cmd = " ".join(self.command)
        if self.timed_out:
            return f"'{cmd}' timed out"
        return f"'{cmd}' exited with status {self.returncode}"


@dataclass
class ApplyResult:
    """Result of reconciling one interface."""
    name: str
    path: str = ""
    state: ReconcileState = ReconcileState.START
    changed: bool = False
    dry_run: bool = False
    transitions: list[ReconcileState] = field(default_factory=list)
    commands_executed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None
    exception: Optional[Exception] = None
    returncode: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.state == ReconcileState.APPLIED

    def transition(self, state: ReconcileState) -> None:
        self.state = state
        self.transitions.append(state)

    def raise_for_error(self) -> None:
        """Re-raise the recorded failure, if any."""
        if self.exception is not None:
            raise self.exception

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "path": self.path,
            "state": self.state.value,
            "changed": self.changed,
            "dry_run": self.dry_run,
            "success": self.success,
            "transitions": [s.value for s in self.transitions],
            "commands_executed": self.commands_executed,
            "warnings": self.warnings,
            "error": self.error,
            "returncode": self.returncode,
        }

