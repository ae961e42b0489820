"""Interface-kind presets.

Each preset picks the defaults of one interface family, adds the
family's file keys and hands a prepared request to the ConfigEngine.
There is one caller-facing function per kind:

    from ifcraft.config_engine import ConfigEngine, kinds

    engine = ConfigEngine()
    kinds.static(engine, name="eth0", ipaddress="10.0.0.5",
                 netmask="255.255.255.0", ensure="up")
    kinds.bond_slave(engine, name="eth1", master="bond0")
"""
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from .errors import ValidationError
from .renderer import yes_no
from .schema import ActivationPolicy, ApplyResult, InterfaceKind
from .validator import as_list, valid_ipv4, valid_netmask
from .parser import base_device, to_bool

if TYPE_CHECKING:
    from .engine import ConfigEngine

logger = logging.getLogger(__name__)

BRIDGE_PACKAGE = "bridge-utils"
DEFAULT_BONDING_OPTS = "miimon=100"
DEFAULT_BRIDGE_DELAY = "30"
DYNAMIC_BOOTPROTOS = ("dhcp", "bootp")

# Preset-only parameters; the parser never sees them as file fields
PRESET_FIELDS = {
    "kind",
    "stp",
    "delay",
    "bridging_opts",
    "bonding_opts",
    "master",
    "bridge",
    "dhcp_hostname",
    "persistent_dhclient",
    "noaliasrouting",
    "ipaddress_start",
    "ipaddress_end",
    "clonenum_start",
    "routes",
}

ADDRESS_FIELDS = ("ipaddress", "netmask", "gateway", "ipv6address", "ipv6gateway")


@dataclass
class InterfaceRequest:
    """Prepared input for one ConfigEngine pass."""
    operation: str
    name: str
    params: dict[str, Any] = field(default_factory=dict)
    kind: InterfaceKind = InterfaceKind.ETHERNET
    extra: list[tuple[str, str]] = field(default_factory=list)
    requires: tuple[str, ...] = ()
    # Connection activated for this file when it is not <name>
    connection: Optional[str] = None
    # Only set for the route operation
    routes: Optional[list[dict[str, Any]]] = None

    @property
    def is_route(self) -> bool:
        return self.routes is not None


def _base_params(params: dict[str, Any]) -> dict[str, Any]:
    """Copy params without the preset-only keys."""
    return {k: v for k, v in params.items() if k not in PRESET_FIELDS}


def _name(params: dict[str, Any]) -> str:
    return params.get("name") or params.get("device") or ""


def _require(params: dict[str, Any], operation: str, *keys: str) -> None:
    missing = [key for key in keys if not as_list(params.get(key))]
    if missing:
        raise ValidationError(
            _name(params),
            [f"{operation} requires {', '.join(missing)}"],
        )


def _strip_addresses(params: dict[str, Any], operation: str) -> dict[str, Any]:
    """Drop static addressing, warning about anything dropped."""
    dropped = [key for key in ADDRESS_FIELDS if params.get(key) is not None]
    if dropped:
        logger.warning(
            f"{operation} {_name(params)}: ignoring {', '.join(dropped)}"
        )
    return {k: v for k, v in params.items() if k not in ADDRESS_FIELDS}


def _dynamic_bootproto(params: dict[str, Any]) -> str:
    bootproto = params.get("bootproto")
    return bootproto if bootproto in DYNAMIC_BOOTPROTOS else "dhcp"


def _dhcp_extra(params: dict[str, Any]) -> list[tuple[str, str]]:
    extra = []
    if params.get("dhcp_hostname"):
        extra.append(("DHCP_HOSTNAME", str(params["dhcp_hostname"])))
    if params.get("persistent_dhclient") is not None:
        extra.append((
            "PERSISTENT_DHCLIENT", yes_no(to_bool(params["persistent_dhclient"]))
        ))
    return extra


def _bridge_extra(params: dict[str, Any]) -> list[tuple[str, str]]:
    extra = [
        ("TYPE", "Bridge"),
        ("STP", yes_no(to_bool(params.get("stp", False)))),
        ("DELAY", str(params.get("delay", DEFAULT_BRIDGE_DELAY))),
    ]
    if params.get("bridging_opts"):
        extra.append(("BRIDGING_OPTS", str(params["bridging_opts"])))
    return extra


def _bond_extra(params: dict[str, Any]) -> list[tuple[str, str]]:
    return [
        ("TYPE", "Bond"),
        ("BONDING_MASTER", "yes"),
        ("BONDING_OPTS", str(params.get("bonding_opts") or DEFAULT_BONDING_OPTS)),
    ]


# === Presets ===

def prepare_static(params: dict[str, Any]) -> InterfaceRequest:
    _require(params, "static", "ipaddress", "netmask")
    base = _base_params(params)
    base["bootproto"] = "none"
    return InterfaceRequest("static", _name(params), base)


def prepare_dynamic(params: dict[str, Any]) -> InterfaceRequest:
    base = _strip_addresses(_base_params(params), "dynamic")
    base["bootproto"] = _dynamic_bootproto(params)
    return InterfaceRequest(
        "dynamic", _name(params), base, extra=_dhcp_extra(params)
    )


def prepare_bridge_static(params: dict[str, Any]) -> InterfaceRequest:
    _require(params, "bridge_static", "ipaddress", "netmask")
    base = _base_params(params)
    base["bootproto"] = "none"
    base.setdefault("manage_hwaddr", False)
    return InterfaceRequest(
        "bridge_static",
        _name(params),
        base,
        kind=InterfaceKind.BRIDGE,
        extra=_bridge_extra(params),
        requires=(BRIDGE_PACKAGE,),
    )


def prepare_bridge_dynamic(params: dict[str, Any]) -> InterfaceRequest:
    base = _strip_addresses(_base_params(params), "bridge_dynamic")
    base["bootproto"] = _dynamic_bootproto(params)
    base.setdefault("manage_hwaddr", False)
    return InterfaceRequest(
        "bridge_dynamic",
        _name(params),
        base,
        kind=InterfaceKind.BRIDGE,
        extra=_bridge_extra(params) + _dhcp_extra(params),
        requires=(BRIDGE_PACKAGE,),
    )


def prepare_bridge_member(params: dict[str, Any]) -> InterfaceRequest:
    _require(params, "bridge_member", "bridge")
    base = _strip_addresses(_base_params(params), "bridge_member")
    base["bootproto"] = "none"
    # Kept so validation knows the port is enslaved
    base["bridge"] = params["bridge"]
    return InterfaceRequest(
        "bridge_member",
        _name(params),
        base,
        extra=[("BRIDGE", str(params["bridge"]))],
    )


def prepare_bond_static(params: dict[str, Any]) -> InterfaceRequest:
    _require(params, "bond_static", "ipaddress", "netmask")
    base = _base_params(params)
    base["bootproto"] = "none"
    base.setdefault("manage_hwaddr", False)
    return InterfaceRequest(
        "bond_static",
        _name(params),
        base,
        kind=InterfaceKind.BOND,
        extra=_bond_extra(params),
    )


def prepare_bond_dynamic(params: dict[str, Any]) -> InterfaceRequest:
    base = _strip_addresses(_base_params(params), "bond_dynamic")
    base["bootproto"] = _dynamic_bootproto(params)
    base.setdefault("manage_hwaddr", False)
    return InterfaceRequest(
        "bond_dynamic",
        _name(params),
        base,
        kind=InterfaceKind.BOND,
        extra=_bond_extra(params) + _dhcp_extra(params),
    )


def prepare_bond_slave(params: dict[str, Any]) -> InterfaceRequest:
    _require(params, "bond_slave", "master")
    base = _strip_addresses(_base_params(params), "bond_slave")
    base["bootproto"] = "none"
    base["master"] = params["master"]
    return InterfaceRequest(
        "bond_slave",
        _name(params),
        base,
        extra=[("MASTER", str(params["master"])), ("SLAVE", "yes")],
    )


def prepare_alias(params: dict[str, Any]) -> InterfaceRequest:
    """Alias file ifcfg-<device>:<n> carrying exactly one address."""
    _require(params, "alias", "ipaddress", "netmask")
    device = params.get("device") or params.get("name") or ""
    parent, sep, number = device.partition(":")
    errors = []
    if not sep or not parent or not number.isdigit():
        errors.append(f"Alias device '{device}' must be named <device>:<n>")
    if len(as_list(params.get("ipaddress"))) != 1:
        errors.append("alias takes exactly one ipaddress")
    if errors:
        raise ValidationError(device, errors)

    base = _base_params(params)
    base["name"] = device
    base["device"] = device
    base["bootproto"] = "none"
    base["manage_hwaddr"] = False
    onparent = params.get("ensure", "up") == "up"
    return InterfaceRequest(
        "alias",
        device,
        base,
        kind=InterfaceKind.ALIAS,
        extra=[
            ("ONPARENT", yes_no(onparent)),
            ("NO_ALIASROUTING", yes_no(to_bool(params.get("noaliasrouting", False)))),
        ],
        connection=parent,
    )


def prepare_alias_range(params: dict[str, Any]) -> InterfaceRequest:
    """Range file ifcfg-<device>-range<n> cloning consecutive aliases."""
    _require(params, "alias_range", "device", "ipaddress_start", "ipaddress_end", "netmask")
    device = params["device"]
    start = params["ipaddress_start"]
    end = params["ipaddress_end"]
    netmask = params["netmask"]
    clonenum = params.get("clonenum_start", 0)

    errors = []
    if not valid_ipv4(start):
        errors.append(f"Invalid IPv4 address '{start}'")
    if not valid_ipv4(end):
        errors.append(f"Invalid IPv4 address '{end}'")
    if not valid_netmask(netmask):
        errors.append(f"Invalid IPv4 netmask '{netmask}'")
    if isinstance(clonenum, bool) or not str(clonenum).isdigit():
        errors.append(f"Invalid clonenum_start '{clonenum}'")
    if errors:
        raise ValidationError(device, errors)

    name = params.get("name") or f"{device}-range{clonenum}"
    base = {
        k: v for k, v in _base_params(params).items() if k not in ADDRESS_FIELDS
    }
    base["name"] = name
    base["bootproto"] = "none"
    base["manage_hwaddr"] = False
    onparent = params.get("ensure", "up") == "up"
    return InterfaceRequest(
        "alias_range",
        name,
        base,
        kind=InterfaceKind.ALIAS_RANGE,
        extra=[
            ("IPADDR_START", start),
            ("IPADDR_END", end),
            ("CLONENUM_START", str(clonenum)),
            ("NETMASK", netmask),
            ("ONPARENT", yes_no(onparent)),
        ],
        connection=device,
    )


def prepare_vlan(params: dict[str, Any]) -> InterfaceRequest:
    base = _base_params(params)
    device = params.get("device") or params.get("name") or ""
    base.setdefault("device", device)
    return InterfaceRequest(
        "vlan",
        _name(params),
        base,
        kind=InterfaceKind.VLAN,
        extra=[("VLAN", "yes"), ("PHYSDEV", base_device(device))],
    )


def prepare_route(params: dict[str, Any]) -> InterfaceRequest:
    """Static routes in route-<name>, bound to the interface <name>.

    With ensure=down the file is rendered without routes.
    """
    name = _name(params)
    routes = params.get("routes")
    if params.get("ensure", "up") == "down":
        routes = []
    if routes is None:
        # Parallel lists, one entry per route
        addresses = as_list(params.get("ipaddress"))
        netmasks = as_list(params.get("netmask"))
        gateways = as_list(params.get("gateway"))
        if not (len(addresses) == len(netmasks) == len(gateways)):
            raise ValidationError(name, [
                f"Route count mismatch: {len(addresses)} address(es), "
                f"{len(netmasks)} netmask(s), {len(gateways)} gateway(s)"
            ])
        routes = [
            {"address": a, "netmask": n, "gateway": g}
            for a, n, g in zip(addresses, netmasks, gateways)
        ]
    return InterfaceRequest(
        "route",
        name,
        {"name": name, "ensure": params.get("ensure", "up")},
        routes=list(routes),
    )


PRESETS: dict[str, Callable[[dict[str, Any]], InterfaceRequest]] = {
    "static": prepare_static,
    "dynamic": prepare_dynamic,
    "bridge_static": prepare_bridge_static,
    "bridge_dynamic": prepare_bridge_dynamic,
    "bridge_member": prepare_bridge_member,
    "bond_static": prepare_bond_static,
    "bond_dynamic": prepare_bond_dynamic,
    "bond_slave": prepare_bond_slave,
    "alias": prepare_alias,
    "alias_range": prepare_alias_range,
    "vlan": prepare_vlan,
    "route": prepare_route,
}


def prepare(operation: str, params: dict[str, Any]) -> InterfaceRequest:
    """
    Build the request for one kind.

    Args:
        operation: Preset name (static, dynamic, bridge_static, ...)
        params: Raw interface parameters

    Raises:
        ValueError: If the operation is unknown
        ValidationError: If the preset's own requirements are not met
    """
    if operation not in PRESETS:
        raise ValueError(f"Unknown interface kind: {operation}")
    return PRESETS[operation](dict(params))


# === Caller-facing operations ===

def _apply(
    engine: "ConfigEngine",
    operation: str,
    policy: Optional[ActivationPolicy],
    params: dict[str, Any],
) -> ApplyResult:
    return engine.apply_operation(operation, params, policy)


def static(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    """Static addressing (BOOTPROTO=none)."""
    return _apply(engine, "static", policy, params)


def dynamic(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    """DHCP or BOOTP addressing."""
    return _apply(engine, "dynamic", policy, params)


def bridge_static(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    return _apply(engine, "bridge_static", policy, params)


def bridge_dynamic(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    return _apply(engine, "bridge_dynamic", policy, params)


def bridge_member(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    """Ethernet port enslaved to ``bridge``."""
    return _apply(engine, "bridge_member", policy, params)


def bond_static(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    return _apply(engine, "bond_static", policy, params)


def bond_dynamic(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    return _apply(engine, "bond_dynamic", policy, params)


def bond_slave(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    """Ethernet port enslaved to bond ``master``."""
    return _apply(engine, "bond_slave", policy, params)


def alias(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    return _apply(engine, "alias", policy, params)


def alias_range(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    return _apply(engine, "alias_range", policy, params)


def vlan(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    """802.1Q interface; PHYSDEV comes from the device name."""
    return _apply(engine, "vlan", policy, params)


def route(engine: "ConfigEngine", policy: Optional[ActivationPolicy] = None, **params) -> ApplyResult:
    """Static routes for interface ``name``."""
    return _apply(engine, "route", policy, params)
