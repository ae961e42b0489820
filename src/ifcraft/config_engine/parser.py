"""Parser for desired interface state.

Converts raw dict/YAML parameters to a canonical InterfaceSpec.
"""
import logging
from typing import Any, Iterable, Optional

from ..host.base import FactProvider
from .errors import ValidationError
from .schema import (
    BootProto,
    Ensure,
    InterfaceFlags,
    InterfaceKind,
    InterfaceSpec,
    IPv4Address,
    IPv6Address,
    RouteSpec,
    StaticRoute,
    tag_value,
)
from .validator import (
    BOOLEAN_FLAGS,
    TRUE_STRINGS,
    ConfigValidator,
    VLAN_DEVICE_PATTERN,
    as_list,
    valid_ipv4,
    valid_mac,
    valid_netmask,
)

logger = logging.getLogger(__name__)

FLAG_DEFAULTS = {
    "userctl": False,
    "manage_hwaddr": True,
    "ipv6init": False,
    "ipv6autoconf": False,
    "peerdns": False,
    "ipv6peerdns": False,
    "flush": False,
    "defroute": None,
}

PASSTHROUGH_FIELDS = ("domain", "zone", "scope", "metric", "linkdelay", "ethtool_opts")


def to_bool(value: Any) -> Optional[bool]:
    """Coerce a validated flag value to a bool."""
    if value is None or isinstance(value, bool):
        return value
    return str(value).lower() in TRUE_STRINGS


def base_device(device: str) -> str:
    """Strip a trailing .<digits> VLAN suffix from a device name."""
    match = VLAN_DEVICE_PATTERN.match(device)
    if match:
        return match.group("base")
    return device


def _sequence(value: Any) -> tuple:
    """Normalize a scalar-or-list parameter into an ordered tuple."""
    tagged = tag_value(value)
    return tagged.items() if tagged else ()


class ConfigParser:
    """Normalize raw interface parameters into an InterfaceSpec."""

    def __init__(self, facts: Optional[FactProvider] = None):
        """
        Initialize parser.

        Args:
            facts: Host fact provider used to derive MAC addresses
        """
        self.facts = facts

    def parse(
        self,
        params: dict[str, Any],
        kind: InterfaceKind = InterfaceKind.ETHERNET,
        extra: Iterable[tuple[str, str]] = (),
    ) -> InterfaceSpec:
        """
        Parse a parameter dict into an InterfaceSpec.

        Args:
            params: Raw parameters (name, device, ipaddress, netmask, ...)
            kind: Interface kind selecting kind-specific validation
            extra: Kind-specific file keys to carry into the InterfaceSpec

        Returns:
            InterfaceSpec

        Raises:
            ValidationError: If any parameter is malformed
        """
        name = params.get("name", "")
        validation = ConfigValidator(kind).validate(params)
        if not validation.valid:
            raise ValidationError(name, validation.errors)
        for warning in validation.warnings:
            logger.warning(warning)

        device = params.get("device") or name
        flags = self._parse_flags(params)

        macaddress = params.get("macaddress")
        if macaddress is None and flags.manage_hwaddr:
            macaddress = self._derive_macaddress(device)
            if macaddress is not None and not valid_mac(macaddress):
                raise ValidationError(
                    name, [f"Invalid MAC address '{macaddress}' from host facts"]
                )

        mtu = params.get("mtu")

        return InterfaceSpec(
            name=name,
            device=device,
            kind=kind,
            ensure=Ensure(params.get("ensure", "up")),
            bootproto=BootProto(params.get("bootproto", "none")),
            ipv4=self._parse_ipv4(params),
            ipv6=tuple(
                IPv6Address(address=a) for a in _sequence(params.get("ipv6address"))
            ),
            gateway=params.get("gateway"),
            ipv6_gateway=params.get("ipv6gateway"),
            macaddress=macaddress,
            flags=flags,
            mtu=int(mtu) if mtu is not None else None,
            dns=self._parse_dns(params),
            extra=tuple((k, str(v)) for k, v in extra),
            **{f: self._opaque(params.get(f)) for f in PASSTHROUGH_FIELDS},
        )

    def _parse_ipv4(self, params: dict[str, Any]) -> tuple[IPv4Address, ...]:
        """Pair addresses with netmasks; index 0 is the primary."""
        addresses = _sequence(params.get("ipaddress"))
        netmasks = _sequence(params.get("netmask"))
        return tuple(
            IPv4Address(address=address, netmask=netmask)
            for address, netmask in zip(addresses, netmasks)
        )

    def _parse_flags(self, params: dict[str, Any]) -> InterfaceFlags:
        values = {}
        for flag in BOOLEAN_FLAGS:
            value = params.get(flag)
            values[flag] = FLAG_DEFAULTS[flag] if value is None else to_bool(value)
        return InterfaceFlags(**values)

    def _parse_dns(self, params: dict[str, Any]) -> tuple[str, ...]:
        servers = as_list(params.get("dns"))
        for key in ("dns1", "dns2"):
            if params.get(key) is not None:
                servers.append(params[key])
        return tuple(servers)

    def _derive_macaddress(self, device: str) -> Optional[str]:
        """Look up the base device's live MAC, if a fact provider is set."""
        if self.facts is None:
            return None
        base = base_device(device)
        mac = self.facts.get_macaddress(base)
        if mac is None:
            logger.debug(f"No MAC fact for {base}; HWADDR will be omitted")
        return mac

    @staticmethod
    def _opaque(value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    def parse_routes(self, name: str, routes: list[dict[str, Any]]) -> RouteSpec:
        """
        Parse static routes for a route-<name> file.

        Args:
            name: Interface the routes are bound to
            routes: Ordered list of {address, netmask, gateway} dicts

        Raises:
            ValidationError: If any route field is malformed
        """
        errors = []
        parsed = []
        for index, route in enumerate(routes or []):
            address = route.get("address")
            netmask = route.get("netmask")
            gateway = route.get("gateway")
            if not valid_ipv4(address):
                errors.append(f"Route {index}: invalid address '{address}'")
            if not valid_netmask(netmask):
                errors.append(f"Route {index}: invalid netmask '{netmask}'")
            if not valid_ipv4(gateway):
                errors.append(f"Route {index}: invalid gateway '{gateway}'")
            parsed.append(StaticRoute(address=address, netmask=netmask, gateway=gateway))

        if not name:
            errors.append("Missing required field: name")
        if errors:
            raise ValidationError(name, errors)

        return RouteSpec(name=name, routes=tuple(parsed))

