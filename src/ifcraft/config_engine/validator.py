"""Pre-flight validation for interface parameters.

Catches malformed input before any file or tool is touched.
"""
import re
from typing import Any, Optional

import netaddr

from .schema import InterfaceKind, ValidationResult


BOOLEAN_FLAGS = (
    "userctl",
    "manage_hwaddr",
    "ipv6init",
    "ipv6autoconf",
    "peerdns",
    "ipv6peerdns",
    "flush",
    "defroute",
)

TRUE_STRINGS = {"true", "yes"}
FALSE_STRINGS = {"false", "no"}

VALID_ENSURE = {"up", "down"}
VALID_BOOTPROTO = {"none", "dhcp", "bootp"}

MAX_DNS_SERVERS = 2

# eth0.100, bond0.42
VLAN_DEVICE_PATTERN = re.compile(r"^(?P<base>.+)\.(?P<vlan>\d+)$")


def as_list(value: Any) -> list:
    """Return a scalar-or-list parameter as a list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def is_boolean(value: Any) -> bool:
    """Check if a flag value is a boolean or a boolean literal."""
    if isinstance(value, bool):
        return True
    if isinstance(value, str):
        return value.lower() in TRUE_STRINGS | FALSE_STRINGS
    return False


def valid_ipv4(address: Any) -> bool:
    if not isinstance(address, str) or not address:
        return False
    return netaddr.valid_ipv4(address, flags=netaddr.INET_PTON)


def valid_netmask(netmask: Any) -> bool:
    if not valid_ipv4(netmask):
        return False
    return netaddr.IPAddress(netmask).is_netmask()


def valid_ipv6(address: Any, allow_prefix: bool = True) -> bool:
    """Check IPv6 syntax, optionally accepting a trailing /prefix."""
    if not isinstance(address, str) or not address:
        return False
    if "/" in address:
        if not allow_prefix:
            return False
        address, prefix = address.split("/", 1)
        if not prefix.isdigit() or not 0 <= int(prefix) <= 128:
            return False
    return netaddr.valid_ipv6(address)


def valid_ip(address: Any) -> bool:
    return valid_ipv4(address) or valid_ipv6(address, allow_prefix=False)


def valid_mac(macaddress: Any) -> bool:
    if not isinstance(macaddress, str) or not macaddress:
        return False
    return netaddr.valid_mac(macaddress)


def vlan_id_from_device(device: str) -> Optional[int]:
    """Extract the VLAN id from a dotted device name."""
    match = VLAN_DEVICE_PATTERN.match(device or "")
    if match:
        return int(match.group("vlan"))
    return None


class ConfigValidator:
    """Validate raw interface parameters for well-formedness."""

    def __init__(self, kind: Optional[InterfaceKind] = None):
        """
        Initialize validator.

        Args:
            kind: Optional interface kind for kind-specific checks
        """
        self.kind = kind

    def validate(self, params: dict[str, Any]) -> ValidationResult:
        """
        Validate a raw parameter dict.

        Performs pre-flight checks:
        - Interface name and enum fields
        - IPv4/IPv6 address, netmask and gateway syntax
        - Address/netmask cardinality
        - Boolean flag types
        - MAC syntax (when supplied)
        - MTU, DNS and VLAN id ranges

        Args:
            params: Raw interface parameters

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        self._validate_identity(params, errors)
        self._validate_ipv4(params, errors, warnings)
        self._validate_ipv6(params, errors, warnings)
        self._validate_flags(params, errors)
        self._validate_misc(params, errors)

        if self.kind == InterfaceKind.VLAN:
            self._validate_vlan(params, errors)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def _validate_identity(self, params: dict, errors: list[str]) -> None:
        """Validate name, ensure and bootproto."""
        name = params.get("name")
        if not name or not isinstance(name, str):
            errors.append("Missing required field: name")
        elif "/" in name or name.strip() != name:
            errors.append(f"Invalid interface name '{name}'")

        ensure = params.get("ensure", "up")
        if not isinstance(ensure, str) or ensure not in VALID_ENSURE:
            errors.append(f"Invalid ensure '{ensure}': must be 'up' or 'down'")

        bootproto = params.get("bootproto", "none")
        if not isinstance(bootproto, str) or bootproto not in VALID_BOOTPROTO:
            errors.append(
                f"Invalid bootproto '{bootproto}': must be one of "
                f"{', '.join(sorted(VALID_BOOTPROTO))}"
            )

    def _validate_ipv4(
        self,
        params: dict,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        """Validate IPv4 addresses, netmasks and gateway."""
        addresses = as_list(params.get("ipaddress"))
        netmasks = as_list(params.get("netmask"))

        for address in addresses:
            if not valid_ipv4(address):
                errors.append(f"Invalid IPv4 address '{address}'")

        for netmask in netmasks:
            if not valid_netmask(netmask):
                errors.append(f"Invalid IPv4 netmask '{netmask}'")

        if addresses and len(addresses) != len(netmasks):
            errors.append(
                f"Address/netmask count mismatch: {len(addresses)} "
                f"address(es) but {len(netmasks)} netmask(s)"
            )

        gateway = params.get("gateway")
        if gateway is not None and not valid_ipv4(gateway):
            errors.append(f"Invalid IPv4 gateway '{gateway}'")

        bootproto = params.get("bootproto", "none")
        enslaved = params.get("master") or params.get("bridge")
        ranged = self.kind == InterfaceKind.ALIAS_RANGE
        if (bootproto == "none" and not enslaved and not ranged and
                not addresses and not params.get("ipv6address")):
            warnings.append(
                f"Interface {params.get('name')} is static but has no address"
            )
        if bootproto in ("dhcp", "bootp") and addresses:
            warnings.append(
                f"Interface {params.get('name')} uses {bootproto}; "
                f"static addresses are ignored"
            )

    def _validate_ipv6(
        self,
        params: dict,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        """Validate IPv6 addresses and gateway."""
        for address in as_list(params.get("ipv6address")):
            if not valid_ipv6(address):
                errors.append(f"Invalid IPv6 address '{address}'")

        gateway = params.get("ipv6gateway")
        if gateway is not None and not valid_ipv6(gateway, allow_prefix=False):
            errors.append(f"Invalid IPv6 gateway '{gateway}'")

        ipv6init = params.get("ipv6init")
        enabled = ipv6init is True or (
            isinstance(ipv6init, str) and ipv6init.lower() in TRUE_STRINGS
        )
        if not enabled and (params.get("ipv6address") or gateway is not None):
            warnings.append(
                f"Interface {params.get('name')} sets IPv6 addresses but "
                f"ipv6init is off; they are not rendered"
            )

    def _validate_flags(self, params: dict, errors: list[str]) -> None:
        """Boolean flags must hold booleans."""
        for flag in BOOLEAN_FLAGS:
            if flag in params and params[flag] is not None:
                if not is_boolean(params[flag]):
                    errors.append(
                        f"Flag '{flag}' must be a boolean, got {params[flag]!r}"
                    )

    def _validate_misc(self, params: dict, errors: list[str]) -> None:
        """Validate MAC, MTU and DNS settings."""
        macaddress = params.get("macaddress")
        if macaddress is not None and not valid_mac(macaddress):
            errors.append(f"Invalid MAC address '{macaddress}'")

        mtu = params.get("mtu")
        if mtu is not None:
            if isinstance(mtu, bool) or not str(mtu).isdigit() or int(mtu) <= 0:
                errors.append(f"Invalid MTU '{mtu}': must be a positive integer")

        dns = as_list(params.get("dns"))
        for key in ("dns1", "dns2"):
            if params.get(key) is not None:
                dns.append(params[key])
        if len(dns) > MAX_DNS_SERVERS:
            errors.append(
                f"At most {MAX_DNS_SERVERS} DNS servers are supported, got {len(dns)}"
            )
        for server in dns:
            if not valid_ip(server):
                errors.append(f"Invalid DNS server '{server}'")

    def _validate_vlan(self, params: dict, errors: list[str]) -> None:
        """VLAN devices must carry an id between 1 and 4094."""
        device = params.get("device") or params.get("name") or ""
        vlan_id = vlan_id_from_device(device)
        if vlan_id is None:
            errors.append(
                f"VLAN device '{device}' must be named <device>.<vlan id>"
            )
        elif vlan_id < 1 or vlan_id > 4094:
            errors.append(
                f"Invalid VLAN ID {vlan_id}: must be between 1 and 4094"
            )
