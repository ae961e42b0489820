"""Renderer for ifcfg-* and route-* file bodies.

Emits keys in one fixed canonical order so identical specs always
produce byte-identical files.
"""
import re
from typing import Optional

from .schema import InterfaceSpec, RouteSpec

HEADER = [
    "###",
    "### File managed by ifcraft",
    "###",
]

# Kind-specific keys, rendered after the common block in this order.
KIND_KEY_ORDER = [
    "TYPE",
    "BONDING_MASTER",
    "BONDING_OPTS",
    "MASTER",
    "SLAVE",
    "BRIDGE",
    "STP",
    "DELAY",
    "BRIDGING_OPTS",
    "VLAN",
    "PHYSDEV",
    "IPADDR_START",
    "IPADDR_END",
    "CLONENUM_START",
    "ONPARENT",
    "NO_ALIASROUTING",
    "DHCP_HOSTNAME",
    "PERSISTENT_DHCLIENT",
]

NEEDS_QUOTING = re.compile(r"[\s\"'$`\\;&|<>()#]")


def yes_no(value: bool) -> str:
    return "yes" if value else "no"


def quote(value: str) -> str:
    """Double-quote a value that the network scripts would split."""
    if value == "" or NEEDS_QUOTING.search(value):
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("$", "\\$")
            .replace("`", "\\`")
        )
        return f'"{escaped}"'
    return value


def _kind_key_position(key: str) -> tuple[int, str]:
    try:
        return (KIND_KEY_ORDER.index(key), key)
    except ValueError:
        return (len(KIND_KEY_ORDER), key)


class IfcfgRenderer:
    """Serialize InterfaceSpecs into KEY=value lines."""

    def render(self, spec: InterfaceSpec) -> list[str]:
        """
        Render the KEY=value body of ifcfg-<name>.

        Args:
            spec: Normalized interface spec

        Returns:
            Ordered list of KEY=value lines (no header)
        """
        pairs: list[tuple[str, Optional[str]]] = []
        flags = spec.flags

        pairs.append(("DEVICE", spec.device))
        pairs.append(("NAME", spec.name))
        pairs.append(("BOOTPROTO", spec.bootproto.value))

        # IPv4: primary, then secondaries with numeric suffixes
        if spec.primary_ipv4:
            pairs.append(("IPADDR", spec.primary_ipv4.address))
            for index, secondary in enumerate(spec.secondary_ipv4, start=1):
                pairs.append((f"IPADDR{index}", secondary.address))
            pairs.append(("NETMASK", spec.primary_ipv4.netmask))
            for index, secondary in enumerate(spec.secondary_ipv4, start=1):
                pairs.append((f"NETMASK{index}", secondary.netmask))
        pairs.append(("GATEWAY", spec.gateway))

        pairs.append(("IPV6INIT", yes_no(flags.ipv6init)))
        if flags.ipv6init:
            pairs.append(("IPV6_AUTOCONF", yes_no(flags.ipv6autoconf)))
            if spec.primary_ipv6:
                pairs.append(("IPV6ADDR", spec.primary_ipv6.address))
            if spec.secondary_ipv6:
                pairs.append((
                    "IPV6ADDR_SECONDARIES",
                    " ".join(a.address for a in spec.secondary_ipv6),
                ))
            pairs.append(("IPV6_DEFAULTGW", spec.ipv6_gateway))

        if spec.macaddress and flags.manage_hwaddr:
            pairs.append(("HWADDR", spec.macaddress))
        pairs.append(("ONBOOT", yes_no(spec.onboot)))
        pairs.append(("USERCTL", yes_no(flags.userctl)))
        if flags.defroute is not None:
            pairs.append(("DEFROUTE", yes_no(flags.defroute)))
        if spec.mtu is not None:
            pairs.append(("MTU", str(spec.mtu)))

        pairs.append(("PEERDNS", yes_no(flags.peerdns)))
        if flags.ipv6init:
            pairs.append(("IPV6_PEERDNS", yes_no(flags.ipv6peerdns)))
        for index, server in enumerate(spec.dns, start=1):
            pairs.append((f"DNS{index}", server))
        pairs.append(("DOMAIN", spec.domain))
        pairs.append(("ETHTOOL_OPTS", spec.ethtool_opts))

        pairs.append(("ZONE", spec.zone))
        pairs.append(("METRIC", spec.metric))
        pairs.append(("SCOPE", spec.scope))
        pairs.append(("LINKDELAY", spec.linkdelay))

        for key, value in sorted(spec.extra, key=lambda kv: _kind_key_position(kv[0])):
            pairs.append((key, value))

        return [f"{key}={quote(value)}" for key, value in pairs if value is not None]

    def render_text(self, spec: InterfaceSpec) -> str:
        """Render the complete file content including the header."""
        return "\n".join(HEADER + self.render(spec)) + "\n"

    def render_routes(self, spec: RouteSpec) -> list[str]:
        """
        Render the body of route-<name>.

        Routes are numbered from 0 in the order given.
        """
        lines = []
        for index, route in enumerate(spec.routes):
            lines.append(f"ADDRESS{index}={route.address}")
            lines.append(f"NETMASK{index}={route.netmask}")
            lines.append(f"GATEWAY{index}={route.gateway}")
        return lines

    def render_routes_text(self, spec: RouteSpec) -> str:
        return "\n".join(HEADER + self.render_routes(spec)) + "\n"
