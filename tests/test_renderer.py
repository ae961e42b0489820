"""Tests for ifcfg-* and route-* rendering."""
from ifcraft.config_engine import ConfigParser, IfcfgRenderer, InterfaceKind
from ifcraft.config_engine.renderer import HEADER, quote

from conftest import ETH0_MAC


def render(params, facts=None, kind=InterfaceKind.ETHERNET, extra=()):
    spec = ConfigParser(facts).parse(params, kind=kind, extra=extra)
    return IfcfgRenderer().render(spec)


class TestIfcfgRenderer:
    """Tests for IfcfgRenderer."""

    def test_two_address_scenario(self, facts):
        """Secondaries get numeric suffixes after the primary."""
        lines = render({
            "name": "eth0",
            "ensure": "up",
            "device": "eth0",
            "ipaddress": ["10.0.0.5", "10.0.0.6"],
            "netmask": ["255.255.255.0", "255.255.255.0"],
        }, facts)

        assert lines == [
            "DEVICE=eth0",
            "NAME=eth0",
            "BOOTPROTO=none",
            "IPADDR=10.0.0.5",
            "IPADDR1=10.0.0.6",
            "NETMASK=255.255.255.0",
            "NETMASK1=255.255.255.0",
            "IPV6INIT=no",
            f"HWADDR={ETH0_MAC}",
            "ONBOOT=yes",
            "USERCTL=no",
            "PEERDNS=no",
        ]

    def test_ensure_down_onboot_no(self):
        lines = render({
            "name": "eth0", "ensure": "down",
            "ipaddress": "10.0.0.5", "netmask": "255.255.255.0",
        })
        assert "ONBOOT=no" in lines
        assert "ONBOOT=yes" not in lines

    def test_unset_fields_omitted(self):
        """No KEY= lines with empty values."""
        lines = render({"name": "eth0", "bootproto": "dhcp"})
        assert all(not line.endswith("=") for line in lines)
        assert not any(line.startswith(("GATEWAY", "MTU", "DNS", "HWADDR")) for line in lines)

    def test_canonical_order_independent_of_input(self):
        """Insertion order of parameters does not change the output."""
        a = render({
            "name": "eth0", "ipaddress": "10.0.0.5", "netmask": "255.255.255.0",
            "gateway": "10.0.0.1", "mtu": 9000, "dns": ["10.0.0.53"], "domain": "example.com",
        })
        b = render({
            "domain": "example.com", "dns": ["10.0.0.53"], "mtu": 9000,
            "gateway": "10.0.0.1", "netmask": "255.255.255.0", "ipaddress": "10.0.0.5",
            "name": "eth0",
        })
        assert a == b

    def test_canonical_key_sequence(self):
        """Common keys follow the documented file order."""
        lines = render({
            "name": "eth0",
            "ethtool_opts": "autoneg off",
            "domain": "example.com",
            "dns": ["10.0.0.53", "10.0.1.53"],
            "peerdns": True,
            "mtu": 9000,
            "userctl": True,
            "macaddress": "52:54:00:00:00:01",
            "ipv6gateway": "2001:db8::1",
            "ipv6address": "2001:db8::5/64",
            "ipv6init": True,
            "gateway": "10.0.0.1",
            "netmask": ["255.255.255.0", "255.255.255.0"],
            "ipaddress": ["10.0.0.5", "10.0.0.6"],
        })
        keys = [line.split("=", 1)[0] for line in lines]
        assert keys == [
            "DEVICE", "NAME", "BOOTPROTO",
            "IPADDR", "IPADDR1", "NETMASK", "NETMASK1", "GATEWAY",
            "IPV6INIT", "IPV6_AUTOCONF", "IPV6ADDR", "IPV6_DEFAULTGW",
            "HWADDR", "ONBOOT", "USERCTL", "MTU",
            "PEERDNS", "IPV6_PEERDNS", "DNS1", "DNS2", "DOMAIN", "ETHTOOL_OPTS",
        ]

    def test_ipv6(self):
        lines = render({
            "name": "eth0",
            "bootproto": "dhcp",
            "ipv6init": True,
            "ipv6autoconf": False,
            "ipv6address": ["2001:db8::5/64", "2001:db8::6/64", "2001:db8::7/64"],
            "ipv6gateway": "2001:db8::1",
        })
        assert "IPV6INIT=yes" in lines
        assert "IPV6_AUTOCONF=no" in lines
        assert "IPV6ADDR=2001:db8::5/64" in lines
        assert 'IPV6ADDR_SECONDARIES="2001:db8::6/64 2001:db8::7/64"' in lines
        assert "IPV6_DEFAULTGW=2001:db8::1" in lines
        assert "IPV6_PEERDNS=no" in lines

    def test_ipv6_keys_skipped_without_ipv6init(self):
        lines = render({"name": "eth0", "bootproto": "dhcp", "ipv6address": "2001:db8::5"})
        assert "IPV6INIT=no" in lines
        assert not any(line.startswith("IPV6ADDR") for line in lines)

    def test_booleans_yes_no(self):
        lines = render({
            "name": "eth0", "bootproto": "dhcp",
            "userctl": True, "peerdns": "yes", "defroute": False,
        })
        assert "USERCTL=yes" in lines
        assert "PEERDNS=yes" in lines
        assert "DEFROUTE=no" in lines

    def test_kind_keys_follow_common_block(self):
        """Extras are placed after the common keys in kind order."""
        lines = render(
            {"name": "bond0", "bootproto": "dhcp", "manage_hwaddr": False},
            kind=InterfaceKind.BOND,
            extra=[("BONDING_OPTS", "miimon=100"), ("TYPE", "Bond"), ("BONDING_MASTER", "yes")],
        )
        assert lines[-3:] == ["TYPE=Bond", "BONDING_MASTER=yes", "BONDING_OPTS=miimon=100"]

    def test_values_with_spaces_quoted(self):
        lines = render({"name": "eth0", "bootproto": "dhcp", "ethtool_opts": "-K eth0 tso off"})
        assert 'ETHTOOL_OPTS="-K eth0 tso off"' in lines

    def test_render_text_is_stable(self, facts):
        """Rendering twice gives byte-identical text with the header."""
        spec = ConfigParser(facts).parse({
            "name": "eth0", "ipaddress": "10.0.0.5", "netmask": "255.255.255.0",
        })
        renderer = IfcfgRenderer()
        first = renderer.render_text(spec)
        assert first == renderer.render_text(spec)
        assert first.splitlines()[:len(HEADER)] == HEADER
        assert first.endswith("\n")


class TestRouteRendering:
    """Tests for route-<name> rendering."""

    def test_routes_numbered_from_zero(self):
        routes = ConfigParser().parse_routes("eth0", [
            {"address": "192.168.10.0", "netmask": "255.255.255.0", "gateway": "10.0.0.1"},
            {"address": "192.168.20.0", "netmask": "255.255.255.0", "gateway": "10.0.0.2"},
        ])
        assert IfcfgRenderer().render_routes(routes) == [
            "ADDRESS0=192.168.10.0",
            "NETMASK0=255.255.255.0",
            "GATEWAY0=10.0.0.1",
            "ADDRESS1=192.168.20.0",
            "NETMASK1=255.255.255.0",
            "GATEWAY1=10.0.0.2",
        ]


class TestQuote:
    """Tests for value quoting."""

    def test_plain_value_unquoted(self):
        assert quote("eth0") == "eth0"

    def test_metacharacters_escaped(self):
        assert quote('a "b" $c') == '"a \\"b\\" \\$c"'
