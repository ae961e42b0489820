"""Tests for interface parameter validation."""
import pytest

from ifcraft.config_engine import ConfigValidator, InterfaceKind
from ifcraft.config_engine.validator import (
    valid_ipv4,
    valid_ipv6,
    valid_mac,
    valid_netmask,
    vlan_id_from_device,
)


class TestAddressChecks:
    """Tests for the address syntax helpers."""

    @pytest.mark.parametrize("address", ["10.0.0.5", "192.168.1.254", "0.0.0.0"])
    def test_valid_ipv4(self, address):
        """Dotted quads are accepted."""
        assert valid_ipv4(address)

    @pytest.mark.parametrize("address", ["10.0.0", "10.0.0.256", "10.0.0.5/24", "", None, 10])
    def test_invalid_ipv4(self, address):
        """Short, out of range, CIDR and non-string values are rejected."""
        assert not valid_ipv4(address)

    def test_netmask_must_be_contiguous(self):
        """Only contiguous masks are netmasks."""
        assert valid_netmask("255.255.255.0")
        assert valid_netmask("255.255.255.128")
        assert not valid_netmask("255.0.255.0")
        assert not valid_netmask("10.0.0.5")

    def test_ipv6_prefix(self):
        """IPv6 addresses may carry a prefix length."""
        assert valid_ipv6("2001:db8::1")
        assert valid_ipv6("2001:db8::1/64")
        assert not valid_ipv6("2001:db8::1/129")
        assert not valid_ipv6("2001:db8::1/64", allow_prefix=False)
        assert not valid_ipv6("2001:zz8::1")

    def test_mac(self):
        """Colon separated MACs are accepted, garbage is not."""
        assert valid_mac("52:54:00:12:34:56")
        assert not valid_mac("52:54:00:12:34")
        assert not valid_mac("not-a-mac")

    def test_vlan_id_from_device(self):
        """VLAN id comes from the dotted suffix."""
        assert vlan_id_from_device("eth0.100") == 100
        assert vlan_id_from_device("bond0.42") == 42
        assert vlan_id_from_device("eth0") is None


class TestConfigValidator:
    """Tests for ConfigValidator."""

    def test_valid_static(self):
        """A complete static interface validates cleanly."""
        result = ConfigValidator().validate({
            "name": "eth0",
            "ipaddress": "10.0.0.5",
            "netmask": "255.255.255.0",
            "gateway": "10.0.0.1",
        })
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_missing_name(self):
        """Name is required."""
        result = ConfigValidator().validate({"ipaddress": "10.0.0.5", "netmask": "255.255.255.0"})
        assert not result.valid
        assert "Missing required field: name" in result.errors

    def test_count_mismatch(self):
        """Two addresses with one netmask is an error."""
        result = ConfigValidator().validate({
            "name": "eth0",
            "ipaddress": ["10.0.0.5", "10.0.0.6"],
            "netmask": "255.255.255.0",
        })
        assert not result.valid
        assert any("count mismatch" in e for e in result.errors)

    def test_collects_all_errors(self):
        """Every violation is reported, not just the first."""
        result = ConfigValidator().validate({
            "name": "eth0",
            "ipaddress": "10.0.0.300",
            "netmask": "255.0.255.0",
            "macaddress": "zz:zz",
            "ipv6address": "fe80::zz",
            "userctl": "maybe",
        })
        assert not result.valid
        assert len(result.errors) == 5

    def test_boolean_flags(self):
        """Flags accept booleans and yes/no/true/false strings only."""
        ok = ConfigValidator().validate({
            "name": "eth0", "bootproto": "dhcp",
            "userctl": True, "peerdns": "yes", "ipv6init": "False",
        })
        assert ok.valid

        bad = ConfigValidator().validate({"name": "eth0", "bootproto": "dhcp", "flush": 1})
        assert not bad.valid
        assert "Flag 'flush' must be a boolean, got 1" in bad.errors

    def test_ensure_and_bootproto(self):
        """Enumerated fields are checked."""
        result = ConfigValidator().validate({
            "name": "eth0", "ensure": "absent", "bootproto": "static",
        })
        assert not result.valid
        assert len(result.errors) == 2

    def test_non_string_ensure_and_bootproto(self):
        """Lists and mappings are reported as errors, not raised."""
        result = ConfigValidator().validate({
            "name": "eth0", "ensure": ["up"], "bootproto": {"a": 1},
        })
        assert not result.valid
        assert "Invalid ensure '['up']': must be 'up' or 'down'" in result.errors
        assert any(e.startswith("Invalid bootproto") for e in result.errors)

    def test_mtu_and_dns(self):
        """MTU must be positive and at most two DNS servers are allowed."""
        result = ConfigValidator().validate({
            "name": "eth0",
            "bootproto": "dhcp",
            "mtu": 0,
            "dns": ["10.0.0.53", "10.0.1.53", "10.0.2.53"],
        })
        assert not result.valid
        assert any("MTU" in e for e in result.errors)
        assert any("At most 2 DNS servers" in e for e in result.errors)

    def test_static_without_address_warns(self):
        """Static without any address is a warning, not an error."""
        result = ConfigValidator().validate({"name": "eth0"})
        assert result.valid
        assert len(result.warnings) == 1

    def test_enslaved_port_does_not_warn(self):
        """Bond slaves and bridge ports legitimately have no address."""
        result = ConfigValidator().validate({"name": "eth1", "master": "bond0"})
        assert result.valid
        assert result.warnings == []

    def test_dhcp_with_addresses_warns(self):
        """DHCP plus static addresses warns."""
        result = ConfigValidator().validate({
            "name": "eth0",
            "bootproto": "dhcp",
            "ipaddress": "10.0.0.5",
            "netmask": "255.255.255.0",
        })
        assert result.valid
        assert any("static addresses are ignored" in w for w in result.warnings)

    def test_ipv6_without_ipv6init_warns(self):
        """IPv6 addresses are only rendered with ipv6init on."""
        for params in ({"ipv6address": "2001:db8::5/64"}, {"ipv6gateway": "2001:db8::1"}):
            result = ConfigValidator().validate({"name": "eth0", "bootproto": "dhcp", **params})
            assert result.valid
            assert any("ipv6init is off" in w for w in result.warnings)

        for ipv6init in (True, "yes"):
            result = ConfigValidator().validate({
                "name": "eth0", "bootproto": "dhcp",
                "ipv6init": ipv6init, "ipv6address": "2001:db8::5/64",
            })
            assert result.warnings == []

    def test_vlan_range(self):
        """VLAN ids must be 1..4094 and come from the device name."""
        validator = ConfigValidator(InterfaceKind.VLAN)
        assert validator.validate({"name": "eth0.100", "bootproto": "dhcp"}).valid
        assert not validator.validate({"name": "eth0.4095", "bootproto": "dhcp"}).valid
        assert not validator.validate({"name": "eth0.0", "bootproto": "dhcp"}).valid
        assert not validator.validate({"name": "vlan100", "bootproto": "dhcp"}).valid
