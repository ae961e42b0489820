"""Tests for the Config Engine pipeline."""
import threading
import time

from ifcraft.config_engine import (
    ActivationPolicy,
    ConfigEngine,
    ReconcileState,
    ValidationError,
    prepare,
)
from ifcraft.utils.audit_log import get_recent_changes

from conftest import FakeRunner

ETH0 = {
    "name": "eth0",
    "ensure": "up",
    "device": "eth0",
    "ipaddress": ["10.0.0.5", "10.0.0.6"],
    "netmask": ["255.255.255.0", "255.255.255.0"],
}


class TestConfigEngine:
    """Tests for ConfigEngine.apply_operation and apply."""

    def test_apply_two_address_scenario(self, engine, runner, scripts_dir):
        result = engine.apply_operation("static", ETH0)

        assert result.success
        content = (scripts_dir / "ifcfg-eth0").read_text()
        for line in ("IPADDR=10.0.0.5", "NETMASK=255.255.255.0",
                     "IPADDR1=10.0.0.6", "NETMASK1=255.255.255.0"):
            assert line in content.splitlines()
        assert runner.commands[0][:3] == ["nmcli", "connection", "load"]

    def test_reapply_is_idempotent(self, engine, runner):
        """Second apply of the same parameters runs no external commands."""
        engine.apply_operation("static", ETH0)
        runner.commands.clear()

        result = engine.apply_operation("static", ETH0)

        assert result.success
        assert not result.changed
        assert runner.commands == []

    def test_changed_netmask_rewrites_then_reloads_then_activates(self, engine, runner, scripts_dir):
        engine.apply_operation("static", {
            "name": "eth0", "ipaddress": "10.0.0.5", "netmask": "255.255.255.0",
        })
        runner.commands.clear()

        result = engine.apply_operation("static", {
            "name": "eth0", "ipaddress": "10.0.0.5", "netmask": "255.255.255.128",
        })

        assert result.changed
        assert "NETMASK=255.255.255.128" in (scripts_dir / "ifcfg-eth0").read_text()
        verbs = [c[2] for c in runner.commands if c[:2] == ["nmcli", "connection"]]
        assert verbs[:2] == ["load", "up"]
        assert result.transitions[:4] == [
            ReconcileState.START,
            ReconcileState.WRITTEN,
            ReconcileState.RELOADED,
            ReconcileState.ACTIVATED,
        ]

    def test_ensure_down(self, engine, runner, scripts_dir):
        """ensure=down renders ONBOOT=no and only brings the connection down."""
        result = engine.apply_operation("static", dict(ETH0, ensure="down"))

        assert result.success
        assert "ONBOOT=no" in (scripts_dir / "ifcfg-eth0").read_text().splitlines()
        assert "nmcli connection down id eth0" in runner.joined()
        assert not any(c[:3] == ["nmcli", "connection", "up"] for c in runner.commands)

    def test_validation_failure_no_side_effects(self, engine, runner, scripts_dir):
        """Mismatched lists fail before any file or command."""
        result = engine.apply_operation("static", {
            "name": "eth0",
            "ipaddress": ["10.0.0.5", "10.0.0.6"],
            "netmask": ["255.255.255.0"],
        })

        assert result.state == ReconcileState.FAILED
        assert isinstance(result.exception, ValidationError)
        assert runner.commands == []
        assert list(scripts_dir.iterdir()) == []

    def test_invalid_address_no_side_effects(self, engine, runner, scripts_dir):
        for bad in ({"ipaddress": "10.0.0.300"}, {"macaddress": "xx"}, {"ipv6address": "::g"}):
            params = {**ETH0, "ipaddress": "10.0.0.5", "netmask": "255.255.255.0", **bad}
            result = engine.apply_operation("static", params)
            assert result.state == ReconcileState.FAILED
        assert runner.commands == []
        assert list(scripts_dir.iterdir()) == []

    def test_preset_failure_is_result(self, engine, runner):
        """Static without an address is rejected by the preset."""
        result = engine.apply_operation("static", {"name": "eth0"})

        assert not result.success
        assert "static requires ipaddress, netmask" in result.error
        assert runner.commands == []

    def test_flush_flag(self, engine, runner):
        engine.apply_operation(
            "static", dict(ETH0, flush=True), ActivationPolicy(cleanup=False)
        )
        assert runner.joined()[1] == "ip addr flush dev eth0"

    def test_bridge_ensures_package(self, engine, packages, runner):
        result = engine.apply_operation("bridge_static", {
            "name": "br0", "ipaddress": "10.0.0.5", "netmask": "255.255.255.0",
        })

        assert result.success
        assert packages.ensured == ["bridge-utils"]
        assert "ensure package bridge-utils" in result.commands_executed

    def test_route_keeps_interface_connection(self, engine, runner, scripts_dir):
        """Applying routes never deletes the interface's own connection."""
        runner.respond(
            ["nmcli", "-t"],
            output=f"uuid-eth0:eth0:{scripts_dir / 'ifcfg-eth0'}",
        )

        result = engine.apply_operation("route", {"name": "eth0", "routes": [
            {"address": "10.1.0.0", "netmask": "255.255.0.0", "gateway": "10.0.0.1"},
        ]})

        assert result.success
        assert runner.joined() == [
            f"nmcli connection load {scripts_dir / 'ifcfg-eth0'}",
            "nmcli connection up id eth0",
        ]

    def test_default_policy_from_settings(self, settings, facts, runner, packages):
        settings.reload = False
        engine = ConfigEngine(settings, facts=facts, runner=runner, packages=packages)

        result = engine.apply_operation("static", ETH0)

        assert result.success
        assert runner.commands == []


class TestApplyMany:
    """Tests for multi-interface application."""

    def test_results_keep_order(self, engine):
        requests = [
            prepare("static", {"name": f"eth{i}", "ipaddress": f"10.0.{i}.5",
                               "netmask": "255.255.255.0"})
            for i in range(4)
        ]

        results = engine.apply_many(requests, workers=3)

        assert [r.name for r in results] == ["eth0", "eth1", "eth2", "eth3"]
        assert all(r.success for r in results)

    def test_same_name_serialized(self, settings, facts, packages):
        """Two applies of one interface never overlap."""
        active = []
        overlaps = []
        lock = threading.Lock()

        class SlowRunner(FakeRunner):
            def run(self, command, timeout=None):
                with lock:
                    active.append(command)
                    if len(active) > 1:
                        overlaps.append(command)
                time.sleep(0.01)
                with lock:
                    active.remove(command)
                return super().run(command, timeout)

        engine = ConfigEngine(settings, facts=facts, runner=SlowRunner(), packages=packages)
        requests = [
            prepare("static", {"name": "eth0", "ipaddress": "10.0.0.5",
                               "netmask": "255.255.255.0", "mtu": 1500 + i})
            for i in range(4)
        ]

        results = engine.apply_many(requests, workers=4)

        assert all(r.success for r in results)
        assert overlaps == []


class TestInspection:
    """Tests for render, diff and preview."""

    def test_render_matches_apply(self, engine, scripts_dir):
        request = prepare("static", ETH0)
        rendered = engine.render(request)
        engine.apply(request)
        assert (scripts_dir / "ifcfg-eth0").read_text() == rendered

    def test_diff(self, engine):
        request = prepare("static", ETH0)
        diff = engine.diff(request)
        assert diff.changed
        assert not diff.exists
        assert "+IPADDR=10.0.0.5" in diff.diff_lines

        engine.apply(request)
        assert engine.diff(request).no_change

    def test_preview_validation_failure(self, engine):
        request = prepare("static", dict(ETH0, netmask="255.255.255.0"))
        assert engine.preview(request).startswith("Validation failed")

    def test_route_target_path(self, engine, scripts_dir):
        request = prepare("route", {"name": "eth0", "routes": []})
        assert engine.target_path(request) == str(scripts_dir / "route-eth0")


class TestAudit:
    """Tests for audit records written by the engine."""

    def test_apply_is_audited(self, settings, facts, runner, packages, tmp_path):
        settings.audit_dir = tmp_path / "audit"
        engine = ConfigEngine(settings, facts=facts, runner=runner, packages=packages)

        engine.apply_operation("static", ETH0)
        engine.apply_operation("static", {"name": "eth1"})

        records = get_recent_changes(tmp_path / "audit" / "audit.log")
        assert [r.interface for r in records] == ["eth1", "eth0"]
        assert records[0].success is False
        assert records[1].operation == "static"
        assert records[1].kind == "ethernet"
        assert records[1].state == "applied"
        assert records[1].changed is True
