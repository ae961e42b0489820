"""Shared fixtures: temp scripts dir, recording runner, static facts."""
import os
from typing import Optional

import pytest

from ifcraft.config.schema import EngineSettings
from ifcraft.config_engine import ConfigEngine
from ifcraft.config_engine.errors import PackageError
from ifcraft.config_engine.schema import CommandOutcome
from ifcraft.host.base import CommandRunner, PackageEnsurer
from ifcraft.host.facts import StaticFactProvider

ETH0_MAC = "52:54:00:12:34:56"
ETH1_MAC = "52:54:00:ab:cd:ef"


class FakeRunner(CommandRunner):
    """Records every command; succeeds unless told otherwise."""

    def __init__(self):
        self.commands: list[list[str]] = []
        self.timeouts: list[Optional[float]] = []
        self._responses: list[tuple[list[str], dict]] = []

    def respond(self, prefix, returncode=0, output="", timed_out=False):
        """Answer commands starting with ``prefix`` with this outcome."""
        self._responses.append((list(prefix), {
            "returncode": returncode,
            "output": output,
            "timed_out": timed_out,
        }))

    def run(self, command, timeout=None):
        self.commands.append(list(command))
        self.timeouts.append(timeout)
        for prefix, outcome in self._responses:
            if command[:len(prefix)] == prefix:
                return CommandOutcome(command=list(command), **outcome)
        return CommandOutcome(command=list(command), returncode=0)

    def joined(self) -> list[str]:
        return [" ".join(c) for c in self.commands]


class FakePackages(PackageEnsurer):
    """Records ensured packages; packages in ``missing`` fail."""

    def __init__(self, missing=()):
        self.ensured: list[str] = []
        self.missing = set(missing)

    def ensure(self, package):
        if package in self.missing:
            raise PackageError(f"Failed to install {package}", returncode=1)
        self.ensured.append(package)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep IFCRAFT_* settings and log files away from the real host."""
    for key in list(os.environ):
        if key.startswith("IFCRAFT_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("IFCRAFT_LOG_FILE", str(tmp_path / "logs" / "ifcraft.log"))


@pytest.fixture
def scripts_dir(tmp_path):
    path = tmp_path / "network-scripts"
    path.mkdir()
    return path


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def packages():
    return FakePackages()


@pytest.fixture
def facts():
    return StaticFactProvider({"eth0": ETH0_MAC, "macaddress_eth1": ETH1_MAC})


@pytest.fixture
def settings(scripts_dir):
    return EngineSettings(scripts_dir=scripts_dir)


@pytest.fixture
def engine(settings, facts, runner, packages):
    return ConfigEngine(settings, facts=facts, runner=runner, packages=packages)
