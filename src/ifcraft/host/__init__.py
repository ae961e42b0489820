"""Host collaborators: facts, packages and command execution."""
from .base import FactProvider, CommandRunner, PackageEnsurer
from .facts import SysfsFactProvider, StaticFactProvider, ChainedFactProvider
from .packages import RpmPackageEnsurer
from .runner import SubprocessRunner

__all__ = [
    "FactProvider",
    "CommandRunner",
    "PackageEnsurer",
    "SysfsFactProvider",
    "StaticFactProvider",
    "ChainedFactProvider",
    "RpmPackageEnsurer",
    "SubprocessRunner",
]
