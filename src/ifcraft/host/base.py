"""Base abstractions for host collaborators.

The engine never touches the live host directly; it asks these
interfaces for facts, packages and command execution.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config_engine.schema import CommandOutcome

logger = logging.getLogger(__name__)


class FactProvider(ABC):
    """Resolves host facts such as a device's current MAC address."""

    @abstractmethod
    def get_macaddress(self, device: str) -> Optional[str]:
        """Return the MAC address of a device, or None if unknown."""
        pass


class CommandRunner(ABC):
    """Runs the connection-management tool and reports exit status."""

    @abstractmethod
    def run(
        self,
        command: list[str],
        timeout: Optional[float] = None
    ) -> CommandOutcome:
        """Run a command to completion.

        Returns:
            CommandOutcome with return code, combined output and timeout flag
        """
        pass


class PackageEnsurer(ABC):
    """Installs a named package if it is absent."""

    @abstractmethod
    def ensure(self, package: str) -> None:
        """Make sure a package is installed.

        Raises:
            PackageError: If the package cannot be installed
        """
        pass
