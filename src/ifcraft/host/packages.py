"""Package presence ensurer for RPM based hosts."""
import logging

from ..config_engine.errors import PackageError
from .base import CommandRunner, PackageEnsurer

logger = logging.getLogger(__name__)


class RpmPackageEnsurer(PackageEnsurer):
    """Checks with ``rpm -q`` and installs with ``yum -y install``."""

    def __init__(self, runner: CommandRunner, installer: str = "yum"):
        self.runner = runner
        self.installer = installer
        self._present: set[str] = set()

    def ensure(self, package: str) -> None:
        if package in self._present:
            return

        query = self.runner.run(["rpm", "-q", package])
        if query.success:
            logger.debug(f"Package {package} already installed")
            self._present.add(package)
            return

        logger.info(f"Installing package {package}")
        install = self.runner.run([self.installer, "-y", "install", package])
        if not install.success:
            raise PackageError(
                f"Failed to install {package}: {install.describe()}",
                returncode=install.returncode,
                output=install.output,
            )
        self._present.add(package)
