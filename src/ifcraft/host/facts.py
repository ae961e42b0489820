"""Host fact providers."""
import logging
from pathlib import Path
from typing import Optional

from .base import FactProvider

logger = logging.getLogger(__name__)

SYSFS_NET = Path("/sys/class/net")


class SysfsFactProvider(FactProvider):
    """Reads live MAC addresses from /sys/class/net/<device>/address."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else SYSFS_NET

    def get_macaddress(self, device: str) -> Optional[str]:
        path = self.root / device / "address"
        try:
            value = path.read_text().strip()
        except OSError:
            logger.debug(f"No MAC fact for {device} at {path}")
            return None
        return value or None


class StaticFactProvider(FactProvider):
    """Facts supplied up front, e.g. from the inventory file.

    Keys may be plain device names (``eth0``) or the fact name
    form (``macaddress_eth0``).
    """

    def __init__(self, facts: Optional[dict[str, str]] = None):
        self._macs: dict[str, str] = {}
        for key, value in (facts or {}).items():
            device = key[len("macaddress_"):] if key.startswith("macaddress_") else key
            self._macs[device] = value

    def get_macaddress(self, device: str) -> Optional[str]:
        return self._macs.get(device)


class ChainedFactProvider(FactProvider):
    """Asks each provider in turn and returns the first answer."""

    def __init__(self, *providers: FactProvider):
        self.providers = providers

    def get_macaddress(self, device: str) -> Optional[str]:
        for provider in self.providers:
            mac = provider.get_macaddress(device)
            if mac:
                return mac
        return None
