"""Engine settings and the host interface inventory."""
from .schema import EngineSettings
from .inventory import HostInventory

__all__ = ["EngineSettings", "HostInventory"]
