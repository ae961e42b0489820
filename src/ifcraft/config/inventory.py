"""Host interface inventory loaded from YAML configuration."""
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .schema import EngineSettings

logger = logging.getLogger(__name__)


class HostInventory:
    """Manages the interface inventory of one host.

    Every interface names the kind preset it uses; ``defaults`` are
    merged into each interface that does not set the key itself.
    Interfaces can be grouped for partial runs:

    ```yaml
    settings:
      scripts_dir: /etc/sysconfig/network-scripts
      command_timeout: 30

    defaults:
      userctl: false

    facts:
      macaddress_eth0: "52:54:00:12:34:56"

    interfaces:
      eth0:
        kind: static
        ipaddress: [10.0.0.5, 10.0.0.6]
        netmask: [255.255.255.0, 255.255.255.0]
      eth1:
        kind: bond_slave
        master: bond0

    groups:
      uplinks:
        - eth0
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the interfaces.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "interfaces.yaml",
            Path.cwd() / "interfaces.yaml",
            Path.home() / ".config" / "ifcraft" / "interfaces.yaml",
            Path("/etc/ifcraft/interfaces.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find interfaces.yaml. Create one in ./configs/interfaces.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        interfaces = self._config.get("interfaces") or {}
        if not isinstance(interfaces, dict):
            raise ValueError(
                f"{self.config_path}: 'interfaces' must be a mapping of name to settings"
            )

        defaults = self._config.get("defaults") or {}
        for name, config in interfaces.items():
            if config is None:
                config = interfaces[name] = {}
            # Merge defaults
            for key, value in defaults.items():
                if key not in config:
                    config[key] = value
            config.setdefault("name", name)
            if "kind" not in config:
                raise ValueError(f"{self.config_path}: interface '{name}' has no kind")

        self._config["interfaces"] = interfaces
        self._validate_groups()

    @property
    def settings(self) -> EngineSettings:
        """Settings from the file layered over the environment."""
        return EngineSettings.from_env().merged(self._config.get("settings"))

    @property
    def facts(self) -> dict[str, str]:
        return dict(self._config.get("facts") or {})

    def get_interface_names(self) -> list[str]:
        """Get all interface names, in file order."""
        return list(self._config["interfaces"].keys())

    def get_interface_config(self, name: str) -> dict[str, Any]:
        """Get a copy of the merged config for an interface.

        Raises:
            KeyError: If the interface is not in the inventory
        """
        interfaces = self._config["interfaces"]
        if name not in interfaces:
            raise KeyError(f"Unknown interface: {name}")
        return dict(interfaces[name])

    def get_interfaces(self, names: Optional[list[str]] = None) -> list[tuple[str, dict]]:
        """Get (kind, params) pairs for the given or all interfaces."""
        result = []
        for name in names or self.get_interface_names():
            config = self.get_interface_config(name)
            kind = config.pop("kind")
            result.append((kind, config))
        return result

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference known interfaces."""
        groups = self._config.get("groups") or {}
        interfaces = self._config["interfaces"]

        for group_name, members in groups.items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of interface names")
                continue
            for name in members:
                if name not in interfaces:
                    logger.warning(
                        f"Group '{group_name}' references unknown interface: {name}"
                    )

    def get_group_names(self) -> list[str]:
        """Get list of all group names."""
        return list((self._config.get("groups") or {}).keys())

    def get_group_members(self, group_name: str) -> list[str]:
        """Get interface names in a group.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self._config.get("groups") or {}
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        return list(groups[group_name])

    def get_interface_groups(self, name: str) -> list[str]:
        """Get all groups an interface belongs to."""
        return [
            group_name
            for group_name, members in (self._config.get("groups") or {}).items()
            if isinstance(members, list) and name in members
        ]
