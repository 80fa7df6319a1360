"""Console inventory loaded from YAML.

```yaml
console:
  host: 172.16.0.10
  username: root
  password_env: RAC_CONSOLE_PASSWORD
  prompt: "$"          # optional, learned at login otherwise

convergence:
  poll_interval: 30
  halt_on_timeout: false

users:
  - name: operator
    password: s3cret
    role: PowerUser
    enabled: true
    index: 3

root_credentials:
  password: calvin
  snmp_string: public
  modules:
    server: [1, 2]

networks:
  server:
    mode: dhcp
    slots: [1, 2, 3]
  switch:
    mode: static
    slots:
      1: {ip_address: 172.16.0.21, subnet: 255.255.255.0, gateway: 172.16.0.1}
```
"""
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from ..console import ConsoleConfig, Transport, create_transport
from ..errors import InventoryError
from ..models import DhcpAddressing, NetworkTarget, StaticAddressing, UserAccountSpec
from .settings import ConvergenceSettings

logger = logging.getLogger(__name__)

NETWORK_MODES = ("dhcp", "static")


class ConsoleInventory:
    """Console connection, users and network batches from one YAML file."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get("RAC_CONSOLE_CONFIG") or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the rac.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "rac.yaml",
            Path.cwd() / "rac.yaml",
            Path.home() / ".config" / "rac-console" / "rac.yaml",
            Path("/etc/rac-console/rac.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find rac.yaml. Create one in ./configs/rac.yaml"
        )

    def _load_config(self) -> None:
        """Load and validate the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        if not isinstance(self._config, dict):
            raise InventoryError(f"{self.config_path}: top level must be a mapping")
        if "host" not in self._config.get("console", {}):
            raise InventoryError(f"{self.config_path}: console.host is required")

        # Fail early on malformed sections
        self.get_users()
        self.get_network_targets()

    # === Console ===

    def get_console_config(self) -> ConsoleConfig:
        settings = dict(self._config["console"])
        settings.pop("protocol", None)
        return ConsoleConfig(**settings)

    def create_transport(self) -> Transport:
        return create_transport(self._config["console"])

    def get_convergence_settings(self) -> ConvergenceSettings:
        """Inventory settings layered over environment defaults."""
        base = ConvergenceSettings.from_env()
        overrides = self._config.get("convergence") or {}
        merged = {**vars(base), **overrides}
        try:
            return ConvergenceSettings.from_dict(merged)
        except (TypeError, ValueError) as e:
            raise InventoryError(f"Invalid convergence settings: {e}")

    # === Users ===

    def get_users(self) -> list[UserAccountSpec]:
        users = []
        for entry in self._config.get("users") or []:
            try:
                users.append(UserAccountSpec(
                    name=entry["name"],
                    password=str(entry["password"]),
                    role=entry.get("role", "None"),
                    enabled=entry.get("enabled", True),
                    index=int(entry["index"]),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise InventoryError(f"Invalid user entry {entry!r}: {e}")
        return users

    def get_root_credentials(self) -> Optional[dict[str, Any]]:
        """Root credential block, or None when the inventory has none."""
        creds = self._config.get("root_credentials")
        if not creds:
            return None
        if "password" not in creds:
            raise InventoryError("root_credentials.password is required")
        return {
            "password": str(creds["password"]),
            "snmp_string": creds.get("snmp_string"),
            "modules": {
                module_type: [str(slot) for slot in slots]
                for module_type, slots in (creds.get("modules") or {}).items()
            },
        }

    # === Networks ===

    def get_module_types(self) -> list[str]:
        return list((self._config.get("networks") or {}).keys())

    def get_network_targets(self, module_type: Optional[str] = None) -> list[NetworkTarget]:
        """Targets for one module type, or for every batch in file order."""
        networks = self._config.get("networks") or {}
        if module_type is not None and module_type not in networks:
            raise KeyError(f"Unknown module type: {module_type}")

        targets = []
        for name, batch in networks.items():
            if module_type is not None and name != module_type:
                continue
            targets.extend(self._parse_batch(name, batch or {}))
        return targets

    def _parse_batch(self, module_type: str, batch: dict) -> list[NetworkTarget]:
        mode = str(batch.get("mode", "")).lower()
        if mode not in NETWORK_MODES:
            raise InventoryError(
                f"Invalid mode for {module_type}: {mode!r}. Must be 'dhcp' or 'static'"
            )

        slots = batch.get("slots") or []
        if mode == "dhcp":
            if isinstance(slots, dict):
                slots = list(slots.keys())
            return [
                NetworkTarget(module_type, str(slot), DhcpAddressing())
                for slot in slots
            ]

        if not isinstance(slots, dict):
            raise InventoryError(
                f"Static slots for {module_type} must map slot -> address settings"
            )
        targets = []
        for slot, network in slots.items():
            if not isinstance(network, dict):
                raise InventoryError(
                    f"Invalid static settings for {module_type}-{slot}: "
                    f"expected ip_address/subnet/gateway mapping, got {network!r}"
                )
            try:
                desired = StaticAddressing(
                    ip_address=network["ip_address"],
                    subnet_mask=network.get("subnet") or network["subnet_mask"],
                    gateway=network["gateway"],
                )
            except (KeyError, TypeError) as e:
                raise InventoryError(f"Invalid static settings for {module_type}-{slot}: {e}")
            targets.append(NetworkTarget(module_type, str(slot), desired))
        return targets
