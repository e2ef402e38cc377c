"""Runtime settings loaded from YAML with environment overrides."""
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV = "CRMSYNC_CONFIG"

# Environment variable -> settings key
ENV_OVERRIDES = {
    "CRMSYNC_CRM_BINARY": "crm_binary",
    "CRMSYNC_CIB_SHADOW": "cib_shadow",
}


@dataclass
class Settings:
    """Settings for talking to the cluster."""
    crm_binary: str = "crm"
    crm_attribute_binary: str = "crm_attribute"
    cib_shadow: Optional[str] = None
    wait_for_ready: bool = True
    ready_timeout: float = 120
    ready_interval: float = 2
    tempfile_prefix: str = "crmsync_update"
    audit_log_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Settings":
        """
        Load settings from YAML, then apply environment overrides.

        Args:
            path: Explicit settings file; searched for when omitted

        Returns:
            Settings (defaults when no file exists)
        """
        config_path = Path(path) if path else find_settings_file()

        data: dict[str, Any] = {}
        if config_path is not None:
            logger.debug(f"Loading settings from {config_path}")
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Settings file {config_path} must contain a mapping")

        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                data[key] = value

        return cls.from_dict(data)


def find_settings_file() -> Optional[Path]:
    """Find the crmsync.yaml settings file, if any."""
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)

    search_paths = [
        Path.cwd() / "crmsync.yaml",
        Path.home() / ".config" / "crmsync" / "crmsync.yaml",
        Path("/etc/crmsync/crmsync.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None
