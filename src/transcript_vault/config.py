"""
Configuration loading for the transcript_vault package.

Loads the storage YAML configuration with sensible defaults and supports
environment variable overrides.
"""

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


CONFIG_FILENAME = "storage_config.yaml"

# Default configuration values (fallback if file not found)
DEFAULT_STORAGE_CONFIG = {
    "storage": {
        "root": "./transcript_store",
        "blob_dir": "blobs",
        "database": "metadata.duckdb",
        "key_prefix": "transcripts",
        "content_type": "application/json",
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
    "cleanup": {
        "orphan_min_age_days": 30,
    },
}

# Environment variable -> config key path
ENV_OVERRIDES = {
    "TRANSCRIPT_VAULT_ROOT": ("storage", "root"),
    "TRANSCRIPT_VAULT_DATABASE": ("storage", "database"),
    "TRANSCRIPT_VAULT_KEY_PREFIX": ("storage", "key_prefix"),
    "TRANSCRIPT_VAULT_LOG_LEVEL": ("logging", "level"),
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary
        override: Override dictionary (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_file(file_path: Path) -> Dict[str, Any]:
    """
    Load a YAML file and return its contents as a dictionary.

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If file is not valid YAML
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    return config if config is not None else {}


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Apply TRANSCRIPT_VAULT_* environment variables to a config dict in place."""
    environ = os.environ if environ is None else environ
    for variable, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            config.setdefault(section, {})[key] = value
    return config


def load_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load storage configuration from YAML file with fallback to defaults.

    Args:
        config_dir: Directory containing storage_config.yaml (default: ./config)

    Returns:
        Configuration dictionary

    Example:
        >>> config = load_config(Path("config"))
        >>> prefix = config["storage"]["key_prefix"]
    """
    config_dir = Path(config_dir) if config_dir is not None else Path("config")
    config_path = config_dir / CONFIG_FILENAME

    try:
        user_config = load_yaml_file(config_path)
        config = deep_merge(copy.deepcopy(DEFAULT_STORAGE_CONFIG), user_config)
    except FileNotFoundError:
        config = copy.deepcopy(DEFAULT_STORAGE_CONFIG)

    return apply_env_overrides(config)


@dataclass(frozen=True)
class StorageSettings:
    """Resolved storage settings."""
    root: Path
    blob_root: Path
    database_path: Path
    key_prefix: str
    content_type: str
    orphan_min_age_days: int

    @classmethod
    def from_config(cls, config: Dict[str, Any], root: Optional[Path] = None) -> "StorageSettings":
        """
        Resolve settings from a configuration dictionary.

        Relative blob and database paths are taken relative to the store root.

        Args:
            config: Configuration as returned by load_config
            root: Store root overriding the configured one
        """
        storage = config.get("storage", {})
        cleanup = config.get("cleanup", {})

        store_root = Path(root) if root is not None else Path(storage.get("root", "./transcript_store"))

        blob_root = Path(storage.get("blob_dir", "blobs"))
        if not blob_root.is_absolute():
            blob_root = store_root / blob_root

        database_path = Path(storage.get("database", "metadata.duckdb"))
        if not database_path.is_absolute():
            database_path = store_root / database_path

        return cls(
            root=store_root,
            blob_root=blob_root,
            database_path=database_path,
            key_prefix=str(storage.get("key_prefix", "transcripts")),
            content_type=str(storage.get("content_type", "application/json")),
            orphan_min_age_days=int(cleanup.get("orphan_min_age_days", 30)),
        )


class Config:
    """
    Configuration manager for transcript_vault.

    Lazily loads the storage configuration and resolves StorageSettings.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else Path("config")
        self._storage_config = None

    @property
    def storage(self) -> Dict[str, Any]:
        """Get storage configuration (lazy load)."""
        if self._storage_config is None:
            self._storage_config = load_config(self.config_dir)
        return self._storage_config

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._storage_config = None

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get a nested configuration value by key path.

        Example:
            >>> Config().get("storage", "key_prefix")
            'transcripts'
        """
        value = self.storage
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def settings(self, root: Optional[Path] = None) -> StorageSettings:
        return StorageSettings.from_config(self.storage, root=root)
