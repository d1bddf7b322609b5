"""
Configuration management for hours.

This module handles user configuration, data directories, and settings.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, cast

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)

DB_FILE_NAME = "hours.db"
LOG_FILE_NAME = "hours.log"


class ConfigManager:
    """Manages hours configuration and data directories."""

    def __init__(self, config_dir: Optional[Path] = None, data_dir: Optional[Path] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_dir: Override for the configuration directory
            data_dir: Override for the default data directory
        """
        self.app_name = "hours"
        self.config_dir = Path(config_dir or user_config_dir(self.app_name))
        self.data_dir = Path(data_dir or user_data_dir(self.app_name))
        self.config_file = self.config_dir / "config.json"

        # Ensure directories exist
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Default configuration
        self.default_config: Dict[str, Any] = {
            "data_directory": str(self.data_dir),
            "min_log_duration_secs": 60,
            "stale_task_days": 14,
            "task_log_list_limit": 50,
            "report_num_days_threshold": 7,
            "active_template": "{{task}} ({{time}})",
            "colors": {
                "tracking": "bold green",
                "header": "bold cyan",
                "footer": "bold",
                "info": "green",
                "error": "red",
                "dim": "dim",
            },
        }

        # Load existing configuration
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, creating default if it doesn't exist."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    loaded_config = json.load(f)

                # Merge with defaults to ensure all keys exist
                config = copy.deepcopy(self.default_config)
                config.update(loaded_config)
                return config

            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Could not load config file %s: %s", self.config_file, e)
                logger.warning("Using default configuration")

        # Create default config file
        self._save_config(self.default_config)
        return copy.deepcopy(self.default_config)

    def _save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, "w") as f:
                json.dump(config, f, indent=2, sort_keys=True)
        except IOError as e:
            logger.warning("Could not save config file %s: %s", self.config_file, e)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key, with optional default."""
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by key."""
        keys = key.split(".")
        config = self._config

        # Navigate to the parent dictionary
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

        self._save_config(self._config)

    def all(self) -> Dict[str, Any]:
        """Get a copy of the whole configuration."""
        return copy.deepcopy(self._config)

    def get_data_dir(self) -> Path:
        """Get the data directory path."""
        data_dir_str = self.get("data_directory", str(self.data_dir))
        return Path(data_dir_str).expanduser()

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self.config_dir

    def get_db_path(self) -> Path:
        """Get the default database file path."""
        return self.get_data_dir() / DB_FILE_NAME

    def get_log_file(self) -> Path:
        """Get the log file path."""
        return self.get_data_dir() / LOG_FILE_NAME

    def get_min_log_duration_secs(self) -> int:
        """Get the minimum duration a finished entry needs to be saved."""
        return cast(int, self.get("min_log_duration_secs", 60))

    def get_stale_task_days(self) -> int:
        """Get the number of idle days after which a task counts as stale."""
        return cast(int, self.get("stale_task_days", 14))

    def get_task_log_list_limit(self) -> int:
        """Get the number of entries shown in the interactive log list."""
        return cast(int, self.get("task_log_list_limit", 50))

    def get_report_num_days_threshold(self) -> int:
        """Get the maximum number of days a report may span."""
        return cast(int, self.get("report_num_days_threshold", 7))

    def get_active_template(self) -> str:
        """Get the default template for the active command."""
        return cast(str, self.get("active_template", "{{task}} ({{time}})"))

    def get_color(self, element: str) -> str:
        """Get color for a UI element."""
        return cast(str, self.get(f"colors.{element}", "white"))

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = copy.deepcopy(self.default_config)
        self._save_config(self._config)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
