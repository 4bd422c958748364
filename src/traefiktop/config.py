"""
Configuration management for traefiktop.

This module provides configuration file support with YAML format,
user preferences, and default settings.

Features:
- YAML configuration file at ~/.config/traefiktop/config.yaml
- Default values with user overrides
- Keybinding customization
- Default Traefik endpoint and credentials
- Refresh cadence, sort mode and ignore patterns
- Log location override

Architecture:
- ConfigManager: Main configuration interface
- Merges user config with defaults
- Provides typed access to settings
- Handles missing/invalid config gracefully
"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class KeyBindings:
    """Customizable key bindings."""
    quit: str = "q"
    refresh: str = "r"
    search: str = "/"
    sort: str = "s"


@dataclass
class ApiConfig:
    """Traefik API connection settings."""
    url: str = ""
    basic_auth: Optional[str] = None  # "user:password"
    insecure: bool = False
    timeout: float = 5.0  # seconds


@dataclass
class UIConfig:
    """UI-related configuration."""
    refresh_interval: float = 10.0  # seconds between automatic fetch cycles
    sort_mode: str = "dead"  # dead, name
    ignore: List[str] = field(default_factory=list)


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file_path: Optional[str] = None  # None for default
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class AppConfig:
    """Main application configuration."""
    keybindings: KeyBindings = field(default_factory=KeyBindings)
    api: ApiConfig = field(default_factory=ApiConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LogConfig = field(default_factory=LogConfig)


class ConfigManager:
    """Configuration manager with YAML file support."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".config" / "traefiktop"
        self.config_file = self.config_dir / "config.yaml"
        self._config: AppConfig = AppConfig()

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create config directory {self.config_dir}: {e}")

        self.load_config()

    def load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r') as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise ValueError("top-level YAML value must be a mapping")

                self._config = self._merge_configs(AppConfig(), user_config)
                logger.debug(f"Loaded configuration from {self.config_file}")
            else:
                self.save_config()
                logger.info(f"Created default configuration at {self.config_file}")
        except Exception as e:
            logger.error(f"Failed to load config: {e}, using defaults")
            self._config = AppConfig()

    def save_config(self) -> None:
        """Save current configuration to YAML file."""
        try:
            with open(self.config_file, 'w') as f:
                yaml.safe_dump(asdict(self._config), f, default_flow_style=False, indent=2)
            logger.debug(f"Saved configuration to {self.config_file}")
        except Exception as e:
            logger.error(f"Failed to save config: {e}")

    def get_config(self) -> AppConfig:
        """Get current configuration."""
        return self._config

    def _merge_configs(self, default: AppConfig, user: Dict[str, Any]) -> AppConfig:
        """Merge user config with defaults."""
        for section in ('keybindings', 'api', 'ui', 'logging'):
            if isinstance(user.get(section), dict):
                self._merge_dataclass(getattr(default, section), user[section])
        return default

    def _merge_dataclass(self, obj: Any, updates: Dict[str, Any]) -> None:
        """Merge updates into dataclass object."""
        for key, value in updates.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

    def get_key_binding(self, action: str) -> str:
        """Get key binding for action."""
        return getattr(self._config.keybindings, action, '')

    def is_key_binding(self, key: str, action: str) -> bool:
        """Check if key matches the binding for action."""
        binding = self.get_key_binding(action)
        return bool(binding) and key.lower() == binding.lower()

    def get_log_level(self) -> str:
        """Get configured log level."""
        return self._config.logging.level.upper()

    def get_custom_log_path(self) -> Optional[str]:
        """Get custom log file path if configured."""
        return self._config.logging.file_path

    def get_refresh_interval(self) -> float:
        """Get automatic refresh interval in seconds (default if the value is not positive)."""
        default = UIConfig().refresh_interval
        try:
            interval = float(self._config.ui.refresh_interval)
        except (TypeError, ValueError):
            interval = 0.0
        if interval <= 0:
            logger.warning(f"Invalid ui.refresh_interval {self._config.ui.refresh_interval!r}, using {default}s")
            return default
        return interval

    def get_api_url(self) -> str:
        return self._config.api.url

    def get_basic_auth(self) -> Optional[str]:
        return self._config.api.basic_auth

    def get_ignore_patterns(self) -> List[str]:
        return list(self._config.ui.ignore or [])


# Global config instance
config_manager = ConfigManager()
