"""
Configuration Management System

This module provides centralized configuration management using YAML and JSON files.
Supports dot-notation access, environment overrides and reloading.
"""

import os
import yaml
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Environment variable -> config key
ENV_OVERRIDES = {
    "TRACKER_HOST": "tracker.server.host",
    "TRACKER_PORT": "tracker.server.port",
    "TRACKER_LOG_LEVEL": "tracker.logging.level",
    "TRACKER_CORS_ORIGINS": "tracker.server.corsOrigins",
}


class ConfigManager:
    """
    Manage application configuration from YAML and JSON files

    Provides:
    - Load all config files on startup
    - Dot notation access: config.get('tracker.names.minLength')
    - Environment variable overrides (TRACKER_*)
    - Reload capability
    - Default values for missing keys
    """

    def __init__(self, config_dir: str = None, environ: Dict[str, str] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to config directory (default: backend/config)
            environ: Environment mapping for overrides (default: os.environ)
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            # Find config dir relative to this file
            self.config_dir = Path(__file__).parent.parent / "config"

        self.environ = os.environ if environ is None else environ
        self.configs: Dict[str, Any] = {}
        self._load_all_configs()

    def _load_all_configs(self):
        """Load all configuration files from config directory"""
        if not self.config_dir.exists():
            logger.warning("[CONFIG] Config directory not found: %s", self.config_dir)
        else:
            # Load YAML configs
            for yaml_file in sorted(self.config_dir.glob("*.yaml")):
                try:
                    with open(yaml_file, 'r') as f:
                        self.configs[yaml_file.stem] = yaml.safe_load(f) or {}
                    logger.info("[CONFIG] Loaded: %s", yaml_file.name)
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("[CONFIG] Failed to load %s: %s", yaml_file.name, e)

            # Load JSON configs
            for json_file in sorted(self.config_dir.glob("*.json")):
                try:
                    with open(json_file, 'r') as f:
                        self.configs[json_file.stem] = json.load(f)
                    logger.info("[CONFIG] Loaded: %s", json_file.name)
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning("[CONFIG] Failed to load %s: %s", json_file.name, e)

        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Apply TRACKER_* environment variables on top of file values"""
        for env_key, config_key in ENV_OVERRIDES.items():
            raw = self.environ.get(env_key)
            if raw is None or raw == "":
                continue
            if env_key == "TRACKER_PORT":
                try:
                    value: Any = int(raw)
                except ValueError:
                    logger.warning(
                        "[CONFIG] Ignoring %s=%r: not an integer, keeping %s",
                        env_key, raw, self.get(config_key),
                    )
                    continue
            elif env_key == "TRACKER_CORS_ORIGINS":
                value = [origin.strip() for origin in raw.split(",") if origin.strip()]
            else:
                value = raw
            self.set(config_key, value)
            logger.debug("[CONFIG] %s overridden from %s", config_key, env_key)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot notation key

        Examples:
            config.get('tracker.names.minLength')
            config.get('tracker.server.port')

        Args:
            key: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.configs

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_server_config(self) -> Dict[str, Any]:
        """Get server configuration section"""
        return self.get('tracker.server', {}) or {}

    def get_registry_config(self) -> Dict[str, Any]:
        """Get ParticipantRegistry settings"""
        return {
            "minNameLength": self.get('tracker.names.minLength', 2),
            "maxNameLength": self.get('tracker.names.maxLength', 32),
            "maxMessageLength": self.get('tracker.notifications.maxLength', 500),
        }

    def get_delivery_config(self) -> Dict[str, Any]:
        """Get outbound delivery configuration section"""
        return self.get('tracker.delivery', {}) or {}

    def get_log_level(self) -> str:
        return str(self.get('tracker.logging.level', 'INFO')).upper()

    def reload(self):
        """Reload all configuration files"""
        logger.info("[CONFIG] Reloading configuration...")
        self.configs.clear()
        self._load_all_configs()

    def set(self, key: str, value: Any):
        """
        Set a configuration value (runtime only, not persisted)

        Args:
            key: Dot-separated key path
            value: Value to set
        """
        keys = key.split('.')
        config = self.configs

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value


_config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get the shared configuration instance"""
    global _config
    if _config is None:
        _config = ConfigManager()
    return _config
