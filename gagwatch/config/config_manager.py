"""
Configuration management for GAG Drop Watch.
"""
import os
import yaml
import json
from typing import Any, Dict, Optional
from pathlib import Path

from ..models.interfaces import IConfigManager


class ConfigManager(IConfigManager):
    """Configuration manager implementation."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager."""
        self._config: Dict[str, Any] = {}
        self._config_path = config_path
        self._load_default_config()
        self._load_environment_variables()

        if config_path:
            self.load_config(config_path)

    def _load_default_config(self) -> None:
        """Load default configuration values."""
        self._config = {
            # Discord settings
            'discord': {
                'token': '',
                'admin_id': '',
                'sync_commands': True
            },

            # Stock feed settings
            'feed': {
                'url': 'wss://gagstock.gleeze.com',
                'keepalive_interval': 10,   # seconds between "ping" frames
                'reconnect_delay': 3        # fixed, no backoff growth
            },

            # Notification settings
            'notifications': {
                'interval_minutes': 5,
                'cooldown_hours': 24,
                'send_timeout': 5.0,
                'registration_cooldown': 300,  # 5 minutes
                'timezone': 'Asia/Manila',
                'brand_name': 'GAG DROP WATCH'
            },

            # Registration web interface
            'web': {
                'interface_url': ''
            },

            # Database settings
            'database': {
                'url': 'sqlite:///data/gagwatch.db'
            },

            # Logging settings
            'logging': {
                'level': 'INFO',
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'file_path': 'gagwatch.log',
                'max_file_size': 10485760,  # 10MB
                'backup_count': 5
            },

            # Health check server
            'health_check': {
                'enabled': True,
                'host': '127.0.0.1',
                'port': 8080
            }
        }

    def _load_environment_variables(self) -> None:
        """Load configuration from environment variables."""
        env_mappings = {
            'DISCORD_TOKEN': 'discord.token',
            'ADMIN_ID': 'discord.admin_id',
            'FEED_URL': 'feed.url',
            'WEB_INTERFACE_URL': 'web.interface_url',
            'DATABASE_URL': 'database.url',
            'LOG_LEVEL': 'logging.level',
            'NOTIFICATION_TIMEZONE': 'notifications.timezone'
        }

        for env_var, config_key in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                # Ids are numeric strings and must stay strings
                if config_key == 'discord.admin_id':
                    self._set_nested_value(config_key, value, convert=False)
                else:
                    self._set_nested_value(config_key, value)

    def _set_nested_value(self, key: str, value: Any, convert: bool = True) -> None:
        """Set a nested configuration value using dot notation."""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        # Convert string values to appropriate types
        if convert and isinstance(value, str):
            if value.lower() in ('true', 'false'):
                value = value.lower() == 'true'
            elif value.isdigit():
                value = int(value)
            elif value.replace('.', '').isdigit() and value.count('.') == 1:
                try:
                    value = float(value)
                except ValueError:
                    pass

        config[keys[-1]] = value

    def _get_nested_value(self, key: str, default: Any = None) -> Any:
        """Get a nested configuration value using dot notation."""
        keys = key.split('.')
        config = self._config

        try:
            for k in keys:
                config = config[k]
            return config
        except (KeyError, TypeError):
            return default

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._get_nested_value(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._set_nested_value(key, value)

    def load_config(self, config_path: str) -> None:
        """Load configuration from file."""
        path = Path(config_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix.lower() in ('.yml', '.yaml'):
                    file_config = yaml.safe_load(f) or {}
                elif path.suffix.lower() == '.json':
                    file_config = json.load(f)
                else:
                    raise ValueError(f"Unsupported configuration file format: {path.suffix}")

            self._merge_config(self._config, file_config)
            self._config_path = config_path

        except Exception as e:
            raise RuntimeError(f"Failed to load configuration from {config_path}: {e}")

    def save_config(self, config_path: str) -> None:
        """Save configuration to file."""
        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, 'w', encoding='utf-8') as f:
                if path.suffix.lower() in ('.yml', '.yaml'):
                    yaml.dump(self._config, f, default_flow_style=False, indent=2)
                elif path.suffix.lower() == '.json':
                    json.dump(self._config, f, indent=2)
                else:
                    raise ValueError(f"Unsupported configuration file format: {path.suffix}")

        except Exception as e:
            raise RuntimeError(f"Failed to save configuration to {config_path}: {e}")

    def _merge_config(self, base: dict, override: dict) -> None:
        """Recursively merge configuration dictionaries."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get_feed_config(self) -> dict:
        """Get stock feed configuration."""
        return self.get('feed', {})

    def get_notification_config(self) -> dict:
        """Get notification-specific configuration."""
        return self.get('notifications', {})

    def get_logging_config(self) -> dict:
        """Get logging-specific configuration."""
        return self.get('logging', {})

    def get_database_path(self) -> str:
        """Resolve the SQLite file path from the database URL."""
        url = str(self.get('database.url', ''))
        if url.startswith('sqlite:///'):
            return url[len('sqlite:///'):]
        return url

    def validate_config(self) -> bool:
        """Validate required configuration values."""
        required_keys = [
            'discord.token',
            'database.url',
            'feed.url'
        ]

        missing_keys = []
        for key in required_keys:
            if not self.get(key):
                missing_keys.append(key)

        if missing_keys:
            raise ValueError(f"Missing required configuration keys: {missing_keys}")

        return True


# Global configuration instance
config = ConfigManager()
