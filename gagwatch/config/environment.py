"""
Environment-specific configuration handling.
"""
import os
import sys
import logging
from typing import Optional, Dict, Any
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment:
    """Environment configuration handler."""

    @staticmethod
    def get_env() -> str:
        """Get current environment (development, production, testing)."""
        return os.getenv('ENVIRONMENT', 'development').lower()

    @staticmethod
    def is_production() -> bool:
        """Check if running in production environment."""
        return Environment.get_env() == 'production'

    @staticmethod
    def get_logs_dir() -> Path:
        """Get logs directory path."""
        logs_dir = os.getenv('LOGS_DIR', 'logs')
        path = Path(logs_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @staticmethod
    def get_config_dir() -> Path:
        """Get configuration directory path."""
        config_dir = os.getenv('CONFIG_DIR', 'config')
        path = Path(config_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @staticmethod
    def get_discord_token() -> Optional[str]:
        """Get Discord bot token from environment."""
        return os.getenv('DISCORD_TOKEN')

    @staticmethod
    def get_log_level() -> str:
        """Get logging level from environment."""
        return os.getenv('LOG_LEVEL', 'INFO').upper()

    @staticmethod
    def get_health_check_config() -> Dict[str, Any]:
        """Get health check configuration."""
        enabled = os.getenv('HEALTH_CHECK_ENABLED', 'true').lower() in ('true', '1', 'yes')

        try:
            port = int(os.getenv('HEALTH_CHECK_PORT', '8080'))
        except ValueError:
            port = 8080

        return {
            'enabled': enabled,
            'host': os.getenv('HEALTH_CHECK_HOST', '127.0.0.1'),
            'port': port
        }

    @staticmethod
    def get_notification_config() -> Dict[str, Any]:
        """Get notification timing overrides from environment."""
        overrides: Dict[str, Any] = {}

        try:
            if os.getenv('NOTIFICATION_SEND_TIMEOUT'):
                overrides['send_timeout'] = float(os.getenv('NOTIFICATION_SEND_TIMEOUT'))
        except ValueError:
            pass

        if os.getenv('NOTIFICATION_TIMEZONE'):
            overrides['timezone'] = os.getenv('NOTIFICATION_TIMEZONE')

        return overrides

    @staticmethod
    def setup_basic_logging():
        """Set up basic logging before config is loaded."""
        log_level = Environment.get_log_level()
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format=log_format,
            handlers=[logging.StreamHandler(sys.stdout)]
        )

        logger = logging.getLogger(__name__)
        logger.info(f"Basic logging initialized at level {log_level}")
