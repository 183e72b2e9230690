"""
Logging configuration for GAG Drop Watch.
"""
import logging
import logging.handlers
import sys

from .environment import Environment
from .config_manager import config


def configure_logging() -> logging.Logger:
    """Configure logging based on environment and configuration."""
    log_config = config.get_logging_config()
    log_level_str = log_config.get('level', Environment.get_log_level())
    log_format = log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Convert string log level to logging constant
    try:
        log_level = getattr(logging, log_level_str.upper())
    except (AttributeError, TypeError):
        log_level = logging.INFO
        print(f"Invalid log level: {log_level_str}, using INFO")

    logs_dir = Environment.get_logs_dir()
    log_file = logs_dir / log_config.get('file_path', 'gagwatch.log')
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    max_bytes = log_config.get('max_file_size', 10485760)  # 10MB
    backup_count = log_config.get('backup_count', 5)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
    )
    file_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(file_handler)

    console_level = log_level
    if Environment.is_production():
        # In production, only show warnings and above in console
        console_level = max(log_level, logging.WARNING)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(console_handler)

    # discord.py and aiohttp are chatty at INFO
    logging.getLogger('discord').setLevel(max(log_level, logging.INFO))
    logging.getLogger('aiohttp').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized at level {log_level_str}")
    logger.info(f"Environment: {Environment.get_env()}")
    logger.info(f"Logs directory: {logs_dir}")

    return logger
