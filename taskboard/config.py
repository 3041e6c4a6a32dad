"""
Configuration management for taskboard.

Loads settings from config.ini with environment variable overrides.
"""

import configparser
import os
from pathlib import Path
from typing import Any, Dict, Optional

from taskboard.logging_config import get_logger
from taskboard.models import RetryPolicy

logger = get_logger(__name__)

DEFAULT_DATABASE_URL = f"sqlite+aiosqlite:///{Path.home() / '.taskboard' / 'taskboard.db'}"


class Config:
    """Application configuration manager."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config file, defaults to ~/.taskboard/config.ini
        """
        self.config_path = config_path or self._default_config_path()
        self._config = configparser.ConfigParser()
        self._load()

    def _default_config_path(self) -> Path:
        """Get default config path."""
        return Path.home() / ".taskboard" / "config.ini"

    def _load(self):
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                self._config.read(self.config_path)
                logger.info(f"Loaded configuration from {self.config_path}")
            except configparser.Error as e:
                logger.warning(f"Failed to read config file: {e}. Using defaults.")
        else:
            logger.debug(f"Config file not found at {self.config_path}. Using defaults.")

    def get_database_config(self) -> Dict[str, Any]:
        """
        Get database configuration with environment overrides.

        Environment variables take precedence over config file:
        - TASKBOARD_DATABASE_URL
        - TASKBOARD_DATABASE_ECHO

        Returns:
            Dictionary with database configuration
        """
        echo_env = os.getenv('TASKBOARD_DATABASE_ECHO', '').lower()
        config = {
            'url': os.getenv('TASKBOARD_DATABASE_URL') or
                   self._config.get('database', 'url', fallback=DEFAULT_DATABASE_URL),
            'echo': (
                echo_env == 'true'
                if echo_env
                else self._config.getboolean('database', 'echo', fallback=False)
            ),
        }

        logger.debug(f"Database config: url={config['url']}, echo={config['echo']}")

        return config

    def get_relocation_config(self) -> RetryPolicy:
        """
        Get transaction retry settings with environment overrides.

        Environment variables take precedence over config file:
        - TASKBOARD_MAX_ATTEMPTS
        - TASKBOARD_RETRY_BACKOFF
        - TASKBOARD_MAX_BACKOFF
        - TASKBOARD_TRANSACTION_TIMEOUT

        Returns:
            Validated RetryPolicy

        Raises:
            pydantic.ValidationError: If a value is malformed or out of range
        """
        policy = RetryPolicy(
            max_attempts=os.getenv('TASKBOARD_MAX_ATTEMPTS') or
                self._config.get('relocation', 'max_attempts', fallback='3'),
            retry_backoff=os.getenv('TASKBOARD_RETRY_BACKOFF') or
                self._config.get('relocation', 'retry_backoff', fallback='0.05'),
            max_backoff=os.getenv('TASKBOARD_MAX_BACKOFF') or
                self._config.get('relocation', 'max_backoff', fallback='1.0'),
            transaction_timeout=os.getenv('TASKBOARD_TRANSACTION_TIMEOUT') or
                self._config.get('relocation', 'transaction_timeout', fallback='10.0'),
        )

        logger.debug(f"Relocation config: max_attempts={policy.max_attempts}, "
                     f"retry_backoff={policy.retry_backoff}, "
                     f"transaction_timeout={policy.transaction_timeout}")

        return policy
