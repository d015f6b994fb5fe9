"""Configuration management for the SecureVault CLI."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_BACKOFF_MULTIPLIER
from common.logging_config import get_logger

logger = get_logger(__name__)

SETTINGS_KEYS = ("rest_base_url", "graphql_url", "app_base_url", "timeout", "upload_timeout", "max_concurrent_uploads")


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "download_dir": "downloads",
        "max_retries": DEFAULT_MAX_RETRIES,
        "retry_backoff_multiplier": DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.securevault/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.securevault' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("config root must be an object")
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (ValueError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file unreadable, resetting to defaults [backup={backup_path}]: {e}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Could not back up config file: {copy_error}")
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        self._write(config)
        return config

    def _write(self, data: dict) -> None:
        try:
            with open(self.config_path, 'w') as f:
                json.dump(data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config file {self.config_path}: {e}")

    def save(self) -> None:
        """Save current configuration to file."""
        self._write(self.data)

    def get_token(self) -> Optional[str]:
        """
        Get stored bearer token.

        Returns:
            Token string or None if not set
        """
        return self.data.get('token') or None

    def set_token(self, token: Optional[str]) -> None:
        """
        Set (or clear, with None) the bearer token and save to file.
        """
        if token:
            self.data['token'] = token
        else:
            self.data.pop('token', None)
        self.save()

    def get_download_dir(self) -> Path:
        return Path(self.data.get('download_dir', 'downloads')).expanduser()

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', DEFAULT_MAX_RETRIES),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', DEFAULT_RETRY_BACKOFF_MULTIPLIER),
        }

    def settings_overrides(self) -> dict:
        """Settings values stored in the file, which win over environment variables."""
        return {key: self.data[key] for key in SETTINGS_KEYS if self.data.get(key) is not None}
