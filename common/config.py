"""Configuration management for filedock."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import DEFAULT_CONFIG_DIR, DEFAULT_DATABASE_NAME, UPLOAD_DEADLINE_SECONDS
from common.logging_config import get_logger

logger = get_logger(__name__)

STORE_BACKENDS = ("sqlite", "rest")


def default_config_path() -> Path:
    return Path.home() / DEFAULT_CONFIG_DIR / 'config.json'


class Config:
    """Manages engine and CLI configuration stored in a JSON file."""

    DEFAULT_CONFIG = {
        "upload_url": os.environ.get("FILEDOCK_UPLOAD_URL", ""),
        "upload_preset": os.environ.get("FILEDOCK_UPLOAD_PRESET", ""),
        "store_backend": os.environ.get("FILEDOCK_STORE_BACKEND", "sqlite"),
        "store_url": os.environ.get("FILEDOCK_STORE_URL", ""),
        "database_path": os.environ.get("FILEDOCK_DATABASE_PATH", ""),
        "owner_id": os.environ.get("FILEDOCK_OWNER_ID") or None,
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "upload_deadline_seconds": UPLOAD_DEADLINE_SECONDS,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.filedock/config.json)
        """
        self.config_path = Path(config_path)
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
            self.config_path = Path(tempfile.gettempdir()) / DEFAULT_CONFIG_DIR / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        config = self.DEFAULT_CONFIG.copy()
        if os.environ.get("FILEDOCK_STORE_KEY"):
            config['api_key'] = os.environ["FILEDOCK_STORE_KEY"]

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file unreadable, falling back to defaults [path={self.config_path}]: {e}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Could not back up config file: {copy_error}")
                return config

        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not write default config [path={self.config_path}]: {e}")
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config [path={self.config_path}]: {e}")

    def get_upload_url(self) -> str:
        """
        Get object-storage upload endpoint.

        Returns:
            Upload URL (e.g., "https://api.cloudinary.com/v1_1/demo/auto/upload"), may be empty
        """
        return (self.data.get('upload_url') or '').strip()

    def get_upload_preset(self) -> str:
        """
        Get the destination hint (upload preset) used for every transfer.

        Returns:
            Preset name, may be empty
        """
        return (self.data.get('upload_preset') or '').strip()

    def get_store_backend(self) -> str:
        backend = self.data.get('store_backend', 'sqlite')
        if backend not in STORE_BACKENDS:
            logger.warning(f"Unknown store backend '{backend}', using sqlite")
            return 'sqlite'
        return backend

    def get_store_url(self) -> str:
        return (self.data.get('store_url') or '').rstrip('/')

    def get_api_key(self) -> Optional[str]:
        """
        Get stored API key for the metadata store.

        Returns:
            API key string or None if not set
        """
        return self.data.get('api_key')

    def set_api_key(self, key: str) -> None:
        self.data['api_key'] = key
        self.save()

    def get_database_path(self) -> Path:
        """
        Get SQLite metadata database path.

        Returns:
            Configured path, or metadata.db next to the config file
        """
        configured = self.data.get('database_path')
        if configured:
            return Path(configured)
        return self.config_path.parent / DEFAULT_DATABASE_NAME

    def get_owner_id(self) -> Optional[str]:
        """
        Get the owner scope of the signed-in user.

        Returns:
            Owner identifier or None if nobody is signed in
        """
        return self.data.get('owner_id') or None

    def set_owner_id(self, owner_id: Optional[str]) -> None:
        self.data['owner_id'] = owner_id
        self.save()

    def get_timeout(self) -> int:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }

    def get_upload_deadline(self) -> Optional[float]:
        """
        Get the upper bound for a single upload, after which the unit is failed.

        Returns:
            Deadline in seconds, or None to wait indefinitely
        """
        value = self.data.get('upload_deadline_seconds', UPLOAD_DEADLINE_SECONDS)
        if value is None or value <= 0:
            return None
        return float(value)
