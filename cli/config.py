"""Configuration management for the ChunkRelay CLI."""

import json
import logging
import os
import shutil
from pathlib import Path

from common.constants import (
    CHUNK_SIZE_BYTES,
    CLIENT_TIMEOUT_SECONDS,
    DEFAULT_CONTAINER_NAME,
    DEFAULT_RELAY_PORT,
)

logger = logging.getLogger(__name__)


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "relay_scheme": "http",
        "relay_host": os.environ.get("RELAY_HOST", "localhost"),
        "relay_port": int(os.environ.get("RELAY_PORT", str(DEFAULT_RELAY_PORT))),
        "timeout": CLIENT_TIMEOUT_SECONDS,
        "max_retries": 3,
        "retry_base_delay": 1.0,
        "retry_backoff_multiplier": 2,
        "chunk_size": CHUNK_SIZE_BYTES,
        "max_consecutive_failures": 5,
        "default_container": DEFAULT_CONTAINER_NAME,
        "relay_to_container": True,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.chunkrelay/config.json)
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
            import tempfile
            self.config_path = Path(tempfile.gettempdir()) / '.chunkrelay' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Unreadable config {self.config_path} ({e}), backing up to {backup_path}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Could not back up config: {copy_error}")
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError as e:
                logger.warning(f"Could not write default config: {e}")
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config: {e}")

    def get_base_url(self) -> str:
        """
        Get relay base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8000")
        """
        scheme = self.data.get('relay_scheme', 'http')
        host = self.data.get('relay_host', 'localhost')
        port = self.data.get('relay_port', DEFAULT_RELAY_PORT)
        return f"{scheme}://{host}:{port}"

    def get_timeout(self) -> float:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return float(self.data.get('timeout', CLIENT_TIMEOUT_SECONDS))

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries', 'retry_base_delay' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_base_delay': self.data.get('retry_base_delay', 1.0),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }

    def get_upload_config(self) -> dict:
        """
        Get chunked upload configuration.

        Returns:
            Dictionary with 'chunk_size', 'max_consecutive_failures',
            'default_container' and 'relay_to_container'
        """
        return {
            'chunk_size': int(self.data.get('chunk_size', CHUNK_SIZE_BYTES)),
            'max_consecutive_failures': int(self.data.get('max_consecutive_failures', 5)),
            'default_container': self.data.get('default_container', DEFAULT_CONTAINER_NAME),
            'relay_to_container': bool(self.data.get('relay_to_container', True)),
        }

    def set_default_container(self, name: str) -> None:
        """
        Set default cloud container and save to file.

        Args:
            name: Container name
        """
        self.data['default_container'] = name
        self.save()
