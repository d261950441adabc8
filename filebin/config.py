"""Configuration management for the filebin client."""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DOWNLOAD_USER_AGENT,
    STREAM_PIECE_SIZE_BYTES,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


def _default_config() -> dict:
    return {
        "base_url": os.environ.get("FILEBIN_BASE_URL", DEFAULT_BASE_URL),
        "timeout": int(os.environ.get("FILEBIN_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))),
        "chunk_size": STREAM_PIECE_SIZE_BYTES,
        "user_agent": DOWNLOAD_USER_AGENT,
        "scratch_dir": os.environ.get("FILEBIN_SCRATCH_DIR"),
    }


class Config:
    """Manages client configuration, optionally stored in a JSON file."""

    def __init__(self, config_path: Optional[Path] = None, **overrides):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file. Without one, only defaults,
                environment variables and overrides are used.
            **overrides: Individual settings that win over file and defaults
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self.data = self._load()
        self.data.update(overrides)

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        config = _default_config()
        if self.config_path is None:
            return config

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config.update(data)
                return config
            except (json.JSONDecodeError, OSError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Unreadable config {self.config_path}, backing up to {backup_path}: {e}")
                shutil.copy(self.config_path, backup_path)
                return config

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w') as f:
            json.dump(config, f, indent=2)
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        if self.config_path is None:
            raise ValueError("Config has no file path to save to")
        with open(self.config_path, 'w') as f:
            json.dump(self.data, f, indent=2)

    def get_base_url(self) -> str:
        """
        Get service base URL without a trailing slash.

        Returns:
            Base URL string (e.g., "https://filebin.net")
        """
        return str(self.data.get('base_url') or DEFAULT_BASE_URL).rstrip('/')

    def get_timeout(self) -> float:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', DEFAULT_TIMEOUT_SECONDS)

    def get_chunk_size(self) -> int:
        """Get the piece size used when streaming transfers."""
        return int(self.data.get('chunk_size', STREAM_PIECE_SIZE_BYTES))

    def get_user_agent(self) -> str:
        """Get the User-Agent header sent on binary downloads."""
        return self.data.get('user_agent', DOWNLOAD_USER_AGENT)

    def get_scratch_dir(self) -> Optional[Path]:
        """
        Get the root directory for scratch artifacts.

        Returns:
            Directory path, or None to use the system temporary directory
        """
        scratch_dir = self.data.get('scratch_dir')
        return Path(scratch_dir) if scratch_dir else None
