"""
User configuration management for shotsieve.

Supports configuration from multiple sources (in order of priority):
1. Runtime parameters (highest priority)
2. Environment variables (SHOTSIEVE_*)
3. User config file (~/.shotsieve/config.json)
4. Default values from config.py (lowest priority)

Example config.json:
{
    "window_minutes": 60,
    "preset": "standard",
    "daily_limit": 3,
    "detect_faces": true,
    "use_mtime_fallback": true,
    "cache_max_age_days": 30,
    "db_file": null,
    "trash_dir": null
}
"""

import json
import os
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    DAILY_ADVANCE_LIMIT,
    DB_FILE,
    DEFAULT_PRESET,
    DEFAULT_WINDOW_MINUTES,
    TRASH_DIR,
)

logger = logging.getLogger(__name__)


class UserConfig:
    """
    Manages user configuration from file and environment variables.

    The config file is read lazily and cached until reload().
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    def __new__(cls):
        """Singleton pattern to ensure one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory path."""
        env_dir = os.getenv('SHOTSIEVE_CONFIG_DIR')
        if env_dir:
            return Path(env_dir)
        return Path.home() / '.shotsieve'

    @property
    def config_file_path(self) -> Path:
        return self.config_dir / 'config.json'

    def _load_config_file(self) -> dict:
        """Load configuration from JSON file."""
        if not self.config_file_path.exists():
            return {}

        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config file {self.config_file_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_file_path}: not a JSON object")
            return {}
        logger.debug(f"Loaded configuration from {self.config_file_path}")
        return data

    def _get_config_data(self) -> dict:
        if self._config_data is None:
            self._config_data = self._load_config_file()
        return self._config_data

    def reload(self):
        """Re-read the config file on next access."""
        self._config_data = None

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """
        Get a configuration value with priority:
        1. Environment variable (if env_var specified)
        2. Config file
        3. Default value

        Args:
            key: Configuration key
            default: Default value if not found
            env_var: Optional environment variable name to check
        """
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                # JSON first so numbers and booleans come back typed
                try:
                    return json.loads(env_value)
                except (json.JSONDecodeError, TypeError):
                    return env_value

        config_data = self._get_config_data()
        if key in config_data and config_data[key] is not None:
            return config_data[key]

        return default

    def _get_int(self, key: str, default: int, env_var: str) -> int:
        value = self.get(key, default=default, env_var=env_var)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid value for {key}: {value!r}, using {default}")
            return default

    @property
    def window_minutes(self) -> int:
        """Grouping window in minutes (clamped by the engine to 15-240)."""
        return self._get_int('window_minutes', DEFAULT_WINDOW_MINUTES, 'SHOTSIEVE_WINDOW_MINUTES')

    @property
    def preset(self) -> str:
        """Similarity preset name."""
        return str(self.get('preset', default=DEFAULT_PRESET, env_var='SHOTSIEVE_PRESET'))

    @property
    def daily_limit(self) -> int:
        """Groups that may be finalized per calendar day."""
        return self._get_int('daily_limit', DAILY_ADVANCE_LIMIT, 'SHOTSIEVE_DAILY_LIMIT')

    @property
    def detect_faces(self) -> bool:
        """Use the OpenCV face detector when it is installed."""
        return bool(self.get('detect_faces', default=True, env_var='SHOTSIEVE_DETECT_FACES'))

    @property
    def use_mtime_fallback(self) -> bool:
        """Date photos without EXIF capture time by file modification time."""
        return bool(self.get('use_mtime_fallback', default=True, env_var='SHOTSIEVE_MTIME_FALLBACK'))

    @property
    def cache_max_age_days(self) -> int:
        """Signature cache entries unused for this long are removed."""
        return self._get_int('cache_max_age_days', 30, 'SHOTSIEVE_CACHE_MAX_AGE')

    @property
    def db_file(self) -> str:
        """Path to the SQLite database."""
        custom = self.get('db_file', env_var='SHOTSIEVE_DB')
        if custom:
            return str(custom)
        return DB_FILE

    @property
    def trash_dir(self) -> str:
        """Where deleted photos are moved."""
        custom = self.get('trash_dir', env_var='SHOTSIEVE_TRASH_DIR')
        if custom:
            return str(custom)
        return TRASH_DIR

    def as_dict(self) -> dict:
        """Effective settings."""
        return {
            'window_minutes': self.window_minutes,
            'preset': self.preset,
            'daily_limit': self.daily_limit,
            'detect_faces': self.detect_faces,
            'use_mtime_fallback': self.use_mtime_fallback,
            'cache_max_age_days': self.cache_max_age_days,
            'db_file': self.db_file,
            'trash_dir': self.trash_dir,
        }

    def create_example_config(self) -> bool:
        """Write an example configuration file. Returns False on failure."""
        example_config = {
            "_comment": "shotsieve user configuration",
            "window_minutes": DEFAULT_WINDOW_MINUTES,
            "preset": DEFAULT_PRESET,
            "daily_limit": DAILY_ADVANCE_LIMIT,
            "detect_faces": True,
            "use_mtime_fallback": True,
            "cache_max_age_days": 30,
            "db_file": None,
            "trash_dir": None,
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False

        logger.info(f"Created example config file at {self.config_file_path}")
        return True


_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
