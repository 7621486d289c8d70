"""Simple YAML configuration loader for SpeakWrite."""

import os
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'server': {
        'host': '127.0.0.1',
        'port': 8080,
    },
    'client': {
        'server_url': 'http://127.0.0.1:8080',
        'token_file': '~/.speakwrite/token',
    },
    'auth': {
        'jwt_secret': 'dev-secret-key-change-in-production',
        'token_expiry_days': 7,
    },
    'groq': {
        'api_url': 'https://api.groq.com/openai/v1/audio/transcriptions',
        'api_key': None,
        'model': 'whisper-large-v3-turbo',
        'timeout_seconds': 60,
    },
    'audio': {
        'sample_rate': 16000,
        'chunk_size': 1024,
        'channels': 1,
    },
    'recording': {
        'chunk_interval_seconds': 8.0,
        'display_interval_seconds': 1.0,
        'min_upload_bytes': 80000,
        'min_flush_bytes': 1024,
    },
    'transcription': {
        'merge': {
            'deduplicate': False,
        },
    },
    'storage': {
        'data_directory': 'data',
    },
    'logging': {
        'level': 'INFO',
        'file_path': 'data/logs/speakwrite.log',
        'console_output': True,
    },
}

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    'GROQ_API_KEY': 'groq.api_key',
    'JWT_SECRET': 'auth.jwt_secret',
    'SPEAKWRITE_DATA_DIR': 'storage.data_directory',
    'SPEAKWRITE_SERVER_URL': 'client.server_url',
}

RELATIVE_PATH_KEYS = ('storage.data_directory', 'logging.file_path')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class SpeakWriteConfig:
    """SpeakWrite configuration loader."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used.
            environ: Environment mapping used for secret overrides (defaults to os.environ)
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_file is not None:
            logger.info(f"Loading configuration from: {self.config_file}")
            _deep_merge(self.config, self._load_config())
        else:
            logger.info("No configuration file given, using defaults")

        self._apply_environment(os.environ if environ is None else environ)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)

            if not config:
                raise ValueError("Configuration file is empty")
            if not isinstance(config, dict):
                raise ValueError("Configuration file must contain a mapping")

            self._resolve_paths(config)

            logger.info("Configuration loaded successfully")
            return config

        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Make relative data and log paths relative to the config file."""
        config_dir = self.config_file.parent
        for key_path in RELATIVE_PATH_KEYS:
            section, key = key_path.split('.')
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def _apply_environment(self, environ) -> None:
        for env_name, key_path in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                self.set(key_path, value)
                logger.debug(f"Configuration key '{key_path}' taken from ${env_name}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'groq.model').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        if 'secret' not in key_path and 'api_key' not in key_path:
            logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    def get_token_file(self) -> Path:
        """Get the path where the recorder keeps its bearer token."""
        return Path(self.get('client.token_file')).expanduser()
