"""
Configuration Manager module for the control client.
"""
import json
import os
from typing import Any, Optional, Dict
from urllib.parse import urlparse

from ..utils import get_logger

logger = get_logger(__name__)

DEFAULTS: Dict[str, Any] = {
    'http_client': {
        'request_timeout_sec': 15,
    },
    'command': {
        'default_timeout_ms': 10000,
        'poll_interval_sec': 1.0,
    },
    'logging': {
        'console_level': 'INFO',
        'file_level': 'DEBUG',
        'file_path': None,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Loads and manages client configuration from a JSON file, layered over
    built-in defaults.
    """

    def __init__(self, config_path: Optional[str], overrides: Optional[Dict[str, Any]] = None):
        """
        Initializes the ConfigManager by loading the configuration file.

        :param config_path: The path to the JSON configuration file, or None for defaults only
        :type config_path: Optional[str]
        :param overrides: Nested values applied on top of the file, e.g. from the command line
        :type overrides: Optional[Dict[str, Any]]
        :raises: FileNotFoundError if the configuration file path is provided but does not exist
        :raises: ValueError if the configuration file is invalid JSON or essential keys are invalid
        """
        self._config_path = config_path
        self._config_data: Dict[str, Any] = dict(DEFAULTS)

        if self._config_path is None:
            logger.debug("ConfigManager initialized without a config path (defaults only).")
        else:
            self._config_data = _merge(self._config_data, self._load_config())
            logger.debug(f"Configuration loaded from: {self._config_path}")

        if overrides:
            self._config_data = _merge(self._config_data, overrides)

    def _load_config(self) -> Dict[str, Any]:
        """
        Loads the configuration data from the JSON file.

        :raises: FileNotFoundError if the file doesn't exist
        :raises: ValueError if there are JSON parsing errors
        """
        if not os.path.exists(self._config_path):
            logger.critical(f"Configuration file not found: {self._config_path}")
            raise FileNotFoundError(f"Configuration file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.critical(f"Error decoding JSON from config file {self._config_path}: {e}")
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e
        except (IOError, OSError) as e:
            logger.critical(f"Error reading config file {self._config_path}: {e}")
            raise ValueError(f"Could not read configuration file: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Configuration file content is not a valid JSON object.")
        return data

    def validate(self):
        """
        Checks the keys needed to talk to the server.

        :raises: ValueError if required keys are missing or invalid
        """
        server_url = self.get('server_url')
        if not isinstance(server_url, str) or not server_url:
            msg = "Missing essential configuration key: server_url"
            logger.critical(msg)
            raise ValueError(msg)

        parsed = urlparse(server_url)
        if not parsed.scheme or not parsed.netloc:
            msg = f"Invalid 'server_url' configuration: {server_url}. Must include scheme (e.g., https://)."
            logger.critical(msg)
            raise ValueError(msg)

        if not self.get('credentials.username'):
            msg = "Missing essential configuration key: credentials.username"
            logger.critical(msg)
            raise ValueError(msg)

        logger.debug("Basic configuration validation passed.")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Retrieves a configuration value using a dot-separated key path.

        :param key_path: The dot-separated path to the configuration key
        :type key_path: str
        :param default: The default value to return if the key is not found
        :type default: Any
        :return: The configuration value or the default value
        :rtype: Any
        """
        value: Any = self._config_data
        for key in key_path.split('.'):
            if not isinstance(value, dict):
                logger.debug(f"Key path '{key_path}' leads to non-dictionary element at '{key}'.")
                return default
            if key not in value:
                return default
            value = value[key]
        return default if value is None else value

    @property
    def all_config(self) -> Dict[str, Any]:
        """
        Returns a copy of the entire loaded configuration dictionary.

        :return: Copy of configuration dictionary
        :rtype: Dict[str, Any]
        """
        return dict(self._config_data)
