# src/script_src_generator/core/managers/config_manager.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from script_src_generator.core.utils.path_utils import PathUtils
from script_src_generator.model import GeneratorSettings

logger = logging.getLogger(__name__)


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


class ConfigManager:
    """
    A singleton class to manage the generator's configuration.
    Loads the bundled settings.json, layers the user's override file on top
    and allows for in-memory modifications (e.g. from command line flags).
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'generator.hash_algorithm'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration, casting it to the
        type of the value it replaces where possible.
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if isinstance(original_value, bool) and isinstance(value, str):
            value = value.strip().lower() in ("1", "true", "yes", "on")
        elif original_value is not None:
            try:
                value = type(original_value)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as given.",
                    key_path, type(original_value).__name__
                )

        d[keys[-1]] = value
        logger.debug("Configuration updated: %s = %s", key_path, value)
        return True

    def generator_settings(self) -> GeneratorSettings:
        """Returns the validated 'generator' section, falling back to defaults if it is invalid."""
        try:
            return GeneratorSettings(**(self.get_nested("generator", {}) or {}))
        except ValidationError as e:
            logger.error("Invalid 'generator' configuration, using defaults: %s", e)
            return GeneratorSettings()

    @staticmethod
    def _read_json(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        return data

    def reset(self):
        """Reloads the configuration from settings.json and the user override file."""
        self._config = {}
        for path in (PathUtils.get_settings_file(), PathUtils.get_user_settings_file()):
            if not path.exists():
                logger.debug("No settings found at %s.", path)
                continue
            try:
                _deep_update(self._config, self._read_json(path))
                logger.debug("Configuration loaded from %s.", path)
            except (OSError, ValueError) as e:
                logger.error("Failed to load %s: %s", path, e)


# The global singleton instance used by the command line handler.
config_manager = ConfigManager()
