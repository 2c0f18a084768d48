"""Configuration management for AquaWatch."""

import os
import configparser
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from aquawatch.config.settings import AquaWatchSettings
from aquawatch.core.exceptions import ConfigurationError

ENV_PREFIX = "AQUAWATCH_"
CORE_SECTION = "core"


class ConfigurationManager:
    """Manages application configuration from multiple sources.

    Precedence, lowest to highest: built-in defaults, INI file, environment
    variables named ``AQUAWATCH_<SECTION>__<KEY>`` (or ``AQUAWATCH_<KEY>`` for
    core settings).
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, looks for config/config.ini
        """
        self._config: Dict[str, Dict[str, Any]] = {}
        self._config_path = Path(config_path) if config_path else Path("config/config.ini")
        self._load_defaults()
        self._load_from_file()
        self._load_from_environment()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load_defaults(self) -> None:
        """Load default configuration values from the settings models."""
        defaults = AquaWatchSettings().model_dump(mode='json')
        self._config = {
            CORE_SECTION: {'debug': defaults.pop('debug')}
        }
        for section, values in defaults.items():
            self._config[section] = dict(values)

    def _load_from_file(self) -> None:
        """Load configuration from INI file."""
        if not self._config_path.exists():
            return

        try:
            parser = configparser.ConfigParser(interpolation=None)
            parser.read(self._config_path)

            for section_name in parser.sections():
                section = section_name.lower()
                if section == 'general':
                    section = CORE_SECTION
                self._config.setdefault(section, {})

                for key, value in parser[section_name].items():
                    self._config[section][key] = self._convert_value(value)

        except configparser.Error as e:
            raise ConfigurationError(f"Error loading config file: {e}", cause=e)

    def _load_from_environment(self) -> None:
        """Load configuration from environment variables."""
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            # AQUAWATCH_DETECTION__MOVING_AVERAGE_WINDOW
            parts = key[len(ENV_PREFIX):].lower().split('__')

            if len(parts) == 2:
                section, setting = parts
                self._config.setdefault(section, {})[setting] = self._convert_value(value)
            elif len(parts) == 1:
                self._config[CORE_SECTION][parts[0]] = self._convert_value(value)

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        if value.lower() in ('null', 'none', ''):
            return None

        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        return value

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a configuration setting.

        Args:
            key: Setting key in format 'section.setting' or 'setting'
            default: Default value if setting not found
        """
        parts = key.split('.')

        if len(parts) == 1:
            return self._config.get(CORE_SECTION, {}).get(parts[0], default)
        elif len(parts) == 2:
            section, setting = parts
            return self._config.get(section, {}).get(setting, default)
        else:
            raise ConfigurationError(f"Invalid setting key format: {key}")

    def set_setting(self, key: str, value: Any) -> None:
        """Set a configuration setting in format 'section.setting' or 'setting'."""
        parts = key.split('.')

        if len(parts) == 1:
            self._config.setdefault(CORE_SECTION, {})[parts[0]] = value
        elif len(parts) == 2:
            section, setting = parts
            self._config.setdefault(section, {})[setting] = value
        else:
            raise ConfigurationError(f"Invalid setting key format: {key}")

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get a copy of all settings for a section."""
        return self._config.get(section, {}).copy()

    def save_configuration(self, config_path: Optional[Union[str, Path]] = None) -> Path:
        """Save current configuration to an INI file.

        Args:
            config_path: Path to save config. If None, uses the loaded path.
        """
        save_path = Path(config_path) if config_path else self._config_path
        save_path.parent.mkdir(parents=True, exist_ok=True)

        parser = configparser.ConfigParser(interpolation=None)
        for section_name, section_data in self._config.items():
            name = 'GENERAL' if section_name == CORE_SECTION else section_name.upper()
            parser.add_section(name)
            for key, value in section_data.items():
                parser.set(name, key, '' if value is None else str(value))

        try:
            with open(save_path, 'w') as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(f"Error saving config file: {e}", cause=e)
        return save_path

    def to_settings(self) -> AquaWatchSettings:
        """Build validated settings from the merged configuration.

        Raises:
            ConfigurationError: If any value fails validation
        """
        data: Dict[str, Any] = dict(self._config.get(CORE_SECTION, {}))
        for section, values in self._config.items():
            if section != CORE_SECTION:
                data[section] = values
        try:
            return AquaWatchSettings(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}", cause=e)

    def validate_configuration(self) -> bool:
        """Validate current configuration, raising ConfigurationError when invalid."""
        self.to_settings()
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary."""
        return {section: values.copy() for section, values in self._config.items()}
