"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import configparser
import os
import typing
from accounthub_common.configuration.configuration_setup import (
    ConfigItemDataType, ConfigurationSetup, ConfigurationSetupItem)

BOOLEAN_TRUE_VALUES = {"true", "1", "yes", "on"}
BOOLEAN_FALSE_VALUES = {"false", "0", "no", "off"}


class Configuration:
    """
    Wraps configparser so each configuration item can come from several
    sources. Precedence: environment variable, then config file, then the
    default declared in the layout.

    Environment variables are named ``SECTION_ITEM`` (upper case), with an
    optional prefix, e.g. ``ACCOUNTHUB_AUDIT_RETENTION_DAYS``.
    """

    def __init__(self, env_prefix: str = ""):
        self._parser = configparser.ConfigParser()
        self._env_prefix: str = env_prefix
        self._config_file: typing.Optional[str] = None
        self._has_config_file: bool = False
        self._config_file_required: bool = False
        self._layout: typing.Optional[ConfigurationSetup] = None
        self._config_items: dict[str, dict[str, typing.Any]] = {}

        # Dispatch map: item type → handler function
        self._readers: dict[ConfigItemDataType,
                            typing.Callable[[str, ConfigurationSetupItem],
                                            typing.Any]] = {
            ConfigItemDataType.INT: self._read_int,
            ConfigItemDataType.STRING: self._read_str,
            ConfigItemDataType.BOOLEAN: self._read_bool,
            ConfigItemDataType.FLOAT: self._read_float,
            ConfigItemDataType.UNSIGNED_INT: self._read_uint,
        }

    @property
    def has_config_file(self) -> bool:
        """ True once a config file has been read successfully. """
        return self._has_config_file

    def configure(self,
                  layout: ConfigurationSetup,
                  config_file: typing.Optional[str] = None,
                  file_required: bool = False) -> None:
        """
        Configure the parser with schema and optional file.

        Args:
            layout: Schema definition of configuration (required).
            config_file: Path to config file (optional).
            file_required: Whether file must exist and be readable.
        """
        if layout is None:
            raise ValueError("Configuration layout cannot be None.")

        self._config_file = config_file
        self._config_file_required = file_required
        self._layout = layout

    def process_config(self) -> None:
        """
        Read every item of the layout.

        Raises:
            RuntimeError: ``configure`` has not been called.
            ValueError: The file cannot be parsed, a required file or item is
                        missing, or a value fails its type/range checks.
        """
        if self._layout is None:
            raise RuntimeError("Configuration layout must be set before "
                               "processing.")

        if self._config_file:
            try:
                files_read = self._parser.read(self._config_file)
            except configparser.Error as ex:
                raise ValueError(
                    f"[ConfigError] Failed to parse file '{self._config_file}'"
                    f": {ex}") from ex

            if not files_read and self._config_file_required:
                raise ValueError(
                    f"[ConfigError] Required config file '{self._config_file}' "
                    "could not be opened."
                )

            self._has_config_file = bool(files_read)

        self._read_configuration()

    def get_entry(self, section: str, item: str) -> typing.Any:
        """
        Get a parsed configuration value.

        Raises:
            ValueError: If section or item not found.
        """
        try:
            return self._config_items[section][item]
        except KeyError as ex:
            raise ValueError(
                f"[ConfigError] Invalid key '{section}::{item}'") from ex

    def get_section(self, section: str) -> dict[str, typing.Any]:
        """
        Get a copy of all parsed values of a section.

        Raises:
            ValueError: If the section is not part of the processed layout.
        """
        if section not in self._config_items:
            raise ValueError(f"[ConfigError] Invalid section '{section}'")
        return dict(self._config_items[section])

    # -------------------------
    # Internal helpers
    # -------------------------

    def _env_var_name(self, section: str, item_name: str) -> str:
        return f"{self._env_prefix}{section}_{item_name}".upper()

    def _lookup_value(
            self,
            section: str,
            item: ConfigurationSetupItem,
            file_getter: typing.Callable[[str, str], typing.Any]) -> typing.Any:
        value = os.getenv(self._env_var_name(section, item.item_name))

        if value is None and self._has_config_file:
            try:
                value = file_getter(section, item.item_name)
            except (configparser.NoOptionError, configparser.NoSectionError):
                value = None
            except ValueError as ex:
                raise ValueError(
                    f"[ConfigError] '{section}::{item.item_name}' has invalid "
                    f"{item.item_type.value} value in config file") from ex

        return value if value is not None else item.default_value

    @staticmethod
    def _ensure_required(section: str,
                         item: ConfigurationSetupItem,
                         value: typing.Any) -> typing.Any:
        if value is None and item.is_required:
            raise ValueError(f"[ConfigError] Missing required '{section}::"
                             f"{item.item_name}'")
        return value

    @staticmethod
    def _check_valid_values(section: str,
                            item: ConfigurationSetupItem,
                            value: typing.Any) -> typing.Any:
        if item.valid_values and value not in item.valid_values:
            raise ValueError(
                f"[ConfigError] '{section}::{item.item_name}' has invalid "
                f"value '{value}', expected one of {item.valid_values}")
        return value

    # -------------------------
    # Type readers
    # -------------------------

    def _read_str(self,
                  section: str,
                  item: ConfigurationSetupItem) -> typing.Optional[str]:
        value = self._lookup_value(section, item, self._parser.get)
        value = self._ensure_required(section, item, value)

        if value is None:
            return None

        return self._check_valid_values(section, item, str(value))

    def _read_int(self,
                  section: str,
                  item: ConfigurationSetupItem) -> typing.Optional[int]:
        value = self._lookup_value(section, item, self._parser.getint)
        value = self._ensure_required(section, item, value)

        if value is None:
            return None

        try:
            value = int(value)
        except (ValueError, TypeError) as ex:
            raise ValueError(
                f"[ConfigError] '{section}::{item.item_name}' has invalid "
                f"int '{value}'"
            ) from ex

        if item.max_value is not None and value > item.max_value:
            raise ValueError(
                f"[ConfigError] '{section}::{item.item_name}' value '{value}' "
                f"exceeds maximum {item.max_value}")

        return self._check_valid_values(section, item, value)

    def _read_uint(self,
                   section: str,
                   item: ConfigurationSetupItem) -> typing.Optional[int]:
        value = self._read_int(section, item)
        if value is None:
            return None
        if value < 0:
            raise ValueError(
                f"[ConfigError] '{section}::{item.item_name}' has invalid "
                f"unsigned int '{value}'"
            )
        return value

    def _read_bool(self,
                   section: str,
                   item: ConfigurationSetupItem) -> typing.Optional[bool]:
        value = self._lookup_value(section, item, self._parser.getboolean)
        value = self._ensure_required(section, item, value)

        if value is None:
            return None

        if isinstance(value, bool):
            return value

        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in BOOLEAN_TRUE_VALUES:
                return True
            if lowered in BOOLEAN_FALSE_VALUES:
                return False

        raise ValueError(
            f"[ConfigError] '{section}::{item.item_name}' has invalid boolean "
            f"'{value}'"
        )

    def _read_float(self,
                    section: str,
                    item: ConfigurationSetupItem) -> typing.Optional[float]:
        value = self._lookup_value(section, item, self._parser.getfloat)
        value = self._ensure_required(section, item, value)

        if value is None:
            return None

        try:
            return float(value)
        except (ValueError, TypeError) as ex:
            raise ValueError(
                f"[ConfigError] '{section}::{item.item_name}' has invalid "
                f"float '{value}'"
            ) from ex

    # -------------------------
    # Main schema processor
    # -------------------------

    def _read_configuration(self) -> None:
        for section_name in self._layout.get_sections():
            section_values = self._config_items.setdefault(section_name, {})

            for section_item in self._layout.get_section(section_name):
                reader = self._readers.get(section_item.item_type)
                if not reader:
                    raise ValueError(
                        f"[ConfigError] Unsupported type "
                        f"'{section_item.item_type}' "
                        f"for '{section_name}::{section_item.item_name}'"
                    )

                section_values[section_item.item_name] = reader(section_name,
                                                                section_item)
