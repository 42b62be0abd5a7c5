"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import enum
import typing
from dataclasses import dataclass


class ConfigItemDataType(enum.Enum):
    """ Enumeration for configuration item data type """
    BOOLEAN = "bool"
    FLOAT = "float"
    INT = "int"
    STRING = "string"
    UNSIGNED_INT = "uint"


@dataclass(frozen=True)
class ConfigurationSetupItem:
    """
    Description of a single configuration item.

    Attributes:
        item_name (str): Key of the item within its section.
        item_type (ConfigItemDataType): Type the raw value is converted to.
        valid_values (list): Optional whitelist of accepted values.
        is_required (bool): Fail processing when no source provides a value.
        default_value (object): Value used when no source provides one.
        max_value (int): Optional inclusive upper bound for numeric items.
    """
    item_name: str
    item_type: ConfigItemDataType
    valid_values: typing.Optional[list] = None
    is_required: bool = False
    default_value: typing.Optional[object] = None
    max_value: typing.Optional[int] = None


class ConfigurationSetup:
    """
    Configuration layout, by section.

    Each section maps to a list of ``ConfigurationSetupItem`` instances
    describing the keys it accepts.
    """

    def __init__(self, setup_items: dict) -> None:
        if not isinstance(setup_items, dict):
            raise TypeError("setup_items must be a dict[str, "
                            "list[ConfigurationSetupItem]]")

        self._items = setup_items

    def get_sections(self) -> list:
        """
        Get a list of sections available.

        Returns:
            List of section names.
        """
        return list(self._items.keys())

    def get_section(self, name: str) -> list[ConfigurationSetupItem]:
        """
        Get the configuration items for a section, an empty list if the
        section is unknown.
        """
        return self._items.get(name, [])

    def get_item(self,
                 section: str,
                 item_name: str) -> typing.Optional[ConfigurationSetupItem]:
        """
        Look up a single item description.

        Returns:
            The ``ConfigurationSetupItem`` or None when not part of the layout.
        """
        for item in self.get_section(section):
            if item.item_name == item_name:
                return item
        return None
