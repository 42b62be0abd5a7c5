"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from dataclasses import dataclass, field
from datetime import datetime
import typing

# Columns of the jhi_user table, in the order they are written.
USER_COLUMNS = (
    "login", "password_hash", "first_name", "last_name", "email",
    "image_url", "activated", "lang_key", "activation_key", "reset_key",
    "reset_date", "created_by", "created_date", "last_modified_by",
    "last_modified_date",
)


@dataclass
class User:
    """
    A user account.

    login and email are stored lowercased and are each unique.
    activation_key is only set while the account awaits activation,
    reset_key/reset_date only while a password reset is pending.
    authorities holds role names, it is persisted as separate
    membership rows and only loaded by the "with authorities" queries.
    """
    # pylint: disable=too-many-instance-attributes
    login: typing.Optional[str] = None
    password_hash: typing.Optional[str] = None
    first_name: typing.Optional[str] = None
    last_name: typing.Optional[str] = None
    email: typing.Optional[str] = None
    image_url: typing.Optional[str] = None
    activated: bool = False
    lang_key: typing.Optional[str] = None
    activation_key: typing.Optional[str] = None
    reset_key: typing.Optional[str] = None
    reset_date: typing.Optional[datetime] = None
    created_by: typing.Optional[str] = None
    created_date: typing.Optional[datetime] = None
    last_modified_by: typing.Optional[str] = None
    last_modified_date: typing.Optional[datetime] = None
    authorities: set[str] = field(default_factory=set)
    id: typing.Optional[int] = None

    @classmethod
    def from_record(cls, record) -> "User":
        """
        Build a user from a jhi_user row. Extra columns (such as the
        authority name of a joined row) are ignored.
        """
        values = {column: record[column] for column in USER_COLUMNS}
        return cls(id=record["id"], **values)

    def column_values(self) -> tuple:
        """ Values of USER_COLUMNS in order, for insert/update. """
        return tuple(getattr(self, column) for column in USER_COLUMNS)

    def __str__(self) -> str:
        return (f"User{{login='{self.login}', first_name='{self.first_name}', "
                f"last_name='{self.last_name}', email='{self.email}', "
                f"activated='{self.activated}', lang_key='{self.lang_key}'}}")
