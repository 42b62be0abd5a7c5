"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from datetime import datetime
import typing
from pydantic import BaseModel, EmailStr, Field
from accounts.constants import LOGIN_REGEX
from .user import User


class UserDto(BaseModel):
    """
    External representation of a user, also used as the candidate passed to
    registration and the administrative create/update operations.

    Attributes:
        id (int): Store assigned id, required for administrative updates.
        login (str): Login name, lowercased by the services.
        first_name (str): Optional first name.
        last_name (str): Optional last name.
        email (EmailStr): Email address, lowercased by the services.
        image_url (str): Optional avatar location.
        activated (bool): Activation flag, only honoured by admin updates.
        lang_key (str): Preferred language.
        authorities (set[str]): Role names requested for the user.
    """
    id: typing.Optional[int] = None
    login: str = Field(min_length=1, max_length=50, pattern=LOGIN_REGEX)
    first_name: typing.Optional[str] = Field(default=None, max_length=50)
    last_name: typing.Optional[str] = Field(default=None, max_length=50)
    email: typing.Optional[EmailStr] = None
    image_url: typing.Optional[str] = Field(default=None, max_length=256)
    activated: bool = False
    lang_key: typing.Optional[str] = Field(default=None, min_length=2,
                                           max_length=10)
    created_by: typing.Optional[str] = None
    created_date: typing.Optional[datetime] = None
    last_modified_by: typing.Optional[str] = None
    last_modified_date: typing.Optional[datetime] = None
    authorities: set[str] = Field(default_factory=set)

    @classmethod
    def from_user(cls, user: User) -> "UserDto":
        """
        Build the external representation of a user. Secrets (password
        hash, activation and reset keys) are never copied.
        """
        return cls(id=user.id,
                   login=user.login,
                   first_name=user.first_name,
                   last_name=user.last_name,
                   email=user.email,
                   image_url=user.image_url,
                   activated=user.activated,
                   lang_key=user.lang_key,
                   created_by=user.created_by,
                   created_date=user.created_date,
                   last_modified_by=user.last_modified_by,
                   last_modified_date=user.last_modified_date,
                   authorities=set(user.authorities))
