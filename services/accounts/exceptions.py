"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""


class AccountServiceError(Exception):
    """ Base class for failures surfaced by the account services. """


class LoginAlreadyUsedError(AccountServiceError):
    """ Registration login is held by an activated account. """

    def __init__(self, login: str = ""):
        super().__init__("Login name already used!")
        self.login = login


class EmailAlreadyUsedError(AccountServiceError):
    """ Registration email is held by an activated account. """

    def __init__(self, email: str = ""):
        super().__init__("Email is already in use!")
        self.email = email


class InvalidPasswordError(AccountServiceError):
    """ Current password did not verify during a password change. """

    def __init__(self):
        super().__init__("Incorrect password")
