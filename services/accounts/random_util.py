"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import secrets
import string

DEFAULT_TOKEN_LENGTH = 20

_ALPHANUMERIC = string.ascii_letters + string.digits


def generate_random_alphanumeric_string(length: int = DEFAULT_TOKEN_LENGTH
                                        ) -> str:
    """
    Generate a random alphanumeric string using a cryptographically strong
    source.

    Args:
        length (int): Number of characters, must be positive.

    Returns:
        str: The generated string.
    """
    if length <= 0:
        raise ValueError("Token length must be positive")

    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def generate_password() -> str:
    """ Generate a password for an administratively created account. """
    return generate_random_alphanumeric_string()


def generate_activation_key() -> str:
    """ Generate a registration activation key. """
    return generate_random_alphanumeric_string()


def generate_reset_key() -> str:
    """ Generate a password reset key. """
    return generate_random_alphanumeric_string()
