"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Authority:
    """
    A named role (e.g. ROLE_USER). The set of roles is fixed data, it is
    seeded by the schema bootstrap and never created by the services.
    """
    name: str

    @classmethod
    def from_record(cls, record) -> "Authority":
        return cls(name=record["name"])
