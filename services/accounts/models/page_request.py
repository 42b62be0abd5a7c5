"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class PageRequest:
    """
    Zero based page of a listing, results are ordered by primary key.

    Attributes:
        page (int): Page number, starting at 0.
        size (int): Maximum number of results in the page.
    """
    page: int = 0
    size: int = 20

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("Page index must not be less than zero")

        if self.size < 1:
            raise ValueError("Page size must not be less than one")

    @property
    def offset(self) -> int:
        """ Number of rows skipped before this page. """
        return self.page * self.size
