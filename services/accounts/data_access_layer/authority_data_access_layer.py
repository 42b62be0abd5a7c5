"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import typing
from accounthub_common.base_data_access_layer import BaseDataAccessLayer
from accounts.models import Authority


class AuthorityDataAccessLayer(BaseDataAccessLayer):
    """ Read access to the fixed set of authorities. """

    async def find_by_id(self, name: str) -> typing.Optional[Authority]:
        row = await self._fetchrow(
            "SELECT name FROM jhi_authority WHERE name = $1", name)
        return Authority.from_record(row) if row else None

    async def find_all(self) -> list[Authority]:
        rows = await self._fetch("SELECT name FROM jhi_authority ORDER BY name")
        return [Authority.from_record(row) for row in rows]
