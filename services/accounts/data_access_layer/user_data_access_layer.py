"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from datetime import datetime
import typing
from accounthub_common.base_data_access_layer import BaseDataAccessLayer
from accounts.models import PageRequest, User
from accounts.models.user import USER_COLUMNS

_SELECT_USER = "SELECT id, " + ", ".join(USER_COLUMNS) + " FROM jhi_user"

_INSERT_USER = (
    "INSERT INTO jhi_user (" + ", ".join(USER_COLUMNS) + ") VALUES (" +
    ", ".join(f"${idx}" for idx in range(1, len(USER_COLUMNS) + 1)) +
    ") RETURNING id"
)

_UPDATE_USER = (
    "UPDATE jhi_user SET " +
    ", ".join(f"{column} = ${idx}"
              for idx, column in enumerate(USER_COLUMNS, start=2)) +
    " WHERE id = $1"
)

_SELECT_USER_WITH_AUTHORITIES = (
    "SELECT u.id, " + ", ".join(f"u.{column}" for column in USER_COLUMNS) +
    ", ua.authority_name FROM jhi_user u "
    "LEFT JOIN jhi_user_authority ua ON u.id = ua.user_id"
)

# Columns accepted by find_one_with_authorities_by.
WITH_AUTHORITIES_LOOKUP_FIELDS = ("id", "login", "email")


class UserDataAccessLayer(BaseDataAccessLayer):
    """
    Store for user rows and their authority memberships.

    Lookups return ``None`` when nothing matches. Writes that hit no row (for
    example an update racing a delete) are not errors.
    """

    # -------------------------
    # Point lookups
    # -------------------------

    async def find_one_by_id(self, user_id: int) -> typing.Optional[User]:
        return await self._find_one(f"{_SELECT_USER} WHERE id = $1", user_id)

    async def find_one_by_login(self, login: str) -> typing.Optional[User]:
        return await self._find_one(f"{_SELECT_USER} WHERE login = $1", login)

    async def find_one_by_email_ignore_case(self, email: str
                                            ) -> typing.Optional[User]:
        return await self._find_one(
            f"{_SELECT_USER} WHERE LOWER(email) = LOWER($1)", email)

    async def find_one_by_activation_key(self, activation_key: str
                                         ) -> typing.Optional[User]:
        return await self._find_one(
            f"{_SELECT_USER} WHERE activation_key = $1", activation_key)

    async def find_one_by_reset_key(self, reset_key: str
                                    ) -> typing.Optional[User]:
        return await self._find_one(f"{_SELECT_USER} WHERE reset_key = $1",
                                    reset_key)

    # -------------------------
    # Lookups joined with authorities
    # -------------------------

    async def find_one_with_authorities_by_id(self, user_id: int
                                              ) -> typing.Optional[User]:
        return await self.find_one_with_authorities_by("id", user_id)

    async def find_one_with_authorities_by_login(self, login: str
                                                 ) -> typing.Optional[User]:
        return await self.find_one_with_authorities_by("login", login)

    async def find_one_with_authorities_by_email_ignore_case(
            self, email: str) -> typing.Optional[User]:
        return await self.find_one_with_authorities_by("email", email.lower())

    async def find_one_with_authorities_by(self,
                                           field_name: str,
                                           value: typing.Any
                                           ) -> typing.Optional[User]:
        """
        Fetch a user together with all of its authority names.

        The user table is outer joined with the membership table, so a user
        with no authorities still yields exactly one row. All rows are folded
        into a single ``User``.

        Args:
            field_name (str): One of ``id``, ``login`` or ``email``.
            value: Value to match.

        Returns:
            The user with ``authorities`` populated, or None.

        Raises:
            ValueError: ``field_name`` is not an accepted lookup column.
        """
        if field_name not in WITH_AUTHORITIES_LOOKUP_FIELDS:
            raise ValueError(f"Unsupported user lookup field '{field_name}'")

        rows = await self._fetch(
            f"{_SELECT_USER_WITH_AUTHORITIES} WHERE u.{field_name} = $1",
            value)

        if not rows:
            return None

        user = User.from_record(rows[0])
        user.authorities = {row["authority_name"] for row in rows
                            if row["authority_name"] is not None}
        return user

    async def find_authorities_by_user_ids(self, user_ids: list[int]
                                           ) -> dict[int, set[str]]:
        """
        Fetch the authority names of several users in one query.

        Returns:
            Mapping of user id to its authority names, users without any
            membership are absent.
        """
        if not user_ids:
            return {}

        rows = await self._fetch(
            "SELECT user_id, authority_name FROM jhi_user_authority "
            "WHERE user_id = ANY($1::bigint[])", list(user_ids))

        authorities: dict[int, set[str]] = {}
        for row in rows:
            authorities.setdefault(row["user_id"], set()).add(
                row["authority_name"])
        return authorities

    # -------------------------
    # Scans
    # -------------------------

    async def find_all_not_activated_created_before(self, cutoff: datetime
                                                    ) -> list[User]:
        """
        Scan for stale registrations: unactivated users whose activation key
        was never consumed and whose creation predates ``cutoff``.
        """
        rows = await self._fetch(
            f"{_SELECT_USER} WHERE activated = FALSE "
            "AND activation_key IS NOT NULL AND created_date < $1 "
            "ORDER BY id", cutoff)
        return [User.from_record(row) for row in rows]

    async def find_all_by_login_not(self,
                                    page: PageRequest,
                                    login: str) -> list[User]:
        rows = await self._fetch(
            f"{_SELECT_USER} WHERE login <> $1 ORDER BY id "
            "LIMIT $2 OFFSET $3", login, page.size, page.offset)
        return [User.from_record(row) for row in rows]

    async def count_all_by_login_not(self, login: str) -> int:
        return await self._fetchval(
            "SELECT COUNT(*) FROM jhi_user WHERE login <> $1", login)

    # -------------------------
    # User row writes
    # -------------------------

    async def save(self, user: User) -> User:
        """
        Insert the user when it has no id yet, update it otherwise.

        Returns:
            The same user instance, with ``id`` set after an insert.
        """
        if user.id is None:
            user.id = await self._fetchval(_INSERT_USER, *user.column_values())
            self._logger.debug("Inserted user row %s for login '%s'",
                               user.id, user.login)
            return user

        status = await self._execute(_UPDATE_USER, user.id,
                                     *user.column_values())
        if self._affected_rows(status) == 0:
            self._logger.debug("Update of user %s matched no row, it was "
                               "removed concurrently", user.id)
        return user

    async def delete(self, user: User) -> int:
        """
        Delete the user row. Memberships must have been removed first.

        Returns:
            Number of rows deleted (0 if the row was already gone).
        """
        status = await self._execute("DELETE FROM jhi_user WHERE id = $1",
                                     user.id)
        return self._affected_rows(status)

    async def delete_not_activated(self, user_id: int) -> int:
        """
        Delete a stale registration together with its memberships, provided
        it is still unactivated with a pending activation key. The row is
        locked before anything is removed, so an activation committed after
        the cleanup scan leaves the user in place.

        Returns:
            Number of user rows deleted (0 if the user was activated or
            removed in the meantime).
        """
        async with self.transaction():
            locked = await self._fetchval(
                "SELECT id FROM jhi_user WHERE id = $1 AND activated = FALSE "
                "AND activation_key IS NOT NULL FOR UPDATE", user_id)
            if locked is None:
                return 0

            await self._execute(
                "DELETE FROM jhi_user_authority WHERE user_id = $1", user_id)
            status = await self._execute("DELETE FROM jhi_user WHERE id = $1",
                                         user_id)

        return self._affected_rows(status)

    # -------------------------
    # Membership writes
    # -------------------------

    async def save_user_authority(self, user_id: int,
                                  authority_name: str) -> None:
        await self._execute(
            "INSERT INTO jhi_user_authority (user_id, authority_name) "
            "VALUES ($1, $2) ON CONFLICT DO NOTHING", user_id, authority_name)

    async def delete_user_authority(self, user_id: int,
                                    authority_name: str) -> None:
        await self._execute(
            "DELETE FROM jhi_user_authority "
            "WHERE user_id = $1 AND authority_name = $2",
            user_id, authority_name)

    async def delete_user_authorities_by_user_id(self, user_id: int) -> int:
        status = await self._execute(
            "DELETE FROM jhi_user_authority WHERE user_id = $1", user_id)
        return self._affected_rows(status)

    async def delete_all_user_authorities(self) -> int:
        status = await self._execute("DELETE FROM jhi_user_authority")
        return self._affected_rows(status)

    async def _find_one(self, query: str, *args) -> typing.Optional[User]:
        row = await self._fetchrow(query, *args)
        return User.from_record(row) if row else None
