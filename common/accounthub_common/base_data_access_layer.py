"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import abc
import logging
import typing
import asyncpg
from accounthub_common.service_health_enums import ComponentDegradationLevel


class BaseDataAccessLayer(abc.ABC):
    """
    Base class for asyncpg backed data access layers.

    All queries go through the ``_fetch``/``_fetchrow``/``_fetchval``/
    ``_execute`` helpers so that failures are logged and reflected on the
    service state object before being re-raised to the caller. A successful
    query marks the database as operational again.

    The ``db`` handle is an asyncpg connection (or anything exposing the same
    coroutine methods and ``transaction()``).
    """

    def __init__(self, db, logger: logging.Logger, state_object):
        self._db = db
        self._logger: logging.Logger = logger.getChild(__name__)
        self._state_object = state_object

    def transaction(self):
        """
        Start a transaction (or a savepoint when one is already open) on the
        underlying connection.

        Returns:
            An async context manager committing on success and rolling back
            if the block raises.
        """
        return self._db.transaction()

    async def _fetch(self, query: str, *args) -> list:
        return await self._run("fetch", query, *args)

    async def _fetchrow(self, query: str, *args) -> typing.Optional[typing.Any]:
        return await self._run("fetchrow", query, *args)

    async def _fetchval(self, query: str, *args) -> typing.Any:
        return await self._run("fetchval", query, *args)

    async def _execute(self, query: str, *args) -> str:
        return await self._run("execute", query, *args)

    async def _executemany(self, query: str, args: list) -> None:
        await self._run("executemany", query, args)

    @staticmethod
    def _affected_rows(status: typing.Optional[str]) -> int:
        """
        Extract the row count from an asyncpg command status such as
        ``"DELETE 3"`` or ``"INSERT 0 1"``.
        """
        if not status:
            return 0

        try:
            return int(status.split()[-1])
        except ValueError:
            return 0

    async def _run(self, method: str, query: str, *args):
        try:
            result = await getattr(self._db, method)(query, *args)

        except (asyncpg.PostgresConnectionError, asyncpg.InterfaceError,
                OSError) as ex:
            self._logger.exception("Database connection error: %s", ex)
            self._mark_database_health(ComponentDegradationLevel.FULLY_DEGRADED,
                                       "Database unreachable")
            raise

        except asyncpg.PostgresError as ex:
            self._logger.exception("Database query error: %s", ex)
            self._mark_database_health(ComponentDegradationLevel.PART_DEGRADED,
                                       f"Database operation failed: {ex}")
            raise

        self._mark_database_health(ComponentDegradationLevel.NONE,
                                   "Database operational")
        return result

    def _mark_database_health(self,
                              level: ComponentDegradationLevel,
                              state_str: str) -> None:
        if self._state_object is None:
            return

        self._state_object.database_health = level
        self._state_object.database_health_state_str = state_str
