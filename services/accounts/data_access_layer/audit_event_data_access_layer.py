"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from datetime import datetime
import typing
from accounthub_common.base_data_access_layer import BaseDataAccessLayer
from accounts.models import AuditEvent, PageRequest

_SELECT_EVENT = ("SELECT event_id, principal, event_date, event_type "
                 "FROM jhi_persistent_audit_event")


class AuditEventDataAccessLayer(BaseDataAccessLayer):
    """
    Append and query store for audit events.

    Date range queries use strict bounds: an event dated exactly on
    ``from_date`` or ``to_date`` is not part of the range.
    """

    async def save(self, event: AuditEvent) -> AuditEvent:
        """
        Insert an event and its data rows in one transaction.

        Returns:
            The same event with ``id`` set.
        """
        async with self.transaction():
            event.id = await self._fetchval(
                "INSERT INTO jhi_persistent_audit_event "
                "(principal, event_date, event_type) VALUES ($1, $2, $3) "
                "RETURNING event_id",
                event.principal, event.event_date, event.event_type)

            if event.data:
                await self._executemany(
                    "INSERT INTO jhi_persistent_audit_evt_data "
                    "(event_id, name, value) VALUES ($1, $2, $3)",
                    [(event.id, name, value)
                     for name, value in event.data.items()])

        self._logger.debug("Saved audit event %s (%s) for '%s'",
                           event.id, event.event_type, event.principal)
        return event

    async def find_by_id(self, event_id: int) -> typing.Optional[AuditEvent]:
        events = await self._find_events(f"{_SELECT_EVENT} WHERE event_id = $1",
                                          event_id)
        return events[0] if events else None

    async def find_by_principal(self, principal: str) -> list[AuditEvent]:
        return await self._find_events(
            f"{_SELECT_EVENT} WHERE principal = $1 ORDER BY event_id",
            principal)

    async def find_all_by_date_between(self,
                                       from_date: datetime,
                                       to_date: datetime,
                                       page: PageRequest) -> list[AuditEvent]:
        return await self._find_events(
            f"{_SELECT_EVENT} WHERE event_date > $1 AND event_date < $2 "
            "ORDER BY event_id LIMIT $3 OFFSET $4",
            from_date, to_date, page.size, page.offset)

    async def find_by_date_before(self, before: datetime) -> list[AuditEvent]:
        return await self._find_events(
            f"{_SELECT_EVENT} WHERE event_date < $1 ORDER BY event_id", before)

    async def find_all(self, page: PageRequest) -> list[AuditEvent]:
        return await self._find_events(
            f"{_SELECT_EVENT} ORDER BY event_id LIMIT $1 OFFSET $2",
            page.size, page.offset)

    async def count_by_date_between(self,
                                    from_date: datetime,
                                    to_date: datetime) -> int:
        return await self._fetchval(
            "SELECT COUNT(DISTINCT event_id) FROM jhi_persistent_audit_event "
            "WHERE event_date > $1 AND event_date < $2", from_date, to_date)

    async def delete_by_date_before(self, before: datetime) -> int:
        """
        Delete every event dated before ``before`` along with its data rows.

        Returns:
            Number of events deleted.
        """
        async with self.transaction():
            await self._execute(
                "DELETE FROM jhi_persistent_audit_evt_data WHERE event_id IN "
                "(SELECT event_id FROM jhi_persistent_audit_event "
                "WHERE event_date < $1)", before)
            status = await self._execute(
                "DELETE FROM jhi_persistent_audit_event WHERE event_date < $1",
                before)

        return self._affected_rows(status)

    async def _find_events(self, query: str, *args) -> list[AuditEvent]:
        rows = await self._fetch(query, *args)
        if not rows:
            return []

        event_ids = [row["event_id"] for row in rows]
        data_rows = await self._fetch(
            "SELECT event_id, name, value FROM jhi_persistent_audit_evt_data "
            "WHERE event_id = ANY($1::bigint[])", event_ids)

        data: dict[int, dict[str, str]] = {}
        for data_row in data_rows:
            data.setdefault(data_row["event_id"], {})[data_row["name"]] = \
                data_row["value"]

        return [AuditEvent.from_record(row, data.get(row["event_id"]))
                for row in rows]
