"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from datetime import datetime, timedelta, timezone
import logging
import typing
from accounts.constants import (ANONYMOUS_USER,
                                AUDIT_EVENT_DATA_MAX_LENGTH,
                                AUDIT_EVENT_RETENTION_DAYS,
                                AUTHORIZATION_FAILURE)
from accounts.data_access_layer.audit_event_data_access_layer import \
    AuditEventDataAccessLayer
from accounts.models import AuditEvent, PageRequest


class AuditEventDataService:
    """
    Facade over the audit event store: records events, serves the queries
    and applies the retention policy.
    """

    def __init__(self,
                 audit_dal: AuditEventDataAccessLayer,
                 logger: logging.Logger,
                 retention_days: int = AUDIT_EVENT_RETENTION_DAYS,
                 anonymous_user: str = ANONYMOUS_USER):
        self._audit_dal = audit_dal
        self._logger: logging.Logger = logger.getChild(__name__)
        self._retention = timedelta(days=retention_days)
        self._anonymous_user = anonymous_user

    async def add(self,
                  principal: str,
                  event_type: str,
                  data: typing.Optional[dict[str, typing.Any]] = None,
                  event_date: typing.Optional[datetime] = None
                  ) -> typing.Optional[AuditEvent]:
        """
        Record an audit event.

        Events of the anonymous user and authorization failures are not
        persisted. Data values are stored as strings, truncated to 255
        characters.

        Returns:
            The stored event, or None when it was filtered out.
        """
        if event_type == AUTHORIZATION_FAILURE or \
                principal == self._anonymous_user:
            return None

        event = AuditEvent(principal=principal,
                           event_type=event_type,
                           event_date=event_date or datetime.now(timezone.utc),
                           data=self._truncate(data or {}))
        return await self._audit_dal.save(event)

    async def find_all(self, page: PageRequest) -> list[AuditEvent]:
        return await self._audit_dal.find_all(page)

    async def find_by_dates(self,
                            from_date: datetime,
                            to_date: datetime,
                            page: PageRequest) -> list[AuditEvent]:
        return await self._audit_dal.find_all_by_date_between(from_date,
                                                              to_date, page)

    async def count_by_dates(self, from_date: datetime,
                             to_date: datetime) -> int:
        return await self._audit_dal.count_by_date_between(from_date, to_date)

    async def find(self, event_id: int) -> typing.Optional[AuditEvent]:
        return await self._audit_dal.find_by_id(event_id)

    async def find_by_principal(self, principal: str) -> list[AuditEvent]:
        return await self._audit_dal.find_by_principal(principal)

    async def remove_old_audit_events(self) -> int:
        """
        Delete audit events older than the retention period.

        Returns:
            Number of events deleted.
        """
        cutoff = datetime.now(timezone.utc) - self._retention
        removed = await self._audit_dal.delete_by_date_before(cutoff)
        self._logger.debug("Deleted %d audit events older than %s",
                           removed, cutoff)
        return removed

    @staticmethod
    def _truncate(data: dict[str, typing.Any]) -> dict[str, str]:
        truncated: dict[str, str] = {}
        for name, value in data.items():
            text = "" if value is None else str(value)
            truncated[name] = text[:AUDIT_EVENT_DATA_MAX_LENGTH]
        return truncated
