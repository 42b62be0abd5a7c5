"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from dataclasses import dataclass, field
from datetime import datetime
import typing


@dataclass
class AuditEvent:
    """
    A persisted audit event. Events are immutable once written.

    Attributes:
        principal (str): Login the event relates to.
        event_type (str): Free form event type, e.g. AUTHENTICATION_SUCCESS.
        event_date (datetime): When the event happened (timezone aware).
        data (dict): Opaque string payload, stored as name/value rows.
        id (int): Assigned by the store on insert.
    """
    principal: str
    event_type: str
    event_date: typing.Optional[datetime] = None
    data: dict[str, str] = field(default_factory=dict)
    id: typing.Optional[int] = None

    @classmethod
    def from_record(cls, record,
                    data: typing.Optional[dict[str, str]] = None
                    ) -> "AuditEvent":
        return cls(id=record["event_id"],
                   principal=record["principal"],
                   event_type=record["event_type"],
                   event_date=record["event_date"],
                   data=dict(data or {}))
