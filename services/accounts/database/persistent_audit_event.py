"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String
from .base import Base


class PersistentAuditEvent(Base):
    """
    SQLAlchemy model of an audit event.

    Attributes:
        event_id (int): Primary key, assigned by the database.
        principal (str): Login the event relates to.
        event_date (datetime): Timezone aware time of the event.
        event_type (str): Event type.
    """
    # pylint: disable=too-few-public-methods
    __tablename__ = "jhi_persistent_audit_event"

    event_id = Column(BigInteger, primary_key=True, autoincrement=True)
    principal = Column(String(50), nullable=False, index=True)
    event_date = Column(DateTime(timezone=True), index=True)
    event_type = Column(String(255))


class PersistentAuditEventData(Base):
    """
    SQLAlchemy model of one name/value pair of an audit event payload.
    """
    # pylint: disable=too-few-public-methods
    __tablename__ = "jhi_persistent_audit_evt_data"

    event_id = Column(BigInteger,
                      ForeignKey("jhi_persistent_audit_event.event_id"),
                      primary_key=True)
    name = Column(String(150), primary_key=True)
    value = Column(String(255))
