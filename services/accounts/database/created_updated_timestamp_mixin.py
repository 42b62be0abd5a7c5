"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from sqlalchemy import Column, DateTime, String


class CreatedUpdatedTimestampMixin:
    """
    SQLAlchemy mixin adding the auditing columns of an entity.

    The values are stamped by the services on every write (principal or the
    system sentinel, and the current UTC time), never by the caller.

    Attributes:
        created_by (str): Principal that created the row. Cannot be null.
        created_date (datetime): Timezone aware creation time.
        last_modified_by (str): Principal of the last write.
        last_modified_date (datetime): Timezone aware time of the last write.
    """
    # pylint: disable=too-few-public-methods
    created_by = Column(String(50), nullable=False)
    created_date = Column(DateTime(timezone=True))
    last_modified_by = Column(String(50))
    last_modified_date = Column(DateTime(timezone=True))
