"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from sqlalchemy import Column, String
from .base import Base


class Authority(Base):
    """
    SQLAlchemy model of the authority (role) table. The rows are fixed data.

    Attributes:
        name (str): Role name, e.g. ROLE_USER.
    """
    # pylint: disable=too-few-public-methods
    __tablename__ = "jhi_authority"

    name = Column(String(50), primary_key=True)
