"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from sqlalchemy import BigInteger, Column, ForeignKey, String
from .base import Base


class UserAuthority(Base):
    """
    SQLAlchemy model of the user/authority membership join table.

    Rows are written and removed explicitly by the user data access layer,
    there is no cascading from the user row. Memberships must be deleted
    before the user they reference.

    Attributes:
        user_id (int): Foreign key to jhi_user.id.
        authority_name (str): Foreign key to jhi_authority.name.
    """
    # pylint: disable=too-few-public-methods
    __tablename__ = "jhi_user_authority"

    user_id = Column(BigInteger, ForeignKey("jhi_user.id"), primary_key=True)
    authority_name = Column(String(50), ForeignKey("jhi_authority.name"),
                            primary_key=True)
