"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, String
from .base import Base
from .created_updated_timestamp_mixin import CreatedUpdatedTimestampMixin


class User(CreatedUpdatedTimestampMixin, Base):
    """
    SQLAlchemy model of the user table.

    Attributes:
        id (int): Primary key, assigned by the database.
        login (str): Unique lowercased login.
        password_hash (str): bcrypt hash, never the clear text password.
        email (str): Unique lowercased email, optional.
        activated (bool): False until activation (or admin creation).
        activation_key (str): Pending activation token.
        reset_key (str): Pending password reset token.
        reset_date (datetime): When the reset token was issued.
    """
    # pylint: disable=too-few-public-methods
    __tablename__ = "jhi_user"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    login = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(60), nullable=False)
    first_name = Column(String(50))
    last_name = Column(String(50))
    email = Column(String(191), unique=True, index=True)
    image_url = Column(String(256))
    activated = Column(Boolean, default=False, nullable=False)
    lang_key = Column(String(10))
    activation_key = Column(String(20), index=True)
    reset_key = Column(String(20), index=True)
    reset_date = Column(DateTime(timezone=True))
