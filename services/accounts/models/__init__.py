"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from .audit_event import AuditEvent
from .authority import Authority
from .page_request import PageRequest
from .user import User
from .user_dto import UserDto

__all__ = ["AuditEvent", "Authority", "PageRequest", "User", "UserDto"]
