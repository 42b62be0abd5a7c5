"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from .base import Base
from .authority import Authority
from .persistent_audit_event import (PersistentAuditEvent,
                                     PersistentAuditEventData)
from .user import User
from .user_authority import UserAuthority

__all__ = ["Base", "Authority", "PersistentAuditEvent",
           "PersistentAuditEventData", "User", "UserAuthority"]
