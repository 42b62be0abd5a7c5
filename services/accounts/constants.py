"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""

# Principal recorded on audit fields when no user is in context
SYSTEM_ACCOUNT = "system"

# Login of the anonymous user, never listed as a managed user
ANONYMOUS_USER = "anonymoususer"

DEFAULT_LANGUAGE = "en"

# Accepted login format
LOGIN_REGEX = r"^[_.@A-Za-z0-9-]+$"

# Authorities (roles)
ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"
ROLE_ANONYMOUS = "ROLE_ANONYMOUS"

# Authorities seeded by the schema bootstrap
DEFAULT_AUTHORITIES = (ROLE_ADMIN, ROLE_USER)

# Unactivated accounts older than this are removed by the cleanup job
NOT_ACTIVATED_RETENTION_DAYS = 3

# A password reset key is only valid for this long after it was issued
RESET_KEY_VALIDITY_HOURS = 24

# Audit events older than this are removed by the audit cleanup job
AUDIT_EVENT_RETENTION_DAYS = 30

# Audit events of this type are never persisted
AUTHORIZATION_FAILURE = "AUTHORIZATION_FAILURE"

# Maximum length of a persisted audit event data value
AUDIT_EVENT_DATA_MAX_LENGTH = 255
