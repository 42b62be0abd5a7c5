"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from enum import Enum


class ServiceDegradationStatus(Enum):
    """ Overall status reported by the health endpoint """

    # Everything is working fine
    HEALTHY = "healthy"

    # A component is reporting partial degradation
    DEGRADED = "degraded"

    # A component is fully degraded, account operations will fail
    CRITICAL = "critical"


class ComponentDegradationLevel(Enum):
    """ Degradation level of a single component (database, service) """

    NONE = "none"
    PART_DEGRADED = "partial"
    FULLY_DEGRADED = "fully_degraded"
