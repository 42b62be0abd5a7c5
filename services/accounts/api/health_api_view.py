"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import http
import logging
import time
from quart import Response
from accounthub_common.base_api_view import BaseApiView
from accounthub_common.service_health_enums import (ServiceDegradationStatus,
                                                    ComponentDegradationLevel)
from accounts.state_object import StateObject


class HealthApiView(BaseApiView):
    """
    A view that provides health check information for the accounts service.

    This includes the health status of the database and the service, system
    uptime, application version and the last run of each scheduled job.

    Attributes:
        _logger (logging.Logger): Logger instance for recording events.
        _state_object (StateObject): Shared state object containing health and
                                     version info.
    """

    def __init__(self, logger: logging.Logger,
                 state_object: StateObject) -> None:
        self._logger = logger.getChild(__name__)
        self._state_object = state_object

    async def health(self) -> Response:
        """
        Performs a health check and returns a JSON response with system status.

        The status is ``critical`` if any component is fully degraded,
        ``degraded`` if any is partially degraded, ``healthy`` otherwise.

        Returns:
            quart.Response: JSON document with the overall status, dependency
                            statuses, current issues (if any), uptime, version
                            and scheduled job results.
        """
        uptime: int = int(time.time()) - self._state_object.startup_time
        issues: list = []

        # Check database health
        if self._state_object.database_health != \
                ComponentDegradationLevel.NONE:
            issues.append(
                {"component": "database",
                 "status": self._state_object.database_health.value,
                 "details": self._state_object.database_health_state_str})

        # Check microservice health
        if self._state_object.service_health != \
                ComponentDegradationLevel.NONE:
            issues.append(
                {"component": "service",
                 "status": self._state_object.service_health.value,
                 "details": self._state_object.service_health_state_str})

        if issues:
            status = ServiceDegradationStatus.CRITICAL.value \
                if any(issue["status"] ==
                       ComponentDegradationLevel.FULLY_DEGRADED.value
                       for issue in issues) \
                else ServiceDegradationStatus.DEGRADED.value
            self._logger.debug("Health check reporting %s: %s", status, issues)
        else:
            status = ServiceDegradationStatus.HEALTHY.value

        response: dict = {
            "status": status,
            "dependencies": {
                "database": self._state_object.database_health.value,
                "service": self._state_object.service_health.value
            },
            "issues": issues if issues else None,
            "uptime_seconds": uptime,
            "version": self._state_object.version,
            "scheduled_jobs": self._state_object.scheduled_jobs
        }

        return self._json_response(response, http.HTTPStatus.OK)
