"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import time
import typing
from dataclasses import dataclass, field
from accounthub_common.service_health_enums import ComponentDegradationLevel


@dataclass
class StateObject:
    """
    Represents the state of the accounts service, including its health
    status, database status, version, startup time and the outcome of the
    scheduled cleanup jobs.

    Attributes:
        service_health (ComponentDegradationLevel): The current health status
                                                    of the service.
        service_health_state_str (str): A descriptive string representing the
                                        service health state.
        database_health (ComponentDegradationLevel): The current health status
                                                     of the database.
        database_health_state_str (str): A descriptive string representing the
                                         database health state.
        version (str): The version of the service.
        startup_time (int): The timestamp (Unix time) when the service was
                            started.
        scheduled_jobs (dict): Job name to a summary of its last run
                               (``finished`` unix time and ``removed`` count).
    """
    service_health: ComponentDegradationLevel = ComponentDegradationLevel.NONE
    service_health_state_str: str = ""
    database_health: ComponentDegradationLevel = ComponentDegradationLevel.NONE
    database_health_state_str: str = ""
    version: str = ""
    startup_time: int = field(default_factory=lambda: int(time.time()))
    scheduled_jobs: dict[str, dict[str, typing.Any]] = field(
        default_factory=dict)

    def record_job_run(self, job_name: str, removed: int) -> None:
        """
        Record the result of a scheduled cleanup job.

        Args:
            job_name (str): Name of the job.
            removed (int): Number of rows the job removed.
        """
        self.scheduled_jobs[job_name] = {"finished": int(time.time()),
                                         "removed": removed}
