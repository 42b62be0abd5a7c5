"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
import typing


class DailySchedule:
    """
    A fixed time of day at which a job fires once every day, in the local
    time of the host (the same semantics as a ``0 M H * * ?`` cron rule).
    """
    __slots__ = ["_hour", "_minute"]

    def __init__(self, hour: int, minute: int = 0) -> None:
        if not 0 <= hour <= 23:
            raise ValueError(f"Invalid schedule hour '{hour}'")

        if not 0 <= minute <= 59:
            raise ValueError(f"Invalid schedule minute '{minute}'")

        self._hour = hour
        self._minute = minute

    @property
    def hour(self) -> int:
        return self._hour

    @property
    def minute(self) -> int:
        return self._minute

    def next_run_after(self, moment: datetime) -> datetime:
        """
        Calculate the first firing time strictly after a given moment.

        Args:
            moment (datetime): Reference time.

        Returns:
            datetime: Today's firing time if it is still ahead, otherwise
                      tomorrow's.
        """
        candidate = moment.replace(hour=self._hour, minute=self._minute,
                                   second=0, microsecond=0)
        if candidate <= moment:
            candidate += timedelta(days=1)
        return candidate

    def __repr__(self) -> str:
        return f"DailySchedule({self._hour:02d}:{self._minute:02d})"


@dataclass
class ScheduledJob:
    """
    A named coroutine factory bound to a daily schedule.

    Attributes:
        name (str): Name used when logging the job.
        schedule (DailySchedule): When the job fires.
        action (Callable): Zero argument callable returning an awaitable.
        next_run (datetime): Next firing time, calculated on first check.
    """
    name: str
    schedule: DailySchedule
    action: typing.Callable[[], typing.Awaitable[typing.Any]]
    next_run: typing.Optional[datetime] = None
