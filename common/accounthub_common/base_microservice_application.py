"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import abc
import asyncio
from datetime import datetime
import logging
import typing
from accounthub_common.daily_schedule import DailySchedule, ScheduledJob


class BaseMicroserviceApplication(abc.ABC):
    """ Base microservice class. """
    __slots__ = ["_is_initialised", "_logger", "_scheduled_jobs",
                 "_shutdown_complete", "_shutdown_event"]

    def __init__(self):
        self._is_initialised: bool = False
        self._logger: typing.Optional[logging.Logger] = None
        self._scheduled_jobs: list[ScheduledJob] = []
        self._shutdown_event: asyncio.Event = asyncio.Event()
        self._shutdown_complete: asyncio.Event = asyncio.Event()

    @property
    def logger(self) -> logging.Logger:
        """
        Property getter for logger instance.

        returns:
            Returns the logger instance.
        """
        return self._logger

    @logger.setter
    def logger(self, logger : logging.Logger) -> None:
        """
        Property setter for logger instance.

        parameters:
            logger (logging.Logger) : Logger instance.
        """
        self._logger = logger

    @property
    def shutdown_event(self) -> asyncio.Event:
        """
        Event used to signal the shutdown of the service.
        """
        return self._shutdown_event

    @property
    def shutdown_complete(self) -> asyncio.Event:
        """
        Event that indicates the service has completed its shutdown process.
        """
        return self._shutdown_complete

    @property
    def scheduled_jobs(self) -> list[ScheduledJob]:
        """ Jobs registered with ``add_daily_job``. """
        return list(self._scheduled_jobs)

    def add_daily_job(self,
                      name: str,
                      schedule: DailySchedule,
                      action: typing.Callable[[], typing.Awaitable]) -> None:
        """
        Register a job that the run loop fires once a day.

        parameters:
            name (str) : Job name, used in log messages.
            schedule (DailySchedule) : Time of day the job fires.
            action (Callable) : Zero argument coroutine function.
        """
        self._scheduled_jobs.append(ScheduledJob(name, schedule, action))

    async def initialise(self) -> bool:
        """
        Microservice initialisation.  It should return a boolean
        (True => Successful, False => Unsuccessful), upon success
        self._is_initialised is set to True.

        Returns:
            Boolean: True => Successful, False => Unsuccessful.
        """
        if await self._initialise() is True:
            self._is_initialised = True
            return True

        await self.stop()

        return False

    async def run(self) -> None:
        """
        Start the microservice.
        """

        if not self._is_initialised:
            self._logger.warning("Microservice is not initialised. Exiting run loop.")
            return

        self._logger.info("Microservice starting main loop.")

        try:
            while True:
                if self.shutdown_event.is_set():
                    break

                await self._main_loop()
                await self.run_due_jobs()
                await asyncio.sleep(0.1)

        except KeyboardInterrupt:
            self._logger.debug("Service: Keyboard interrupt received.")
            self._shutdown_event.set()

        except asyncio.CancelledError:
            self._logger.debug("Service: Cancellation received.")
            raise

        finally:
            self._logger.info("Exiting microservice run loop...")
            await self.stop()
            self._logger.info("Shutdown complete.")

    async def run_due_jobs(self, now: typing.Optional[datetime] = None) -> int:
        """
        Fire every scheduled job whose next run time has been reached.

        A job that raises is logged and rescheduled, it never stops the run
        loop.

        parameters:
            now (datetime) : Reference time, defaults to the local time.

        returns:
            Number of jobs fired.
        """
        now = now or datetime.now()
        fired: int = 0

        for job in self._scheduled_jobs:
            if job.next_run is None:
                job.next_run = job.schedule.next_run_after(now)
                self._logger.debug("Scheduled job '%s' first run at %s",
                                   job.name, job.next_run)

            if now < job.next_run:
                continue

            fired += 1
            self._logger.info("Running scheduled job '%s'", job.name)

            try:
                await job.action()

            except asyncio.CancelledError:
                raise

            except Exception as ex:  # pylint: disable=broad-exception-caught
                self._logger.exception("Scheduled job '%s' failed: %s",
                                       job.name, ex)

            job.next_run = job.schedule.next_run_after(now)

        return fired

    async def stop(self) -> None:
        """
        Stop the microservice, it will wait until shutdown has been marked as
        completed before calling the shutdown method.
        """

        self._logger.info("Stopping microservice...")
        self._logger.info('Waiting for microservice shutdown to complete')

        self._shutdown_event.set()

        await self._shutdown()
        self._shutdown_complete.set()

        self._logger.info('Microservice shutdown complete...')

    async def _initialise(self) -> bool:
        """
        Microservice initialisation.  It should return a boolean
        (True => Successful, False => Unsuccessful).

        Returns:
            Boolean: True => Successful, False => Unsuccessful.
        """
        return True

    @abc.abstractmethod
    async def _main_loop(self) -> None:
        """ Abstract method for main microservice loop. """

    @abc.abstractmethod
    async def _shutdown(self):
        """ Abstract method for microservice shutdown. """
