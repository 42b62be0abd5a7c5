"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import asyncio
import logging
import os
import sys
import typing
from accounthub_common import __version__
from accounthub_common.configuration.configuration import (
    BOOLEAN_FALSE_VALUES, BOOLEAN_TRUE_VALUES, Configuration)
from accounthub_common.base_microservice_application \
    import BaseMicroserviceApplication
from accounthub_common.daily_schedule import DailySchedule
from accounthub_common.logging_consts import LOGGING_DATETIME_FORMAT_STRING, \
                                             LOGGING_DEFAULT_LOG_LEVEL, \
                                             LOGGING_LOG_FORMAT_STRING
from accounts.api import create_routes
from accounts.configuration_layout import CONFIGURATION_LAYOUT
from accounts.data_access_layer.audit_event_data_access_layer import \
    AuditEventDataAccessLayer
from accounts.data_access_layer.authority_data_access_layer import \
    AuthorityDataAccessLayer
from accounts.data_access_layer.user_data_access_layer import \
    UserDataAccessLayer
from accounts.data_services.audit_event_data_service import \
    AuditEventDataService
from accounts.data_services.user_data_service import UserDataService
from accounts.database.schema import bootstrap_schema
from accounts.state_object import StateObject

CONFIG_ENV_PREFIX = "ACCOUNTHUB_"

USER_CLEANUP_JOB = "remove_not_activated_users"
AUDIT_CLEANUP_JOB = "remove_old_audit_events"


class Application(BaseMicroserviceApplication):
    """ AccountHub Accounts Service """

    def __init__(self, quart_instance):
        super().__init__()
        self._quart_instance = quart_instance
        self._config = None
        self._db_pool = None
        self._state_object: StateObject = StateObject()

        self._logger = logging.getLogger(__name__)
        log_format = logging.Formatter(LOGGING_LOG_FORMAT_STRING,
                                       LOGGING_DATETIME_FORMAT_STRING)
        console_stream = logging.StreamHandler(sys.stdout)
        console_stream.setFormatter(log_format)
        self._logger.setLevel(LOGGING_DEFAULT_LOG_LEVEL)
        self._logger.propagate = True
        self._logger.addHandler(console_stream)

    @property
    def state_object(self) -> StateObject:
        """ Service state shared with the health endpoint. """
        return self._state_object

    async def _initialise(self) -> bool:
        self._logger.info("AccountHub Accounts Microservice %s",
                          __version__)

        config_file = os.getenv("ACCOUNTHUB_ACCOUNTS_CONFIG_FILE", None)
        raw_required = os.getenv("ACCOUNTHUB_ACCOUNTS_CONFIG_FILE_REQUIRED",
                                 "false").strip().lower()

        if raw_required in BOOLEAN_TRUE_VALUES:
            config_file_required: bool = True
        elif raw_required in BOOLEAN_FALSE_VALUES:
            config_file_required: bool = False
        else:
            print(f"[FATAL ERROR] Invalid value for "
                  f"ACCOUNTHUB_ACCOUNTS_CONFIG_FILE_REQUIRED: '{raw_required}'",
                  flush=True)
            return False

        if not config_file and config_file_required:
            print("[FATAL ERROR] Configuration file missing!", flush=True)
            return False

        self._config = Configuration(CONFIG_ENV_PREFIX)
        self._config.configure(CONFIGURATION_LAYOUT,
                               config_file,
                               config_file_required)

        try:
            self._config.process_config()

        except ValueError as ex:
            self._logger.critical("Configuration error : %s", ex)
            return False

        self._logger.setLevel(self._config.get_entry("logging", "log_level"))

        self._display_configuration_details()

        # Set the version string on state object.
        self._state_object.version = __version__

        self._quart_instance.register_blueprint(
            create_routes(self._logger, self._state_object))

        self.add_daily_job(
            USER_CLEANUP_JOB,
            DailySchedule(self._config.get_entry("scheduler",
                                                 "user_cleanup_hour")),
            self.remove_not_activated_users)
        self.add_daily_job(
            AUDIT_CLEANUP_JOB,
            DailySchedule(self._config.get_entry("scheduler",
                                                 "audit_cleanup_hour")),
            self.remove_old_audit_events)

        return True

    async def attach_database(self, db_pool) -> None:
        """
        Hand the connection pool to the service, creating the schema first
        when ``database.bootstrap_schema`` is enabled.

        Args:
            db_pool (asyncpg.pool.Pool): Pool used by the scheduled jobs.
        """
        self._db_pool = db_pool

        if self._config is not None and \
                self._config.get_entry("database", "bootstrap_schema"):
            async with self._db_pool.acquire() as db:
                await bootstrap_schema(db, self._logger)

    def create_user_data_service(self, db) -> UserDataService:
        """
        Build a user lifecycle service bound to one connection.

        Args:
            db: asyncpg connection used for the whole unit of work.
        """
        accounts_config: dict = self._config.get_section("accounts")
        return UserDataService(
            UserDataAccessLayer(db, self._logger, self._state_object),
            AuthorityDataAccessLayer(db, self._logger, self._state_object),
            self._logger,
            anonymous_user=accounts_config["anonymous_user"],
            default_language=accounts_config["default_language"],
            not_activated_retention_days=accounts_config[
                "not_activated_retention_days"],
            reset_key_validity_hours=accounts_config[
                "reset_key_validity_hours"])

    def create_audit_event_data_service(self, db) -> AuditEventDataService:
        """
        Build an audit event service bound to one connection.
        """
        return AuditEventDataService(
            AuditEventDataAccessLayer(db, self._logger, self._state_object),
            self._logger,
            retention_days=self._config.get_entry("audit", "retention_days"),
            anonymous_user=self._config.get_entry("accounts",
                                                  "anonymous_user"))

    async def remove_not_activated_users(self) -> typing.Optional[int]:
        """
        Scheduled job: delete registrations never activated within the
        retention window.

        Returns:
            Number of users removed, None when no database is attached.
        """
        if self._db_pool is None:
            self._logger.warning("No database attached, skipping %s",
                                 USER_CLEANUP_JOB)
            return None

        async with self._db_pool.acquire() as db:
            removed = await self.create_user_data_service(db).\
                remove_not_activated_users()

        self._logger.info("Removed %d not activated user(s)", len(removed))
        self._state_object.record_job_run(USER_CLEANUP_JOB, len(removed))
        return len(removed)

    async def remove_old_audit_events(self) -> typing.Optional[int]:
        """
        Scheduled job: delete audit events older than the retention period.

        Returns:
            Number of events removed, None when no database is attached.
        """
        if self._db_pool is None:
            self._logger.warning("No database attached, skipping %s",
                                 AUDIT_CLEANUP_JOB)
            return None

        async with self._db_pool.acquire() as db:
            removed = await self.create_audit_event_data_service(db).\
                remove_old_audit_events()

        self._logger.info("Removed %d old audit event(s)", removed)
        self._state_object.record_job_run(AUDIT_CLEANUP_JOB, removed)
        return removed

    async def _main_loop(self) -> None:
        """ Abstract method for main application. """
        await asyncio.sleep(0.1)

    async def _shutdown(self):
        """ Shutdown logic. """
        self._db_pool = None

    def _display_configuration_details(self):
        self._logger.info("Configuration")
        self._logger.info("=============")
        self._logger.info("[logging]")
        self._logger.info("=> Logging log level              : %s",
                          self._config.get_entry("logging", "log_level"))
        self._logger.info("[accounts]")
        self._logger.info("=> Anonymous user                 : %s",
                          self._config.get_entry("accounts",
                                                 "anonymous_user"))
        self._logger.info("=> Default language               : %s",
                          self._config.get_entry("accounts",
                                                 "default_language"))
        self._logger.info("=> Not activated retention (days) : %s",
                          self._config.get_entry(
                              "accounts", "not_activated_retention_days"))
        self._logger.info("=> Reset key validity (hours)     : %s",
                          self._config.get_entry(
                              "accounts", "reset_key_validity_hours"))
        self._logger.info("[audit]")
        self._logger.info("=> Retention (days)               : %s",
                          self._config.get_entry("audit", "retention_days"))
        self._logger.info("[scheduler]")
        self._logger.info("=> User cleanup hour              : %s",
                          self._config.get_entry("scheduler",
                                                 "user_cleanup_hour"))
        self._logger.info("=> Audit cleanup hour             : %s",
                          self._config.get_entry("scheduler",
                                                 "audit_cleanup_hour"))
        self._logger.info("[database]")
        self._logger.info("=> Bootstrap schema               : %s",
                          self._config.get_entry("database",
                                                 "bootstrap_schema"))
