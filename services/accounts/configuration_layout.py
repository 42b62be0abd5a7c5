"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from accounthub_common.configuration import configuration_setup
from accounthub_common.logging_consts import LOGGING_VALID_LOG_LEVELS
from accounts.constants import (ANONYMOUS_USER,
                                AUDIT_EVENT_RETENTION_DAYS,
                                DEFAULT_LANGUAGE,
                                NOT_ACTIVATED_RETENTION_DAYS,
                                RESET_KEY_VALIDITY_HOURS)

ConfigItem = configuration_setup.ConfigurationSetupItem
ConfigType = configuration_setup.ConfigItemDataType

CONFIGURATION_LAYOUT = configuration_setup.ConfigurationSetup(
    {
        "logging": [
            ConfigItem("log_level", ConfigType.STRING,
                       valid_values=LOGGING_VALID_LOG_LEVELS,
                       default_value="INFO")
        ],
        "accounts": [
            ConfigItem("anonymous_user", ConfigType.STRING,
                       default_value=ANONYMOUS_USER),
            ConfigItem("default_language", ConfigType.STRING,
                       default_value=DEFAULT_LANGUAGE),
            ConfigItem("not_activated_retention_days",
                       ConfigType.UNSIGNED_INT,
                       default_value=NOT_ACTIVATED_RETENTION_DAYS),
            ConfigItem("reset_key_validity_hours", ConfigType.UNSIGNED_INT,
                       default_value=RESET_KEY_VALIDITY_HOURS),
        ],
        "audit": [
            ConfigItem("retention_days", ConfigType.UNSIGNED_INT,
                       default_value=AUDIT_EVENT_RETENTION_DAYS),
        ],
        "scheduler": [
            ConfigItem("user_cleanup_hour", ConfigType.UNSIGNED_INT,
                       default_value=1, max_value=23),
            ConfigItem("audit_cleanup_hour", ConfigType.UNSIGNED_INT,
                       default_value=12, max_value=23),
        ],
        "database": [
            ConfigItem("bootstrap_schema", ConfigType.BOOLEAN,
                       default_value=False),
        ]
    }
)
