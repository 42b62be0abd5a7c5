"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import logging
import quart
from accounts.state_object import StateObject
from .health_api import create_blueprint as create_health_bp


def create_routes(logger: logging.Logger,
                  state_object: StateObject) -> quart.Blueprint:
    """
    Create and configure the API route blueprint for the service.

    Args:
        logger (logging.Logger): Logger instance for logging within the APIS.
        state_object (StateObject): Service state reported by the APIs.

    Returns:
        quart.Blueprint: The configured API blueprint with registered
                         sub-routes.
    """
    api_bp = quart.Blueprint("api_routes", __name__)

    api_bp.register_blueprint(create_health_bp(logger, state_object))

    return api_bp
