"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""

NOT_USING_DB_ATTRIBUTE = "_not_using_db"


def route_not_using_db(func):
    """
    Decorator to mark a route handler as not requiring database access.

    The ``before_request`` hook of a service checks for the marker with
    ``is_route_not_using_db`` and skips acquiring a pooled connection, so
    endpoints such as the health check keep answering while the database is
    unreachable.

    Args:
        func (Callable): The route handler function to decorate.

    Returns:
        Callable: The same function with the marker attribute set.
    """
    setattr(func, NOT_USING_DB_ATTRIBUTE, True)
    return func


def is_route_not_using_db(func) -> bool:
    """
    Check whether a view function was marked with ``route_not_using_db``.

    Args:
        func (Callable): View function, may be None for unknown endpoints.

    Returns:
        bool: True if the route does not need a database connection.
    """
    return bool(getattr(func, NOT_USING_DB_ATTRIBUTE, False))
