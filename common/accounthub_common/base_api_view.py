"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import http
import json
import typing
from quart import Response


class BaseApiView:
    """ Base class for API views. """
    # pylint: disable=too-few-public-methods

    @staticmethod
    def _json_response(payload: typing.Any,
                       status: http.HTTPStatus = http.HTTPStatus.OK
                       ) -> Response:
        """
        Build a JSON response.

        Args:
            payload: JSON serialisable body, datetimes are rendered with
                     ``str``.
            status: HTTP status of the response.

        Returns:
            quart.Response with ``application/json`` content type.
        """
        return Response(json.dumps(payload, default=str),
                        status=status,
                        content_type="application/json")
