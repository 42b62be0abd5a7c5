import http
import json
import logging
import time
import unittest

from quart import Blueprint, Quart

from accounthub_common.route_decorators import is_route_not_using_db
from accounthub_common.service_health_enums import ComponentDegradationLevel
from accounts.api import create_routes
from accounts.api.health_api_view import HealthApiView
from accounts.state_object import StateObject


class TestHealthApiView(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.state = StateObject(version="V0.1.0-beta",
                                 startup_time=int(time.time()) - 5)
        self.view = HealthApiView(logging.getLogger("t"), self.state)

    async def _body(self):
        response = await self.view.health()
        self.assertEqual(response.status_code, http.HTTPStatus.OK)
        self.assertEqual(response.content_type, "application/json")
        return json.loads(await response.get_data(as_text=True))

    async def test_healthy(self):
        body = await self._body()

        self.assertEqual(body["status"], "healthy")
        self.assertIsNone(body["issues"])
        self.assertEqual(body["dependencies"],
                         {"database": "none", "service": "none"})
        self.assertEqual(body["version"], "V0.1.0-beta")
        self.assertGreaterEqual(body["uptime_seconds"], 5)

    async def test_partially_degraded_database(self):
        self.state.database_health = ComponentDegradationLevel.PART_DEGRADED
        self.state.database_health_state_str = "Database operation failed"

        body = await self._body()

        self.assertEqual(body["status"], "degraded")
        self.assertEqual(body["issues"],
                         [{"component": "database", "status": "partial",
                           "details": "Database operation failed"}])

    async def test_unreachable_database_is_critical(self):
        self.state.database_health = ComponentDegradationLevel.FULLY_DEGRADED
        self.state.service_health = ComponentDegradationLevel.PART_DEGRADED

        body = await self._body()

        self.assertEqual(body["status"], "critical")
        self.assertEqual(len(body["issues"]), 2)

    async def test_reports_scheduled_jobs(self):
        self.state.record_job_run("remove_old_audit_events", 4)

        body = await self._body()

        self.assertEqual(body["scheduled_jobs"]["remove_old_audit_events"]
                         ["removed"], 4)


class TestCreateRoutes(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.logger = logging.getLogger("test_logger")
        self.logger.addHandler(logging.NullHandler())

    async def test_health_route_registered(self):
        blueprint = create_routes(self.logger, StateObject())
        self.assertIsInstance(blueprint, Blueprint)
        self.assertEqual(blueprint.name, "api_routes")

        app = Quart(__name__)
        app.register_blueprint(blueprint)

        routes = [rule.rule for rule in app.url_map.iter_rules()]
        self.assertIn("/health", routes)

        client = app.test_client()
        response = await client.get("/health")
        self.assertEqual(response.status_code, 200)
        body = json.loads(await response.get_data(as_text=True))
        self.assertEqual(body["status"], "healthy")

    async def test_health_route_does_not_use_database(self):
        app = Quart(__name__)
        app.register_blueprint(create_routes(self.logger, StateObject()))

        endpoint = next(rule.endpoint for rule in app.url_map.iter_rules()
                        if rule.rule == "/health")

        self.assertTrue(is_route_not_using_db(app.view_functions[endpoint]))
