import asyncio
import importlib
import os
import types
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg

import accounts
from accounthub_common.route_decorators import route_not_using_db


class TestDatabaseConfig(unittest.TestCase):
    def tearDown(self):
        importlib.reload(accounts)

    def test_defaults(self):
        env = {key: value for key, value in os.environ.items()
               if not key.startswith("ACCOUNTHUB_ACCOUNTS_DB_")}
        with patch.dict(os.environ, env, clear=True):
            importlib.reload(accounts)
            cfg = accounts.DatabaseConfig()

        self.assertEqual(cfg.DB_USER, "__INVALID__")
        self.assertEqual(cfg.DB_PASSWORD, "__INVALID__")
        self.assertEqual(cfg.DB_NAME, "__INVALID__")
        self.assertEqual(cfg.DB_HOST, "127.0.0.1")
        self.assertEqual(cfg.DB_PORT, 5432)
        self.assertEqual(cfg.DB_POOL_MAX_SIZE, 10)

    def test_env_overrides(self):
        with patch.dict(os.environ, {
                "ACCOUNTHUB_ACCOUNTS_DB_USER": "bob",
                "ACCOUNTHUB_ACCOUNTS_DB_PASSWORD": "pw",
                "ACCOUNTHUB_ACCOUNTS_DB_NAME": "dbname",
                "ACCOUNTHUB_ACCOUNTS_DB_HOST": "dbhost",
                "ACCOUNTHUB_ACCOUNTS_DB_PORT": "7777",
                "ACCOUNTHUB_ACCOUNTS_DB_POOL_MAX_SIZE": "3"}):
            importlib.reload(accounts)
            cfg = accounts.DatabaseConfig()

        self.assertEqual(cfg.DB_USER, "bob")
        self.assertEqual(cfg.DB_PASSWORD, "pw")
        self.assertEqual(cfg.DB_NAME, "dbname")
        self.assertEqual(cfg.DB_HOST, "dbhost")
        self.assertEqual(cfg.DB_PORT, 7777)
        self.assertEqual(cfg.DB_POOL_MAX_SIZE, 3)


class TestCancelBackgroundTasks(unittest.IsolatedAsyncioTestCase):
    async def test_no_task(self):
        if hasattr(accounts.app, "background_task"):
            delattr(accounts.app, "background_task")
        await accounts.cancel_background_tasks()

    async def test_with_task(self):
        async def dummy():
            await asyncio.sleep(10)
        task = asyncio.create_task(dummy())
        accounts.app.background_task = task
        await accounts.cancel_background_tasks()
        self.assertTrue(task.cancelled())
        delattr(accounts.app, "background_task")


class TestCreateDbPool(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.cfg = types.SimpleNamespace(DB_USER="u", DB_PASSWORD="p",
                                         DB_NAME="n", DB_HOST="h",
                                         DB_PORT=5432, DB_POOL_MAX_SIZE=4)

    @patch("accounts.asyncpg.create_pool", new_callable=AsyncMock)
    async def test_success(self, mock_create):
        mock_pool = AsyncMock()
        mock_create.return_value = mock_pool
        res = await accounts.create_db_pool(self.cfg)
        self.assertIs(res, mock_pool)
        mock_create.assert_awaited_once()
        self.assertEqual(mock_create.await_args.kwargs["max_size"], 4)

    @patch("accounts.cancel_background_tasks", new_callable=AsyncMock)
    @patch("accounts.os._exit", new_callable=MagicMock)
    async def test_invalid_password_error(self, mock_exit, mock_cancel):
        with patch("accounts.asyncpg.create_pool",
                   side_effect=asyncpg.InvalidPasswordError("denied")) \
                as mock_create:
            await accounts.create_db_pool(self.cfg)
        mock_create.assert_called_once()
        mock_cancel.assert_awaited_once()
        mock_exit.assert_called_once_with(1)

    @patch("accounts.cancel_background_tasks", new_callable=AsyncMock)
    @patch("accounts.os._exit", new_callable=MagicMock)
    async def test_invalid_catalog_error(self, mock_exit, mock_cancel):
        with patch("accounts.asyncpg.create_pool",
                   side_effect=asyncpg.InvalidCatalogNameError("no db")):
            await accounts.create_db_pool(self.cfg)
        mock_cancel.assert_awaited_once()
        mock_exit.assert_called_once_with(1)

    @patch("accounts.cancel_background_tasks", new_callable=AsyncMock)
    @patch("accounts.os._exit", new_callable=MagicMock)
    @patch("accounts.asyncio.sleep", new_callable=AsyncMock)
    async def test_retryable_errors(self, mock_sleep, mock_exit, mock_cancel):
        for error in (asyncpg.CannotConnectNowError("starting"),
                      asyncio.TimeoutError(),
                      OSError("boom"),
                      asyncpg.PostgresError("fail")):
            with self.subTest(error=type(error).__name__):
                mock_sleep.reset_mock()
                mock_exit.reset_mock()
                mock_cancel.reset_mock()
                with patch("accounts.asyncpg.create_pool",
                           side_effect=error) as mock_create:
                    await accounts.create_db_pool(self.cfg, retries=2,
                                                  base_delay=0.01)
                self.assertEqual(mock_create.call_count, 2)
                mock_sleep.assert_awaited_once()
                mock_cancel.assert_awaited_once()
                mock_exit.assert_called_once_with(1)


class TestRequestHooks(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.mock_pool = AsyncMock()
        self.mock_conn = AsyncMock()
        self.mock_pool.acquire.return_value = self.mock_conn
        accounts.app.db_pool = self.mock_pool

    async def test_acquire_connection_success(self):
        accounts.app.view_functions["endpoint"] = lambda: None
        dummy_request = types.SimpleNamespace(endpoint="endpoint")
        dummy_g = types.SimpleNamespace()

        with patch.object(accounts, "request", dummy_request), \
                patch.object(accounts, "g", dummy_g):
            result = await accounts.acquire_connection()

        self.assertIsNone(result)
        self.assertIs(dummy_g.db, self.mock_conn)
        self.mock_pool.acquire.assert_awaited_once_with(timeout=2.0)

    async def test_acquire_connection_skip_not_using_db(self):
        @route_not_using_db
        async def handler():
            pass
        accounts.app.view_functions["x"] = handler

        dummy_request = types.SimpleNamespace(endpoint="x")
        dummy_g = types.SimpleNamespace()

        with patch.object(accounts, "request", dummy_request), \
                patch.object(accounts, "g", dummy_g):
            result = await accounts.acquire_connection()

        self.assertIsNone(result)
        self.assertFalse(hasattr(dummy_g, "db"))
        self.mock_pool.acquire.assert_not_called()

    async def test_acquire_connection_timeout(self):
        self.mock_pool.acquire.side_effect = asyncio.TimeoutError
        accounts.app.view_functions["endpoint"] = lambda: None

        req = types.SimpleNamespace(endpoint="endpoint")
        with patch.object(accounts, "request", req), \
                patch.object(accounts, "g", types.SimpleNamespace()):
            result = await accounts.acquire_connection()

        self.assertEqual(result[1], 503)

    async def test_release_connection_with_db(self):
        g = types.SimpleNamespace(db=self.mock_conn)
        with patch("accounts.g", g):
            resp = MagicMock()
            result = await accounts.release_connection(resp)
        self.mock_pool.release.assert_awaited_with(self.mock_conn)
        self.assertIs(result, resp)

    async def test_release_connection_without_db(self):
        g = types.SimpleNamespace()
        with patch("accounts.g", g):
            resp = MagicMock()
            result = await accounts.release_connection(resp)
        self.assertIs(result, resp)
        self.mock_pool.release.assert_not_called()


class TestLifecycleHooks(unittest.IsolatedAsyncioTestCase):
    @patch("accounts.SERVICE_APP")
    @patch("accounts.create_db_pool", new_callable=AsyncMock)
    async def test_startup_success(self, mock_dbpool, mock_service_app):
        mock_service_app.initialise = AsyncMock(return_value=True)
        mock_service_app.attach_database = AsyncMock()
        mock_service_app.run = AsyncMock()

        await accounts.startup()
        await accounts.app.background_task

        mock_dbpool.assert_awaited()
        mock_service_app.attach_database.assert_awaited_once_with(
            mock_dbpool.return_value)
        mock_service_app.run.assert_called_once()
        delattr(accounts.app, "background_task")

    @patch("accounts.SERVICE_APP")
    @patch("accounts.create_db_pool", new_callable=AsyncMock)
    @patch("accounts.os._exit")
    async def test_startup_failure(self, mock_exit, mock_dbpool,
                                   mock_service_app):
        mock_service_app.initialise = AsyncMock(return_value=False)
        mock_service_app.attach_database = AsyncMock()
        mock_service_app.run = AsyncMock()

        await accounts.startup()
        await accounts.app.background_task

        mock_exit.assert_called_once_with(1)
        delattr(accounts.app, "background_task")

    @patch("accounts.SERVICE_APP")
    @patch("accounts.create_db_pool", new_callable=AsyncMock)
    @patch("accounts.os._exit")
    async def test_startup_database_preparation_failure(
            self, mock_exit, mock_dbpool, mock_service_app):
        mock_service_app.initialise = AsyncMock(return_value=True)
        mock_service_app.attach_database = AsyncMock(
            side_effect=OSError("refused"))
        mock_service_app.run = AsyncMock()

        with patch("builtins.print"):
            await accounts.startup()
        await accounts.app.background_task

        mock_exit.assert_called_once_with(1)
        delattr(accounts.app, "background_task")

    @patch("accounts.SERVICE_APP")
    @patch("accounts.cancel_background_tasks", new_callable=AsyncMock)
    async def test_shutdown(self, mock_cancel, mock_service_app):
        fake_pool = AsyncMock()
        accounts.app.db_pool = fake_pool

        await accounts.shutdown()

        mock_service_app.shutdown_event.set.assert_called_once()
        mock_cancel.assert_awaited_once()
        fake_pool.close.assert_awaited_once()

    @patch("accounts.SERVICE_APP")
    @patch("accounts.cancel_background_tasks", new_callable=AsyncMock)
    async def test_shutdown_app_is_none(self, mock_cancel, mock_service_app):
        with patch("accounts.app", None), \
                patch("builtins.print") as mock_print:
            await accounts.shutdown()

        mock_print.assert_called_with(
            "[WARN] app is None on shutdown, skipping cleanup", flush=True)
        mock_service_app.shutdown_event.set.assert_called_once()
        mock_cancel.assert_not_awaited()
