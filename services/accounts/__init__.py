"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import asyncio
import os
import random
from quart import g, Quart, request
import asyncpg
from accounthub_common.route_decorators import is_route_not_using_db
from accounts.application import Application


# Quart application instance
app = Quart(__name__)

SERVICE_APP: Application = Application(app)


class DatabaseConfig:
    """
    Configuration container for database connection settings.

    The values are loaded from environment variables and provide
    fallbacks if the variables are not set.

    Attributes:
        DB_USER (str): Database username, from
            ``ACCOUNTHUB_ACCOUNTS_DB_USER``. Defaults to "__INVALID__".
        DB_PASSWORD (str): Database password, from
            ``ACCOUNTHUB_ACCOUNTS_DB_PASSWORD``. Defaults to "__INVALID__".
        DB_NAME (str): Database name, from ``ACCOUNTHUB_ACCOUNTS_DB_NAME``.
            Defaults to "__INVALID__".
        DB_HOST (str): Database host address, from
            ``ACCOUNTHUB_ACCOUNTS_DB_HOST``. Defaults to "127.0.0.1".
        DB_PORT (int): Database port number, from
            ``ACCOUNTHUB_ACCOUNTS_DB_PORT``. Defaults to 5432.
        DB_POOL_MAX_SIZE (int): Maximum pooled connections, from
            ``ACCOUNTHUB_ACCOUNTS_DB_POOL_MAX_SIZE``. Defaults to 10.
    """
    # pylint: disable=too-few-public-methods
    DB_USER = os.getenv("ACCOUNTHUB_ACCOUNTS_DB_USER", "__INVALID__")
    DB_PASSWORD = os.getenv("ACCOUNTHUB_ACCOUNTS_DB_PASSWORD", "__INVALID__")
    DB_NAME = os.getenv("ACCOUNTHUB_ACCOUNTS_DB_NAME", "__INVALID__")
    DB_HOST = os.getenv("ACCOUNTHUB_ACCOUNTS_DB_HOST", "127.0.0.1")
    DB_PORT = int(os.getenv("ACCOUNTHUB_ACCOUNTS_DB_PORT", "5432"))
    DB_POOL_MAX_SIZE = int(os.getenv("ACCOUNTHUB_ACCOUNTS_DB_POOL_MAX_SIZE",
                                     "10"))


async def cancel_background_tasks():
    """
    Cancel and await the application's background task, if it exists.

    The task (the service run loop, which also fires the scheduled cleanup
    jobs) is stored on the global ``app`` object under ``background_task``.
    Any ``asyncio.CancelledError`` raised during cancellation is suppressed.
    """
    task = getattr(app, "background_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


@app.before_serving
async def startup() -> None:
    """
    Code executed before Quart has begun serving http requests.

    returns:
        None
    """
    if not await SERVICE_APP.initialise():
        os._exit(1)

    app.db_pool = await create_db_pool(DatabaseConfig)

    try:
        await SERVICE_APP.attach_database(app.db_pool)

    except (asyncpg.PostgresError, OSError) as ex:
        print(f"[FATAL] Unable to prepare accounts database: {ex}", flush=True)
        os._exit(1)

    app.background_task = asyncio.create_task(SERVICE_APP.run())


@app.after_serving
async def shutdown() -> None:
    """
    Code executed after Quart has stopped serving http requests.

    returns:
        None
    """
    SERVICE_APP.shutdown_event.set()

    if app is None:
        print("[WARN] app is None on shutdown, skipping cleanup", flush=True)
        return

    await cancel_background_tasks()

    db_pool = getattr(app, "db_pool", None)
    if db_pool is not None:
        await db_pool.close()


@app.before_request
async def acquire_connection():
    """
    Acquire a database connection from the pool before handling a request.

    The connection is stored in the request context (``g.db``) for the
    account services of the request. Routes marked with
    ``route_not_using_db`` skip this step.

    Returns:
        tuple | None: A JSON error with a 503 status code if acquiring a
            connection times out, otherwise ``None`` to continue request
            processing.
    """
    view_func = app.view_functions.get(request.endpoint)
    if is_route_not_using_db(view_func):
        return None

    try:
        g.db = await app.db_pool.acquire(timeout=2.0)

    except asyncio.TimeoutError:
        return {"error": "Service unavailable"}, 503

    return None


@app.after_request
async def release_connection(response):
    """
    Release the request's database connection back to the pool.

    Args:
        response (quart.wrappers.Response): The response object generated
            by the request handler.

    Returns:
        quart.wrappers.Response: The same response object, unchanged.
    """
    db = getattr(g, "db", None)
    if db is not None:
        await app.db_pool.release(db)
    return response


async def create_db_pool(config,
                         retries: int=5,
                         base_delay: float=1.0
                         ) -> asyncpg.pool.Pool:
    """
    Create and return an asyncpg connection pool with retries and error
    handling.

    Retry-able failures back off exponentially with jitter. If the pool
    cannot be created after the maximum number of retries, or a failure is
    not retry-able (bad credentials, unknown database), background tasks are
    cancelled and the process exits.

    Args:
        config (DatabaseConfig): Database connection parameters.
        retries (int, optional): Maximum number of attempts. Defaults to 5.
        base_delay (float, optional): Base delay (in seconds) for exponential
            backoff. Defaults to 1.0.

    Returns:
        asyncpg.pool.Pool: A connection pool instance if successfully created.
    """
    for attempt in range(1, retries + 1):
        try:
            pool = await asyncpg.create_pool(
                user=config.DB_USER,
                password=config.DB_PASSWORD,
                database=config.DB_NAME,
                host=config.DB_HOST,
                port=config.DB_PORT,
                min_size=1,
                max_size=config.DB_POOL_MAX_SIZE,
                timeout=5.0
            )

            print(f"[INFO] Connected to database {config.DB_NAME} "
                  f"on {config.DB_HOST}:{config.DB_PORT} (attempt {attempt})",
                  flush=True)

            return pool

        except asyncpg.InvalidPasswordError:
            print("[FATAL] Database authentication failed (check user/"
                  "password).", flush=True)
            break

        except asyncpg.InvalidCatalogNameError:
            print(f"[FATAL] Database '{config.DB_NAME}' does not exist.",
                  flush=True)
            break

        except asyncpg.CannotConnectNowError:
            print("[FATAL] Database is starting up or cannot accept connections "
                  "right now.", flush=True)

        except asyncio.TimeoutError:
            print("[FATAL] Database connection timed out.", flush=True)

        except OSError as ex:
            print(f"[FATAL] Database network/connection error: {ex}",
                  flush=True)

        except asyncpg.PostgresError as ex:
            print(f"[FATAL] Database general Postgres error: {ex}", flush=True)

        # Retry-able errors
        delay = base_delay * (2 ** (attempt - 1))  # exponential backoff
        jitter = random.uniform(0, 0.3 * delay)   # add jitter
        wait_time = delay + jitter

        if attempt < retries:
            print(f"[INFO] Retrying database connection in "
                  f"{wait_time:.1f}s...", flush=True)
            await asyncio.sleep(wait_time)
            continue

        print("[FATAL] All database retries exhausted. Could not connect!",
              flush=True)
        break

    await cancel_background_tasks()

    os._exit(1)  # exit on failure
