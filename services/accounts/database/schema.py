"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
import logging
import typing
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable
from accounts.constants import DEFAULT_AUTHORITIES
from .base import Base

SEED_AUTHORITY_QUERY = """
    INSERT INTO jhi_authority (name) VALUES ($1)
    ON CONFLICT (name) DO NOTHING
"""


def schema_statements() -> list[str]:
    """
    Render the DDL of every table declared on ``Base`` for PostgreSQL.

    Tables come out in dependency order and every statement is idempotent
    (``IF NOT EXISTS``), so the list can be replayed against an existing
    database.

    Returns:
        list[str]: CREATE TABLE / CREATE INDEX statements.
    """
    dialect = postgresql.dialect()
    statements: list[str] = []

    for table in Base.metadata.sorted_tables:
        statements.append(
            str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)))

        for index in sorted(table.indexes, key=lambda idx: idx.name):
            statements.append(
                str(CreateIndex(index, if_not_exists=True).compile(
                    dialect=dialect)))

    return statements


async def bootstrap_schema(db,
                           logger: logging.Logger,
                           authorities: typing.Iterable[str] =
                           DEFAULT_AUTHORITIES) -> None:
    """
    Create any missing table and seed the fixed authorities, in a single
    transaction.

    Args:
        db: asyncpg connection.
        logger (logging.Logger): Logger for progress messages.
        authorities (Iterable[str]): Role names to seed.
    """
    logger.info("Bootstrapping accounts database schema")

    async with db.transaction():
        for statement in schema_statements():
            await db.execute(statement)

        await db.executemany(SEED_AUTHORITY_QUERY,
                             [(name,) for name in authorities])

    logger.info("Accounts database schema ready")
