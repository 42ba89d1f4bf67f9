"""Alembic environment for the upload queue schema.

Migrations target the same database the service uses: UPQUEUE_DATABASE_URL
(or DATABASE_URL) when set, otherwise ``sqlalchemy.url`` from alembic.ini.
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

from upqueue.database import Base, normalize_async_url
from upqueue.models.orm import QueueEntryModel  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    raw = os.environ.get("UPQUEUE_DATABASE_URL") or os.environ.get("DATABASE_URL")
    return normalize_async_url(raw or config.get_main_option("sqlalchemy.url") or "")


def _configure_and_run(**options) -> None:
    context.configure(
        target_metadata=target_metadata,
        # ALTER TABLE support on sqlite
        render_as_batch=True,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    _configure_and_run(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def _run_with_connection(connection: Connection) -> None:
    _configure_and_run(connection=connection)


async def run_migrations_online() -> None:
    """Apply migrations through the async driver."""
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
