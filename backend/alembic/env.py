"""
Alembic migration environment — async variant.

  • DB URL comes from upview.core.config, not alembic.ini, so the same
    .env drives the app and its migrations.
  • target_metadata is Base.metadata; every model module is imported
    below so autogenerate sees the full schema.
  • SQLite (local dev) gets batch mode so ALTERs work there too.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from upview.core.config import settings
from upview.core.database import Base

import upview.models.avatar_cache  # noqa: F401
import upview.models.credential  # noqa: F401
import upview.models.feedback  # noqa: F401
import upview.models.player  # noqa: F401
import upview.models.rate_event  # noqa: F401
import upview.models.subscription  # noqa: F401
import upview.models.user_profile  # noqa: F401
import upview.models.workspace  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
