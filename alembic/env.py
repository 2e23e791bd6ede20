"""
alembic.env

Alembic migration environment for the `profiles` schema.

Notes:
- Executed by Alembic, not imported by the FastAPI runtime. Dev/test create
  tables on startup instead (`letlog.db.init_db`).
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from letlog.db import models  # noqa: F401  # registers tables on Base.metadata
from letlog.db.base import Base
from letlog.db.session import sync_database_url
from letlog.settings import Settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _get_database_url() -> str:
    url = os.environ.get("LETLOG_DATABASE_URL") or Settings().database_url
    # Migrations run on a sync connection.
    return sync_database_url(url)


def run_migrations_offline() -> None:
    context.configure(
        url=_get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
