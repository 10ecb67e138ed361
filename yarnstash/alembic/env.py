"""Alembic environment configuration."""

from __future__ import annotations

import logging
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from yarnstash.config import config as app_config
from yarnstash.database import to_sync_url
from yarnstash.models import Base

# Interpret the config file for Python logging.
if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger(__name__)

target_metadata = Base.metadata


def _database_url() -> str:
    # Database.migrate passes the URL explicitly; the alembic CLI falls back
    # to DATABASE_URL.
    explicit = context.config.attributes.get("database_url")
    return to_sync_url(explicit or app_config.DATABASE_URL)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = context.get_x_argument(as_dictionary=True).get("url", _database_url())
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    config = context.config
    config.set_main_option("sqlalchemy.url", _database_url().replace("%", "%%"))

    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
