"""
Alembic environment for the MotoresRD schema.

Migrations run over a synchronous psycopg connection derived from
DATABASE_URL, with the session timezone set to the business timezone so
date defaults match what the API computes.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool, text
from sqlalchemy.engine import make_url

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from database.models import Base
from shared.config import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
target_metadata = Base.metadata


def sync_database_url() -> str:
    """DATABASE_URL with its async driver swapped for psycopg."""
    url = make_url(settings.DATABASE_URL)
    if url.drivername in ("postgresql", "postgresql+asyncpg"):
        url = url.set(drivername="postgresql+psycopg")
    return url.render_as_string(hide_password=False)


def _set_timezone() -> str:
    return f"SET timezone='{settings.TIMEZONE}'"


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.execute(text(_set_timezone()))
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a short-lived connection."""
    connectable = create_engine(sync_database_url(), poolclass=pool.NullPool)

    with connectable.begin() as connection:
        connection.execute(text(_set_timezone()))
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
