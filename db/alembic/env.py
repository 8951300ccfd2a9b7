"""Alembic env.py for FieldLedger SQLite DB."""
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Add api/ to sys.path so flat imports (config, models) resolve
api_dir = Path(__file__).resolve().parents[2] / "api"
if str(api_dir) not in sys.path:
    sys.path.insert(0, str(api_dir))

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import models  # noqa: E402
from db import db_url as app_db_url  # noqa: E402

target_metadata = models.Base.metadata

# ALEMBIC_URL wins, then the .ini, then the app's DB_PATH
db_url = os.getenv("ALEMBIC_URL") or config.get_main_option("sqlalchemy.url") or app_db_url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        {"sqlalchemy.url": db_url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,  # SQLite ALTER TABLE support
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
