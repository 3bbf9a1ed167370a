from __future__ import annotations

from logging.config import fileConfig
import os

from alembic import context
from sqlalchemy import engine_from_config, pool

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _database_url() -> str:
    env_url = (os.environ.get("DATABASE_URL") or "").strip()
    return env_url or config.get_main_option("sqlalchemy.url")


def run_migrations() -> None:
    # Migrations inspect the live schema, so only online mode is supported.
    if context.is_offline_mode():
        raise RuntimeError("offline (--sql) migrations are not supported")

    cfg = config.get_section(config.config_ini_section) or {}
    cfg["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


run_migrations()
