"""Alembic environment for the Gigvora schema.

The target URL comes from ``DATABASE_URL_SYNC`` unless one is passed on the
command line with ``alembic -x db_url=... upgrade head``.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

import gigvora.models  # noqa: F401
from gigvora.core.config import settings
from gigvora.core.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("db_url") or settings.DATABASE_URL_SYNC


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    # Never drop tables the models do not declare.
    return not (type_ == "table" and reflected and compare_to is None)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        include_object=_include_object,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of applying it."""
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
