"""Alembic environment for the ledger store."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from servingledger.adapters.sqlalchemy import mapper_registry, start_mappers
from servingledger.config import configure_logging, get_database_uri

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

log = getLogger("alembic.env")

config = context.config
start_mappers()
target_metadata = mapper_registry.metadata

# SQLite cannot alter columns in place, so every revision renders batch operations.
MIGRATION_OPTIONS = {
    "target_metadata": target_metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _database_uri() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_uri()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    """Emit the migration SQL without a database connection."""

    context.configure(url=_database_uri(), literal_binds=True, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    shared = config.attributes.get("connection")
    if shared is not None:
        _migrate(shared)
        return

    # Invoked from the alembic command line rather than from upgrade_head().
    configure_logging()
    uri = _database_uri()
    log.info(f"Migrating ledger store at {uri}")
    engine = create_engine(uri, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _migrate(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
