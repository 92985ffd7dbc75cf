"""Schema migrations for the ledger store.

The revisions ship inside the package, so the Alembic configuration is built
in code instead of being read from an ini file. ``[tool.alembic]`` in
``pyproject.toml`` points the ``alembic`` command line at the same directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from servingledger.config.storage import get_database_uri

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
HEAD: Final[str] = "head"


def alembic_config(*, database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def head_revision() -> str | None:
    """Return the newest revision shipped with the package."""

    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def current_revision(engine: Engine) -> str | None:
    """Return the revision the database behind ``engine`` is stamped with."""

    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the ledger schema up to the newest revision.

    With an ``engine`` the upgrade runs on one of its connections, which keeps
    in-memory SQLite databases alive for the caller. Otherwise ``database_uri``
    (or the configured database) is opened by the migration environment.
    """

    if engine is None:
        config = alembic_config(database_uri=database_uri or get_database_uri())
        command.upgrade(config, HEAD)
        return

    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, HEAD)
