"""Database migration utilities.

Migrations are run synchronously before the async server starts (the
alembic env drives its own event loop for the async driver).
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

logger = logging.getLogger(__name__)

# Project root where alembic.ini lives
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def expand_database_url(database_url: str) -> str:
    """Expand ~ in SQLite paths; other URLs pass through unchanged."""
    if "sqlite" in database_url and ":///" in database_url:
        prefix, path = database_url.split(":///", 1)
        if path.startswith("~"):
            return f"{prefix}:///{Path(path).expanduser()}"
    return database_url


def get_alembic_config(database_url: str) -> AlembicConfig:
    """Create Alembic config with the given database URL."""
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    config = AlembicConfig(str(alembic_ini))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    # ConfigParser interpolation treats % specially
    config.set_main_option("sqlalchemy.url", expand_database_url(database_url).replace("%", "%%"))
    return config


def run_migrations(database_url: str) -> None:
    """Upgrade the database to the latest revision.

    Synchronous; call it before an event loop is running.
    """
    url = expand_database_url(database_url)

    if url.startswith("sqlite") and ":///" in url:
        db_path = url.split(":///", 1)[1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    command.upgrade(get_alembic_config(url), "head")
    logger.info("Database migrations complete")
