"""Main CLI application using Cyclopts."""

import asyncio
import sys

import cyclopts
import uvicorn
from alembic.util.exc import CommandError
from sqlalchemy.exc import SQLAlchemyError

from roomshare.application.di import create_container
from roomshare.cli.console import get_console
from roomshare.config import Config, configure_logging
from roomshare.domain.shared.error import RoomshareError
from roomshare.domain.shared.port.event_repository import EventRepository
from roomshare.infrastructure.event.di import EXPIRY_REAPER_SCHEDULE_ID
from roomshare.infrastructure.event.worker import WorkerPool
from roomshare.infrastructure.persistence.migrate import run_migrations
from roomshare.util.di.scope import Scope

app = cyclopts.App(
    name="roomshare",
    help="Roommate application approval service",
)


def _migrate(config: Config) -> None:
    console = get_console()
    try:
        run_migrations(config.database.url)
    except (CommandError, SQLAlchemyError) as e:
        console.error(f"Migration failed: {e}", hint=f"Database: {config.database.url}")
        sys.exit(1)


@app.command
def serve(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Run the HTTP API with background workers.

    Args:
        host: Host to bind to (defaults to server.host).
        port: Port to listen on (defaults to server.port).
        reload: Restart on code changes (development only).
    """
    config = Config()  # type: ignore[call-arg]
    configure_logging(config.logging)

    if config.database.auto_migrate:
        _migrate(config)

    uvicorn.run(
        "roomshare.application.api.rest.app:create_app",
        factory=True,
        host=host or config.server.host,
        port=port or config.server.port,
        reload=reload,
        log_config=None,  # keep configure_logging's handlers
    )


@app.command(name="init-db")
def init_db() -> None:
    """Create or upgrade the database schema."""
    config = Config()  # type: ignore[call-arg]
    configure_logging(config.logging)
    _migrate(config)
    get_console().success(f"Database ready: {config.database.url}")


@app.command
def reap() -> None:
    """Run one expiry sweep now and report how many applications expired."""
    config = Config()  # type: ignore[call-arg]
    configure_logging(config.logging)
    console = get_console()

    async def _run() -> int:
        container = create_container(config)
        try:
            pool = await container.get(WorkerPool)
            return await pool.run_schedule_now(EXPIRY_REAPER_SCHEDULE_ID)
        finally:
            await container.close()

    try:
        expired = asyncio.run(_run())
    except RoomshareError as e:
        console.error(f"Expiry sweep failed: {e.message}")
        sys.exit(1)
    console.success(f"Expired {expired} application(s)")


@app.command
def events(limit: int = 20) -> None:
    """Show the most recent events in the outbox (newest first).

    Args:
        limit: Number of events to show.
    """
    config = Config()  # type: ignore[call-arg]
    configure_logging(config.logging)
    console = get_console()

    async def _run() -> list[dict[str, str]]:
        container = create_container(config)
        try:
            async with container(scope=Scope.UOW) as scope:
                repo = await scope.get(EventRepository)
                recent = await repo.list_events(limit=limit, newest_first=True)
        finally:
            await container.close()
        return [
            {
                "type": type(event).__name__,
                "application": str(getattr(event, "application_id", "")),
                "status": str(getattr(event, "status", "")),
                "created": event.created_at.isoformat(timespec="seconds"),
            }
            for event in recent
        ]

    rows = asyncio.run(_run())
    if not rows:
        console.info("No events found")
        return
    console.table(
        rows,
        [
            ("type", "Event"),
            ("application", "Application"),
            ("status", "Status"),
            ("created", "At"),
        ],
        title="Events",
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
