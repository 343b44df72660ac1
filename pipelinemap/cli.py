import click


@click.group()
def main() -> None:
    """Pipeline environment map service for the build platform."""


@main.command()
@click.option("--host", default=None, help="Listen address (overrides F8_HOST).")
@click.option("--port", default=None, type=int, help="Listen port (overrides F8_PORT).")
@click.option("--log-level", default=None, help="Log level (overrides F8_LOG_LEVEL).")
@click.option("--reload", is_flag=True, default=False, help="Restart on source changes (development only).")
def serve(host: str | None, port: int | None, log_level: str | None, reload: bool) -> None:
    """Run the pipeline environment map HTTP API."""
    import os

    import uvicorn

    from pipelinemap.build_service.settings import get_settings

    if log_level:
        # The app reads its settings again in the lifespan (and in reload workers).
        os.environ["F8_LOG_LEVEL"] = log_level
        get_settings.cache_clear()
    settings = get_settings()

    uvicorn.run(
        "pipelinemap.build_service.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own records go through loguru
    )


# ---------------------------------------------------------------------------
# Schema migrations (Alembic, packaged with build_service)
# ---------------------------------------------------------------------------


def _alembic(*, quiet: bool = False):
    """Configure logging and return the Config for the packaged alembic.ini."""
    from pathlib import Path

    from alembic.config import Config

    from pipelinemap.build_service.log import setup_logging
    from pipelinemap.build_service.settings import get_settings

    if not quiet:
        settings = get_settings()
        setup_logging(settings.log_level, json_format=settings.log_json)
    return Config(str(Path(__file__).parent / "build_service" / "alembic.ini"))


@main.group()
def db() -> None:
    """Manage the pipeline_env_maps schema."""


@db.command()
@click.option("--revision", default="head", show_default=True, help="Revision to upgrade to.")
@click.option("--sql", is_flag=True, default=False, help="Print the SQL instead of executing it.")
def upgrade(revision: str, sql: bool) -> None:
    """Apply migrations up to REVISION."""
    from alembic import command

    command.upgrade(_alembic(quiet=sql), revision, sql=sql)
    if not sql:
        click.echo(f"Schema at {revision}.")


@db.command()
@click.option("--revision", default="-1", show_default=True, help="Revision to downgrade to.")
@click.option(
    "--sql", is_flag=True, default=False, help="Print the SQL instead of executing it (REVISION must be FROM:TO)."
)
def downgrade(revision: str, sql: bool) -> None:
    """Revert migrations down to REVISION."""
    from alembic import command

    command.downgrade(_alembic(quiet=sql), revision, sql=sql)
    if not sql:
        click.echo(f"Schema at {revision}.")


@db.command()
@click.argument("message")
def migrate(message: str) -> None:
    """Autogenerate a revision from changes to db/tables.py."""
    from alembic import command

    command.revision(_alembic(), message=message, autogenerate=True)
    click.echo(f"New revision: {message}")


@db.command()
def current() -> None:
    """Print the revision the database is at."""
    from alembic import command

    command.current(_alembic(quiet=True), verbose=True)


@db.command()
def history() -> None:
    """List all revisions."""
    from alembic import command

    command.history(_alembic(quiet=True), verbose=True)


if __name__ == "__main__":
    main()
