"""Main CLI entry point."""

import click

from pledgeflow.config import ENV_DB_PATH, load_config
from pledgeflow.database.factories import create_sqlite_database
from pledgeflow.domain.errors import DomainError
from pledgeflow.logging_config import configure_logging

# Import and register all commands at module level
from pledgeflow.cli.commands import agreement, sweep, report


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {ENV_DB_PATH} environment variable)",
    envvar=ENV_DB_PATH,
)
@click.pass_context
def cli(ctx, db_path: str | None):
    """Pledgeflow - recurring donation engine.

    Create and manage recurring donation agreements and run the sweep that
    captures due cycles.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            config = load_config()
        except DomainError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        configure_logging(level=config.log_level)

        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["config"] = config
        ctx.call_on_close(db.disconnect)


# Register all commands
agreement.register_commands(cli)
sweep.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
