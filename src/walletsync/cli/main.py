"""Main CLI entry point."""

import logging

import click

from walletsync.config import DB_PATH_ENV, DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV
from walletsync.database.factories import create_sqlite_database

# Import and register all commands at module level
from walletsync.cli.commands import (
    sync,
    rates,
    rule,
    category,
    wallet,
    transaction,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENV} environment variable)",
    envvar=DB_PATH_ENV,
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=DEFAULT_LOG_LEVEL,
    envvar=LOG_LEVEL_ENV,
    show_default=True,
    help="Log verbosity",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Walletsync - Monobank wallet sync.

    Pull accounts, statements and currency rates from Monobank into a local
    ledger and categorize transactions with rules.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
sync.register_commands(cli)
rates.register_commands(cli)
rule.register_commands(cli)
category.register_commands(cli)
wallet.register_commands(cli)
transaction.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
