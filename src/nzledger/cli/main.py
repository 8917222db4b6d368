"""Main CLI entry point."""

import click
from nzledger.config import load_config
from nzledger.database.factories import create_sqlite_database
from nzledger.domain.clock import SystemClock
from nzledger.logging_config import configure_logging

# Import and register all commands at module level
from nzledger.cli.commands import (
    account,
    audit,
    calendar,
    category,
    filing,
    gst,
    organization,
    tax,
    transaction,
    user,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides NZLEDGER_DB_PATH environment variable)",
    envvar="NZLEDGER_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="NZLEDGER_LOG_LEVEL",
    help="Level for the JSON log lines written to stderr",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """nzledger - Transaction compliance and GST for New Zealand ledgers.

    Record transactions through the compliance pipeline, review account
    activity, and calculate GST returns for IRD.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is None:
        return

    configure_logging(level=log_level.upper())

    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_config()
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
    ctx.obj.setdefault("clock", SystemClock())

    if "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
organization.register_commands(cli)
user.register_commands(cli)
account.register_commands(cli)
category.register_commands(cli)
transaction.register_commands(cli)
gst.register_commands(cli)
tax.register_commands(cli)
filing.register_commands(cli)
audit.register_commands(cli)
calendar.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
