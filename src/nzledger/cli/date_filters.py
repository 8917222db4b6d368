"""CLI helpers for date range resolution."""

from datetime import UTC, date, datetime, time, timedelta
from typing import Optional

import click

from nzledger.config import LedgerConfig
from nzledger.utils.date_parser import parse_date, parse_period


def local_today(ctx: click.Context) -> date:
    """Today's date in the ledger timezone, according to the context clock."""
    config = ctx.obj["config"]
    return ctx.obj["clock"].now().astimezone(config.tzinfo).date()


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    period: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    default_range: Optional[tuple[date, date]] = None,
) -> tuple[date, date]:
    """Resolve a half-open ``[start, end)`` date range from CLI options.

    ``--period`` takes ``YYYY-MM`` or a named period. ``--start-date`` and
    ``--end-date`` are inclusive calendar dates; a missing end date means
    today.
    """
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)

    today = local_today(ctx)
    if period:
        try:
            return parse_period(period, today=today)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    if not start_date and not end_date:
        if default_range is None:
            click.echo("Error: Specify --period or --start-date.", err=True)
            ctx.exit(1)
        return default_range

    start = end = None
    if start_date:
        try:
            start = parse_date(start_date, today=today)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)
    else:
        click.echo("Error: --end-date requires --start-date.", err=True)
        ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date, today=today)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)
    else:
        end = today

    if end < start:
        click.echo("Error: End date is before start date.", err=True)
        ctx.exit(1)
    return start, end + timedelta(days=1)


def to_instants(config: LedgerConfig, start: date, end: date) -> tuple[datetime, datetime]:
    """Convert a half-open local date range to an inclusive UTC instant window."""
    start_at = datetime.combine(start, time.min, tzinfo=config.tzinfo).astimezone(UTC)
    end_at = datetime.combine(end, time.min, tzinfo=config.tzinfo).astimezone(UTC)
    return start_at, end_at - timedelta(microseconds=1)
