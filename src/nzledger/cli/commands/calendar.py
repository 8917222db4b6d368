"""Business calendar commands."""

from datetime import date

import click
from nzledger.cli.date_filters import local_today
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.calendar import BusinessCalendar
from nzledger.domain.errors import DependencyError


@click.group()
def calendar_group():
    """Business hours and public holidays."""
    pass


@calendar_group.command("status")
@click.pass_context
def calendar_status(ctx):
    """Show business-time status and the next public holiday."""
    calendar = BusinessCalendar(ctx.obj["config"])
    status = calendar.status(ctx.obj["clock"].now())

    business_time = status["is_business_time"]
    click.echo(f"Current time:        {status['current_time']}")
    click.echo(f"Business time:       {'unknown' if business_time is None else ('yes' if business_time else 'no')}")
    click.echo(f"Next business day:   {status['next_business_day'] or 'unknown'}")
    click.echo(f"Next holiday:        {status['next_holiday']}")
    click.echo(f"Business days until: {status['business_days_until_next_holiday']}")


@calendar_group.command("holidays")
@click.argument("year", type=int, required=False)
@click.pass_context
def list_holidays(ctx, year: int | None):
    """List public holidays for a year (defaults to the current year)."""
    calendar = BusinessCalendar(ctx.obj["config"])
    year = year or local_today(ctx).year

    try:
        holidays = calendar.holidays_between(date(year, 1, 1), date(year, 12, 31))
    except DependencyError as e:
        handle_domain_error(ctx, e)

    for holiday in holidays:
        click.echo(f"{holiday.date.strftime('%a %d %b %Y')}  {holiday.name}")


def register_commands(cli):
    """Register calendar commands with main CLI."""
    cli.add_command(calendar_group, name="calendar")
