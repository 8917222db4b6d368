"""GST return commands."""

from datetime import date, timedelta

import click
from nzledger.cli.date_filters import resolve_cli_date_range
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.entities import GstReturn
from nzledger.domain.errors import DomainError
from nzledger.domain.tax import IrdTaxService
from nzledger.utils.money import to_major


def _tax_service(ctx) -> IrdTaxService:
    return IrdTaxService(ctx.obj["db"], ctx.obj["config"], clock=ctx.obj["clock"])


def _resolve_period(ctx, service: IrdTaxService, period, start_date, end_date) -> tuple[date, date]:
    return resolve_cli_date_range(
        ctx,
        period=period,
        start_date=start_date,
        end_date=end_date,
        default_range=service.default_period(),
    )


def _echo_return(gst_return: GstReturn) -> None:
    summary = gst_return.summary
    click.echo(f"\nGST return: {gst_return.organization_name} (IRD {gst_return.ird_number})")
    click.echo(f"Period: {gst_return.period_description}")
    click.echo("-" * 60)
    click.echo(f"Sales incl GST:        ${to_major(summary.total_sales_incl_gst):>14,.2f}")
    click.echo(f"GST collected:         ${to_major(summary.total_gst_collected):>14,.2f}")
    click.echo(f"Purchases incl GST:    ${to_major(summary.total_purchases_incl_gst):>14,.2f}")
    click.echo(f"GST paid:              ${to_major(summary.total_gst_paid):>14,.2f}")
    click.echo(f"Zero-rated sales:      ${to_major(summary.zero_rated_sales):>14,.2f}")
    click.echo(f"Exempt supplies:       ${to_major(summary.exempt_supplies):>14,.2f}")
    click.echo("-" * 60)
    if summary.gst_to_pay:
        click.echo(f"GST to pay:            ${to_major(summary.gst_to_pay):>14,.2f}")
    elif summary.gst_refund_due:
        click.echo(f"GST refund due:        ${to_major(summary.gst_refund_due):>14,.2f}")
    else:
        click.echo("Nil return")
    click.echo(f"Payment due:           {gst_return.payment_due_date.isoformat()}")
    click.echo(f"Next filing due:       {gst_return.next_filing_due.isoformat()}")
    click.echo(f"Filing band:           {gst_return.filing_requirements.band} ({gst_return.filing_requirements.frequency})")

    if gst_return.sales_by_category:
        click.echo("\nSales by category:")
        for name, total in gst_return.sales_by_category.items():
            click.echo(f"  {name:30s} ${total:>14,.2f}")
    if gst_return.purchases_by_category:
        click.echo("\nPurchases by category:")
        for name, total in gst_return.purchases_by_category.items():
            click.echo(f"  {name:30s} ${total:>14,.2f}")

    compliance = gst_return.compliance
    click.echo(f"\nCompliance: {compliance.status} (confidence {compliance.confidence_score})")
    for issue in compliance.issues:
        click.echo(f"  - {issue}")


@click.group()
def gst_group():
    """Calculate and submit GST returns."""
    pass


@gst_group.command("return")
@click.argument("organization_id", type=int)
@click.option("--period", help="Period: YYYY-MM, this-month, last-month, this-year, last-year")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.pass_context
def gst_return(ctx, organization_id: int, period: str | None, start_date: str | None, end_date: str | None):
    """Calculate a GST return (defaults to last month).

    Examples:
        nzledger gst return 1
        nzledger gst return 1 --period 2024-03
    """
    service = _tax_service(ctx)
    start, end = _resolve_period(ctx, service, period, start_date, end_date)

    try:
        result = service.compute_gst_return(organization_id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _echo_return(result)


@gst_group.command("submit")
@click.argument("organization_id", type=int)
@click.option("--period", help="Period: YYYY-MM, this-month, last-month, this-year, last-year")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.option("--live", is_flag=True, help="Submit to IRD instead of simulating")
@click.option("--user", "user_id", type=int, help="User recorded on the audit entry")
@click.pass_context
def submit_gst_return(
    ctx,
    organization_id: int,
    period: str | None,
    start_date: str | None,
    end_date: str | None,
    live: bool,
    user_id: int | None,
):
    """Submit a GST return. Without --live the submission is simulated."""
    service = _tax_service(ctx)
    start, end = _resolve_period(ctx, service, period, start_date, end_date)

    try:
        result = service.submit_gst_return(
            service.compute_gst_return(organization_id, start, end),
            dry_run=not live,
            actor_id=user_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    mode = "Simulated" if result.simulation_mode else "Submitted"
    click.echo(f"{mode} GST return for {start.isoformat()} to {(end - timedelta(days=1)).isoformat()}")
    click.echo(f"Submission ID: {result.submission_id}")
    click.echo(f"IRD reference: {result.ird_reference}")
    click.echo(f"Status:        {result.status}")
    for step in result.next_steps:
        click.echo(f"  - {step}")


def register_commands(cli):
    """Register GST commands with main CLI."""
    cli.add_command(gst_group, name="gst")
