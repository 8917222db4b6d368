"""Tax filing commands."""

import click
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.errors import DomainError
from nzledger.domain.organization import FILING_STATUSES, FILING_TYPES, OrganizationService
from nzledger.utils.date_parser import parse_date


@click.group()
def filing_group():
    """Track IRD tax filings."""
    pass


@filing_group.command("record")
@click.argument("organization_id", type=int)
@click.option("--type", "filing_type", type=click.Choice(FILING_TYPES), required=True)
@click.option("--period-start", required=True, help="First day covered by the filing")
@click.option("--period-end", required=True, help="Last day covered by the filing")
@click.option("--due", "due_date", required=True, help="Due date")
@click.option("--filed", "filed_date", help="Date the return was filed")
@click.option("--status", type=click.Choice(FILING_STATUSES), help="Filing status")
@click.option("--ird-ref", "ird_reference", help="IRD reference")
@click.pass_context
def record_filing(
    ctx,
    organization_id: int,
    filing_type: str,
    period_start: str,
    period_end: str,
    due_date: str,
    filed_date: str | None,
    status: str | None,
    ird_reference: str | None,
):
    """Record a tax filing for an organization.

    Examples:
        nzledger filing record 1 --type gst --period-start 2024-01-01 --period-end 2024-01-31 --due 2024-02-28
        nzledger filing record 1 --type gst --period-start 2024-01-01 --period-end 2024-01-31 \\
            --due 2024-02-28 --filed 2024-02-20 --ird-ref IRD-123
    """
    service = OrganizationService(ctx.obj["db"])

    try:
        dates = {
            "period start": parse_date(period_start),
            "period end": parse_date(period_end),
            "due": parse_date(due_date),
            "filed": parse_date(filed_date) if filed_date else None,
        }
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    try:
        filing_id = service.record_tax_filing(
            organization_id=organization_id,
            filing_type=filing_type,
            period_start=dates["period start"],
            period_end=dates["period end"],
            due_date=dates["due"],
            filed_date=dates["filed"],
            status=status,
            ird_reference=ird_reference,
        )
        click.echo(f"Recorded {filing_type} filing (ID: {filing_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@filing_group.command("list")
@click.argument("organization_id", type=int)
@click.option("--type", "filing_type", type=click.Choice(FILING_TYPES), help="Only filings of this type")
@click.pass_context
def list_filings(ctx, organization_id: int, filing_type: str | None):
    """List filings for an organization, most recent first."""
    service = OrganizationService(ctx.obj["db"])

    try:
        filings = service.list_tax_filings(organization_id, filing_type=filing_type)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not filings:
        click.echo("No filings found.")
        return
    for filing in filings:
        filed = filing.filed_date.isoformat() if filing.filed_date else "not filed"
        click.echo(
            f"{filing.id:3d} | {filing.filing_type.value:10s} | "
            f"{filing.period_start.isoformat()} - {filing.period_end.isoformat()} | "
            f"due {filing.due_date.isoformat()} | {filed} | {filing.status.value}"
        )


def register_commands(cli):
    """Register filing commands with main CLI."""
    cli.add_command(filing_group, name="filing")
