"""Organization commands."""

from datetime import timedelta

import click
from nzledger.cli.date_filters import resolve_cli_date_range, to_instants
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.errors import DomainError
from nzledger.domain.ledger import LedgerService
from nzledger.domain.organization import BUSINESS_TYPES, OrganizationService
from nzledger.utils.amount_parser import parse_minor_units


@click.group()
def organization_group():
    """Manage organizations."""
    pass


@organization_group.command("create")
@click.argument("name")
@click.option("--ird", "ird_number", required=True, help="IRD number (8 or 9 digits)")
@click.option("--email", "contact_email", required=True, help="Contact email address")
@click.option(
    "--business-type",
    type=click.Choice(BUSINESS_TYPES),
    default="company",
    show_default=True,
)
@click.option("--gst-registered", is_flag=True, help="Organization is registered for GST")
@click.option("--turnover", default="0", help="Annual turnover in NZD (e.g. 2,500,000.00)")
@click.option("--international", is_flag=True, help="Allow transactions in foreign currencies")
@click.option("--rbnz-id", help="RBNZ reporting entity identifier")
@click.pass_context
def create_organization(
    ctx,
    name: str,
    ird_number: str,
    contact_email: str,
    business_type: str,
    gst_registered: bool,
    turnover: str,
    international: bool,
    rbnz_id: str | None,
):
    """Create a new organization.

    Examples:
        nzledger org create "Kiwi Traders Ltd" --ird 123456789 --email accounts@kiwi.co.nz
        nzledger org create "Tui Imports" --ird 87654321 --email ops@tui.nz --gst-registered --international
    """
    service = OrganizationService(ctx.obj["db"])

    try:
        annual_turnover = parse_minor_units(turnover)
    except ValueError as e:
        click.echo(f"Error: Invalid turnover: {e}", err=True)
        ctx.exit(1)

    try:
        organization_id = service.create_organization(
            name=name,
            ird_number=ird_number,
            contact_email=contact_email,
            business_type=business_type,
            gst_registered=gst_registered,
            annual_turnover=annual_turnover,
            international_transactions_enabled=international,
            rbnz_identifier=rbnz_id,
        )
        click.echo(f"Created organization '{name}' (ID: {organization_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@organization_group.command("list")
@click.pass_context
def list_organizations(ctx):
    """List all organizations."""
    service = OrganizationService(ctx.obj["db"])

    organizations = service.list_organizations()
    if not organizations:
        click.echo("No organizations found.")
        return

    click.echo("\nOrganizations:")
    click.echo("-" * 70)
    for org in organizations:
        gst = "GST" if org.gst_registered else "   "
        click.echo(f"ID: {org.id:3d} | {org.name:30s} | IRD: {org.ird_number:9s} | {gst}")


@organization_group.command("show")
@click.argument("organization_id", type=int)
@click.pass_context
def show_organization(ctx, organization_id: int):
    """Show an organization with its compliance score and balances."""
    db = ctx.obj["db"]
    service = OrganizationService(db)
    ledger = LedgerService(db, ctx.obj["config"], clock=ctx.obj["clock"])

    org = service.get_organization(organization_id)
    if org is None:
        click.echo(f"Error: Organization {organization_id} not found", err=True)
        ctx.exit(1)

    totals = ledger.organization_totals(organization_id)
    click.echo(f"\n{org.display_name}")
    click.echo("-" * 60)
    click.echo(f"Business type:       {org.business_type.value}")
    click.echo(f"Contact:             {org.contact_email or '-'}")
    click.echo(f"GST registered:      {'yes' if org.gst_registered else 'no'}")
    click.echo(f"International:       {'enabled' if org.international_transactions_enabled else 'disabled'}")
    click.echo(f"RBNZ identifier:     {org.rbnz_identifier or '-'}")
    click.echo(f"Total balance:       ${totals.total_balance:,.2f}")
    click.echo(f"Monthly volume:      ${totals.monthly_transaction_volume:,.2f}")
    click.echo(f"Compliance score:    {ledger.organization_compliance_score(organization_id)}")


@organization_group.command("report")
@click.argument("organization_id", type=int)
@click.option("--period", help="Period: YYYY-MM, this-month, last-month, this-year, last-year")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive, defaults to today)")
@click.pass_context
def compliance_report(ctx, organization_id: int, period: str | None, start_date: str | None, end_date: str | None):
    """Transaction compliance report for an organization.

    Examples:
        nzledger org report 1 --period last-month
        nzledger org report 1 --start-date 2024-01-01 --end-date 2024-03-31
    """
    config = ctx.obj["config"]
    ledger = LedgerService(ctx.obj["db"], config, clock=ctx.obj["clock"])
    start, end = resolve_cli_date_range(ctx, period=period, start_date=start_date, end_date=end_date)

    try:
        report = ledger.compliance_report(organization_id, *to_instants(config, start, end))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nCompliance report {start.isoformat()} to {(end - timedelta(days=1)).isoformat()}")
    click.echo("-" * 60)
    click.echo(f"Transactions:          {report.total_transactions}")
    click.echo(f"Total value:           ${report.total_value:,.2f}")
    click.echo(f"High value:            {report.high_value_transactions}")
    click.echo(f"International:         {report.international_transactions}")
    for currency, total in report.currency_breakdown.items():
        click.echo(f"  {currency}: ${total:,.2f}")
    if report.compliance_flags:
        click.echo("Flags:")
        for flag, count in sorted(report.compliance_flags.items()):
            click.echo(f"  {flag}: {count}")
    click.echo(f"Retain until:          {report.retention_until.date().isoformat()}")


def register_commands(cli):
    """Register organization commands with main CLI."""
    cli.add_command(organization_group, name="org")
