"""Tax compliance commands."""

import click
from nzledger.cli.date_filters import resolve_cli_date_range
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.errors import DomainError
from nzledger.domain.tax import IrdTaxService


@click.group()
def tax_group():
    """Assess IRD tax compliance."""
    pass


@tax_group.command("assess")
@click.argument("organization_id", type=int)
@click.pass_context
def assess_compliance(ctx, organization_id: int):
    """Assess an organization's tax compliance."""
    service = IrdTaxService(ctx.obj["db"], ctx.obj["config"], clock=ctx.obj["clock"])

    try:
        assessment = service.assess_tax_compliance(organization_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Compliant:   {'yes' if assessment.compliant else 'no'}")
    click.echo(f"Score:       {assessment.compliance_score}")
    click.echo(f"Next review: {assessment.next_review_date.isoformat()}")
    for issue in assessment.issues:
        click.echo(f"\n[{issue.severity}] {issue.type}")
        click.echo(f"  {issue.description}")
        click.echo(f"  Action: {issue.action_required}")


@tax_group.command("paye")
@click.argument("organization_id", type=int)
@click.option("--period", help="Period: YYYY-MM, this-month, last-month, this-year, last-year")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.pass_context
def paye_summary(ctx, organization_id: int, period: str | None, start_date: str | None, end_date: str | None):
    """PAYE figures for a period (defaults to last month)."""
    service = IrdTaxService(ctx.obj["db"], ctx.obj["config"], clock=ctx.obj["clock"])
    start, end = resolve_cli_date_range(
        ctx,
        period=period,
        start_date=start_date,
        end_date=end_date,
        default_range=service.default_period(),
    )

    try:
        summary = service.calculate_paye(organization_id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not summary.applicable:
        click.echo(f"PAYE not applicable: {summary.reason}")
        return
    click.echo(f"Period:           {summary.period_description}")
    click.echo(f"Gross wages:      ${summary.total_gross_wages:,.2f}")
    click.echo(f"PAYE deducted:    ${summary.total_paye_deducted:,.2f}")
    click.echo(f"ACC levies:       ${summary.total_acc_levies:,.2f}")
    click.echo(f"KiwiSaver:        ${summary.total_kiwisaver_contributions:,.2f}")
    click.echo(f"Payment to IRD:   ${summary.net_payment_to_ird:,.2f}")
    click.echo(f"Due:              {summary.due_date.isoformat()} ({summary.compliance_status})")


def register_commands(cli):
    """Register tax commands with main CLI."""
    cli.add_command(tax_group, name="tax")
