"""Transaction commands."""

import json

import click
from nzledger.cli.account_resolution import resolve_account_or_exit
from nzledger.cli.date_filters import resolve_cli_date_range, to_instants
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.account import AccountService
from nzledger.domain.entities import TransactionCandidate, TransactionType
from nzledger.domain.errors import DomainError
from nzledger.domain.organization import GST_TREATMENTS, OrganizationService
from nzledger.domain.transaction import TransactionService
from nzledger.utils.amount_parser import parse_minor_units
from nzledger.utils.money import format_amount

TRANSACTION_TYPES = tuple(t.value for t in TransactionType)


def _transaction_service(ctx) -> TransactionService:
    return TransactionService(ctx.obj["db"], ctx.obj["config"], clock=ctx.obj["clock"])


@click.group()
def transaction_group():
    """Record and inspect financial transactions."""
    pass


@transaction_group.command("record")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--type", "transaction_type", type=click.Choice(TRANSACTION_TYPES), required=True)
@click.option("--user", "user_id", type=int, required=True, help="ID of the user creating the transaction")
@click.option("--description", "-d", required=True, help="Transaction description")
@click.option("--currency", help="Currency code (defaults to the account currency)")
@click.option("--reference", help="Transaction reference (generated when omitted)")
@click.option("--counterparty", help="Counterparty account number or ID")
@click.option("--category", help="Category name")
@click.option("--gst-treatment", type=click.Choice(GST_TREATMENTS), default="standard", show_default=True)
@click.option("--org", "organization_id", type=int, help="Organization used to resolve account numbers")
@click.option("--ip", "remote_address", help="Origin address recorded on the audit entry")
@click.pass_context
def record_transaction(
    ctx,
    account: str,
    amount: str,
    transaction_type: str,
    user_id: int,
    description: str,
    currency: str | None,
    reference: str | None,
    counterparty: str | None,
    category: str | None,
    gst_treatment: str,
    organization_id: int | None,
    remote_address: str | None,
):
    """Record a transaction through the compliance pipeline.

    AMOUNT is in major units and must be positive; the direction comes
    from --type.

    Examples:
        nzledger txn record 12-3456-7890123-00 1,150.00 --type payment_in --user 1 -d "Invoice 1042"
        nzledger txn record 3 25000 --type payment_out --user 2 -d "Supplier" --currency AUD
    """
    db = ctx.obj["db"]
    account_service = AccountService(db, ctx.obj["config"])
    organization_service = OrganizationService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account, organization_id)
    counterparty_id = None
    if counterparty is not None:
        counterparty_id = resolve_account_or_exit(ctx, account_service, counterparty, organization_id)

    try:
        amount_minor = parse_minor_units(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    category_id = None
    if category is not None:
        category_obj = organization_service.get_category_by_name(category)
        if category_obj is None:
            click.echo(f"Error: Category '{category}' not found", err=True)
            ctx.exit(1)
        category_id = category_obj.id

    candidate = TransactionCandidate(
        account_id=account_id,
        amount=amount_minor,
        currency=currency.upper() if currency else account_service.get_account(account_id).currency,
        transaction_type=transaction_type,
        created_by_id=user_id,
        description=description,
        reference=reference,
        counterparty_account_id=counterparty_id,
        category_id=category_id,
        gst_treatment=gst_treatment,
    )

    try:
        txn, _ = _transaction_service(ctx).record_transaction(candidate, remote_address=remote_address)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded transaction {txn.reference} (ID: {txn.id})")
    click.echo(
        f"Status: {txn.compliance_status.value} "
        f"(risk {txn.risk_score}, {txn.compliance_category.value})"
    )
    if txn.compliance_flags:
        click.echo(f"Flags: {', '.join(txn.compliance_flags)}")


@transaction_group.command("show")
@click.argument("transaction")
@click.pass_context
def show_transaction(ctx, transaction: str):
    """Show a transaction by ID or reference."""
    service = _transaction_service(ctx)
    if transaction.isdigit():
        txn = service.get_transaction(int(transaction))
    else:
        txn = service.get_by_reference(transaction)
    if txn is None:
        click.echo(f"Error: Transaction '{transaction}' not found", err=True)
        ctx.exit(1)

    click.echo(f"Reference:   {txn.reference}")
    click.echo(f"Amount:      {txn.money}")
    click.echo(f"Type:        {txn.transaction_type.label}")
    click.echo(f"Account:     {txn.account_id}")
    click.echo(f"Description: {txn.description}")
    click.echo(f"Created:     {txn.created_at.isoformat()}")
    click.echo(f"Status:      {txn.compliance_status.value}")
    click.echo(f"Risk:        {txn.risk_score} ({txn.compliance_category.value})")
    click.echo(f"Flags:       {', '.join(txn.compliance_flags) if txn.compliance_flags else 'none'}")


@transaction_group.command("list")
@click.option("--account", help="Account number or ID")
@click.option("--org", "organization_id", type=int, help="Organization ID")
@click.option("--period", help="Period: YYYY-MM, this-month, last-month, this-year, last-year")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive, defaults to today)")
@click.option("--flagged", is_flag=True, help="Show only flagged transactions")
@click.pass_context
def list_transactions(
    ctx,
    account: str | None,
    organization_id: int | None,
    period: str | None,
    start_date: str | None,
    end_date: str | None,
    flagged: bool,
):
    """List transactions, oldest first."""
    config = ctx.obj["config"]
    service = _transaction_service(ctx)

    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(ctx.obj["db"], config), account, organization_id)

    start = end = None
    if period or start_date or end_date:
        start, end = to_instants(
            config, *resolve_cli_date_range(ctx, period=period, start_date=start_date, end_date=end_date)
        )

    transactions = service.list_transactions(
        account_id=account_id, organization_id=organization_id, start=start, end=end
    )
    if flagged:
        transactions = [t for t in transactions if t.flagged_for_review]
    if not transactions:
        click.echo("No transactions found.")
        return

    for txn in transactions:
        flags = ",".join(txn.compliance_flags) or "-"
        click.echo(
            f"{txn.id:4d} | {txn.created_at.astimezone(config.tzinfo).strftime('%Y-%m-%d %H:%M')} | "
            f"{txn.reference:26s} | {format_amount(txn.amount, txn.currency):>18s} | "
            f"{txn.transaction_type.value:16s} | {flags}"
        )


@transaction_group.command("rbnz")
@click.argument("transaction_id", type=int)
@click.pass_context
def rbnz_report(ctx, transaction_id: int):
    """Print the RBNZ reporting record for a transaction as JSON."""
    try:
        report = _transaction_service(ctx).rbnz_report(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(json.dumps(report, indent=2))


@transaction_group.command("audit")
@click.argument("transaction_id", type=int)
@click.pass_context
def audit_summary(ctx, transaction_id: int):
    """Summarize the audit trail of a transaction."""
    try:
        summary = _transaction_service(ctx).audit_trail_summary(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(json.dumps(summary, indent=2, default=str))


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="txn")
