"""Account management commands."""

from datetime import timedelta

import click
from nzledger.cli.account_resolution import resolve_account_or_exit
from nzledger.cli.date_filters import local_today, resolve_cli_date_range, to_instants
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.account import ACCOUNT_TYPES, AccountService
from nzledger.domain.errors import DomainError
from nzledger.domain.ledger import LedgerService
from nzledger.utils.amount_parser import parse_minor_units
from nzledger.utils.money import format_amount


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("organization_id", type=int)
@click.argument("name", metavar="ACCOUNT_NAME")
@click.argument("account_number")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), default="business_checking", show_default=True)
@click.option("--currency", help="Currency code (defaults to the home currency)")
@click.option("--balance", default="0", help="Opening balance (e.g. 1,250.00)")
@click.pass_context
def create_account(
    ctx,
    organization_id: int,
    name: str,
    account_number: str,
    account_type: str,
    currency: str | None,
    balance: str,
):
    """Create a new account.

    Examples:
        nzledger account create 1 "Operating" 12-3456-7890123-00
        nzledger account create 1 "USD Float" 12-3456-7890123-01 --currency USD --type savings
    """
    service = AccountService(ctx.obj["db"], ctx.obj["config"])

    try:
        opening_balance = parse_minor_units(balance)
    except ValueError as e:
        click.echo(f"Error: Invalid balance: {e}", err=True)
        ctx.exit(1)

    try:
        account_id = service.create_account(
            organization_id=organization_id,
            name=name,
            account_number=account_number,
            account_type=account_type,
            currency=currency.upper() if currency else None,
            balance=opening_balance,
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--org", "organization_id", type=int, help="Only accounts of this organization")
@click.pass_context
def list_accounts(ctx, organization_id: int | None):
    """List accounts."""
    service = AccountService(ctx.obj["db"], ctx.obj["config"])

    accounts = service.list_accounts(organization_id)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        state = "frozen" if acc.frozen else ("active" if acc.active else "inactive")
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.account_number:20s} | "
            f"{format_amount(acc.balance, acc.currency):>18s} | {state}"
        )


def _set_frozen(ctx, account: str, organization_id: int | None, frozen: bool) -> None:
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    account_id = resolve_account_or_exit(ctx, service, account, organization_id)
    try:
        if frozen:
            service.freeze_account(account_id)
        else:
            service.unfreeze_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"{'Froze' if frozen else 'Unfroze'} account {account_id}")


@account_group.command("freeze")
@click.argument("account", metavar="ACCOUNT")
@click.option("--org", "organization_id", type=int, help="Organization used to resolve account numbers")
@click.pass_context
def freeze_account(ctx, account: str, organization_id: int | None):
    """Freeze an account. ACCOUNT can be an account number or ID."""
    _set_frozen(ctx, account, organization_id, True)


@account_group.command("unfreeze")
@click.argument("account", metavar="ACCOUNT")
@click.option("--org", "organization_id", type=int, help="Organization used to resolve account numbers")
@click.pass_context
def unfreeze_account(ctx, account: str, organization_id: int | None):
    """Unfreeze an account. ACCOUNT can be an account number or ID."""
    _set_frozen(ctx, account, organization_id, False)


@account_group.command("summary")
@click.argument("account", metavar="ACCOUNT")
@click.option("--org", "organization_id", type=int, help="Organization used to resolve account numbers")
@click.pass_context
def account_summary(ctx, account: str, organization_id: int | None):
    """Trailing-month activity and compliance flags for an account."""
    db = ctx.obj["db"]
    service = AccountService(db, ctx.obj["config"])
    ledger = LedgerService(db, ctx.obj["config"], clock=ctx.obj["clock"])
    account_id = resolve_account_or_exit(ctx, service, account, organization_id)

    summary = ledger.monthly_summary(account_id)
    flags = ledger.compliance_flags_for_account(account_id)

    click.echo(f"\nMonthly summary for {service.get_account(account_id).display_name}")
    click.echo("-" * 60)
    click.echo(f"Transactions:     {summary.total_transactions}")
    click.echo(f"Total inflow:     ${summary.total_inflow:,.2f}")
    click.echo(f"Total outflow:    ${summary.total_outflow:,.2f}")
    click.echo(f"Average:          ${summary.average_transaction:,.2f}")
    click.echo(f"Largest:          ${summary.largest_transaction:,.2f}")
    click.echo(f"Flags:            {', '.join(flags) if flags else 'none'}")


@account_group.command("statement")
@click.argument("account", metavar="ACCOUNT")
@click.option("--org", "organization_id", type=int, help="Organization used to resolve account numbers")
@click.option("--period", help="Period: YYYY-MM, this-month, last-month, this-year, last-year")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive, defaults to today)")
@click.pass_context
def account_statement(
    ctx,
    account: str,
    organization_id: int | None,
    period: str | None,
    start_date: str | None,
    end_date: str | None,
):
    """Print an account statement (defaults to the last 30 days).

    Examples:
        nzledger account statement 12-3456-7890123-00 --period 2024-01
        nzledger account statement 3 --start-date "1 March 2024"
    """
    config = ctx.obj["config"]
    db = ctx.obj["db"]
    service = AccountService(db, config)
    ledger = LedgerService(db, config, clock=ctx.obj["clock"])
    account_id = resolve_account_or_exit(ctx, service, account, organization_id)

    today = local_today(ctx)
    start, end = resolve_cli_date_range(
        ctx,
        period=period,
        start_date=start_date,
        end_date=end_date,
        default_range=(today - timedelta(days=29), today + timedelta(days=1)),
    )
    statement = ledger.statement(account_id, *to_instants(config, start, end))

    click.echo(f"\nStatement: {statement.account}")
    click.echo(f"Period: {start.isoformat()} to {(end - timedelta(days=1)).isoformat()}")
    click.echo("-" * 90)
    if not statement.lines:
        click.echo("No transactions in period.")
    for line in statement.lines:
        click.echo(
            f"{line.date.isoformat()} | {line.reference:26s} | {line.type:16s} | "
            f"{line.balance_impact}{line.amount:>18s} | {line.description}"
        )
    click.echo("-" * 90)
    click.echo(f"Deposits:    ${statement.total_deposits:,.2f}")
    click.echo(f"Withdrawals: ${statement.total_withdrawals:,.2f}")
    click.echo(f"Balance:     ${statement.closing_balance:,.2f}")
    if statement.balances_approximate:
        click.echo("Note: balances are the current account balance.")


@account_group.command("recent")
@click.argument("account", metavar="ACCOUNT")
@click.option("--org", "organization_id", type=int, help="Organization used to resolve account numbers")
@click.option("--limit", type=int, default=10, show_default=True)
@click.pass_context
def recent_transactions(ctx, account: str, organization_id: int | None, limit: int):
    """Most recent transactions on an account."""
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    account_id = resolve_account_or_exit(ctx, service, account, organization_id)

    transactions = service.recent_transactions(account_id, limit=limit)
    if not transactions:
        click.echo("No transactions found.")
        return
    for txn in transactions:
        click.echo(
            f"{txn.created_at.isoformat()} | {txn.reference} | "
            f"{format_amount(txn.amount, txn.currency)} | {txn.compliance_status.value}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
