"""CLI helpers for account resolution and error handling."""

from __future__ import annotations

from typing import Optional

import click
from nzledger.domain.account import AccountService
from nzledger.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context,
    account_service: AccountService,
    account: str | int,
    organization_id: Optional[int] = None,
) -> int:
    """Resolve account number or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(account_service, account, organization_id=organization_id)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
