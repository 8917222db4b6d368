"""Utility for resolving account numbers to IDs."""

from typing import Optional

from nzledger.domain.account import AccountService


def resolve_account(
    account_service: AccountService,
    account: str | int,
    organization_id: Optional[int] = None,
) -> int:
    """Resolve an account number or ID to an account ID.

    Args:
        account_service: AccountService instance
        account: Account number (str) or ID (int or string representation of int)
        organization_id: Organization to search when resolving by number;
            without it every organization is searched

    Returns:
        Account ID

    Raises:
        ValueError: If the account is not found or the number is ambiguous
    """
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise ValueError(f"Account ID {account} not found")
        return account

    # Account numbers contain dashes (e.g. 12-3456-7890123-00), so plain
    # digits are taken as an ID
    if account.strip().isdigit():
        account_id = int(account)
        if account_service.get_account(account_id) is None:
            raise ValueError(f"Account ID {account_id} not found")
        return account_id

    matches = [acc for acc in account_service.list_accounts(organization_id) if acc.account_number == account.strip()]
    if not matches:
        raise ValueError(f"Account '{account}' not found")
    if len(matches) > 1:
        raise ValueError(f"Account number '{account}' exists in several organizations; pass --org")
    return matches[0].id
