"""Account domain service."""

from typing import Optional

from nzledger.config import LedgerConfig
from nzledger.database.base import Database
from nzledger.domain.entities import Account as AccountEntity, AccountType, FinancialTransaction
from nzledger.domain.errors import (
    ConflictError,
    FieldError,
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_account_number,
    organization_not_found,
)
from nzledger.logging_config import get_logger

logger = get_logger("domain.account")

ACCOUNT_TYPES = tuple(t.value for t in AccountType)


class AccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: Database, config: LedgerConfig):
        """Initialize account service.

        Args:
            db: Database instance
            config: Ledger configuration (supported currencies)
        """
        self.db = db
        self.config = config

    def create_account(
        self,
        organization_id: int,
        name: str,
        account_number: str,
        account_type: str,
        currency: Optional[str] = None,
        balance: int = 0,
    ) -> int:
        """Create a new account.

        Args:
            organization_id: Owning organization ID
            name: Account name
            account_number: Account number, unique within the organization
            account_type: One of the AccountType values
            currency: Currency code; defaults to the home currency
            balance: Opening balance in minor units

        Returns:
            Account ID

        Raises:
            NotFoundError: If the organization does not exist
            ValidationError: If any field is invalid
            ConflictError: If the account number already exists for the organization
        """
        if self.db.get_organization(organization_id) is None:
            raise NotFoundError(organization_not_found(organization_id))
        currency = currency or self.config.home_currency

        errors = []
        if not name or not name.strip():
            errors.append(FieldError("name", "can't be blank"))
        if not account_number or not account_number.strip():
            errors.append(FieldError("account_number", "can't be blank"))
        if account_type not in ACCOUNT_TYPES:
            errors.append(FieldError("account_type", "must be a valid account type"))
        if not self.config.is_supported_currency(currency):
            errors.append(FieldError("currency", "is not included in the list"))
        if errors:
            raise ValidationError(errors)

        if self.db.get_account_by_number(organization_id, account_number) is not None:
            raise ConflictError(duplicate_account_number(account_number, organization_id))

        return self.db.create_account(
            organization_id=organization_id,
            name=name.strip(),
            account_number=account_number.strip(),
            account_type=account_type,
            currency=currency,
            balance=balance,
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self, organization_id: Optional[int] = None) -> list[AccountEntity]:
        """List accounts, optionally for one organization.

        Returns:
            List of account entities
        """
        return self.db.list_accounts(organization_id)

    def _set_frozen(self, account_id: int, frozen: bool) -> None:
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        self.db.set_account_frozen(account_id, frozen)
        logger.info("account_frozen" if frozen else "account_unfrozen", extra={"account_id": account_id})

    def freeze_account(self, account_id: int) -> None:
        """Freeze an account so it can neither originate nor receive transactions.

        Raises:
            NotFoundError: If the account does not exist
        """
        self._set_frozen(account_id, True)

    def unfreeze_account(self, account_id: int) -> None:
        """Unfreeze a previously frozen account.

        Raises:
            NotFoundError: If the account does not exist
        """
        self._set_frozen(account_id, False)

    def recent_transactions(self, account_id: int, limit: int = 10) -> list[FinancialTransaction]:
        """Most recent transactions first."""
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        transactions = self.db.list_transactions(account_id=account_id)
        return list(reversed(transactions))[:limit]
