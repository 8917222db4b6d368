"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Iterable, Optional

# Import entities directly; services import this module
from nzledger.domain.entities import (
    Account,
    AuditEntry,
    EntityKind,
    FinancialTransaction,
    Organization,
    TaxFiling,
    TransactionCategory,
    User,
)


class Database(ABC):
    """Abstract database interface for nzledger.

    Write methods commit immediately unless called inside ``atomic()``, in
    which case they only flush and the outermost block decides the outcome.
    Unique constraint violations surface as ``ConflictError``.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open a transactional boundary.

        Everything written inside the block is committed together when the
        outermost block exits normally and rolled back if it raises.
        """
        pass

    # Organization operations
    @abstractmethod
    def create_organization(
        self,
        name: str,
        ird_number: str,
        business_type: str = "company",
        contact_email: Optional[str] = None,
        gst_registered: bool = False,
        annual_turnover: int = 0,
        international_transactions_enabled: bool = False,
        rbnz_identifier: Optional[str] = None,
    ) -> int:
        """Create an organization. Returns organization ID."""
        pass

    @abstractmethod
    def get_organization(self, organization_id: int) -> Optional[Organization]:
        """Get organization by ID."""
        pass

    @abstractmethod
    def list_organizations(self) -> list[Organization]:
        """List all organizations."""
        pass

    # User operations
    @abstractmethod
    def create_user(
        self,
        organization_id: int,
        email: str,
        first_name: str,
        last_name: str,
        role: str = "user",
        authorized_for_high_value: bool = False,
    ) -> int:
        """Create a user. Returns user ID."""
        pass

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        organization_id: int,
        name: str,
        account_number: str,
        account_type: str,
        currency: str = "NZD",
        balance: int = 0,
    ) -> int:
        """Create a bank account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_number(self, organization_id: int, account_number: str) -> Optional[Account]:
        """Get account by its number within an organization."""
        pass

    @abstractmethod
    def list_accounts(self, organization_id: Optional[int] = None) -> list[Account]:
        """List accounts, optionally filtered by organization."""
        pass

    @abstractmethod
    def set_account_frozen(self, account_id: int, frozen: bool) -> None:
        """Freeze or unfreeze an account."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        category_type: Optional[str] = None,
        gst_treatment: str = "standard",
    ) -> int:
        """Create a transaction category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[TransactionCategory]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str) -> Optional[TransactionCategory]:
        """Get category by name."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        reference: str,
        amount: int,
        currency: str,
        transaction_type: str,
        description: str,
        account_id: int,
        created_by_id: int,
        compliance_flags: tuple[str, ...],
        compliance_status: str,
        risk_score: int,
        compliance_category: str,
        created_at: datetime,
        counterparty_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        gst_treatment: str = "standard",
    ) -> int:
        """Create a financial transaction. Returns transaction ID.

        Raises:
            ConflictError: If the reference already exists
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[FinancialTransaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def get_transaction_by_reference(self, reference: str) -> Optional[FinancialTransaction]:
        """Get transaction by its unique reference."""
        pass

    @abstractmethod
    def transaction_reference_exists(self, reference: str) -> bool:
        """Check if a transaction with the given reference exists."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: Optional[int] = None,
        organization_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_end: bool = True,
        transaction_types: Optional[Iterable[str]] = None,
    ) -> list[FinancialTransaction]:
        """List transactions ordered by creation time.

        Args:
            account_id: Optional account filter
            organization_id: Optional organization filter (through the account)
            start: Optional inclusive lower bound on created_at
            end: Optional upper bound on created_at
            include_end: Whether ``end`` itself is inside the window
            transaction_types: Optional transaction type filter
        """
        pass

    @abstractmethod
    def count_transactions(
        self,
        account_id: Optional[int] = None,
        organization_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_end: bool = True,
        amount_above: Optional[int] = None,
        compliance_status: Optional[str] = None,
        uncategorized: bool = False,
    ) -> int:
        """Count transactions matching the filters."""
        pass

    # Audit operations
    @abstractmethod
    def create_audit_entry(
        self,
        auditable_type: str,
        auditable_id: int,
        action: str,
        audited_changes: Optional[str],
        user_id: Optional[int],
        remote_address: Optional[str],
        created_at: datetime,
        expires_at: datetime,
    ) -> int:
        """Append an audit entry. Returns entry ID."""
        pass

    @abstractmethod
    def get_audit_entry(self, entry_id: int) -> Optional[AuditEntry]:
        """Get audit entry by ID."""
        pass

    @abstractmethod
    def list_audit_entries(
        self,
        entity_kind: Optional[EntityKind] = None,
        entity_id: Optional[int] = None,
        action: Optional[str] = None,
        expires_before: Optional[datetime] = None,
        expires_at_or_after: Optional[datetime] = None,
    ) -> list[AuditEntry]:
        """List audit entries ordered by creation time."""
        pass

    @abstractmethod
    def delete_audit_entries_expiring_before(self, instant: datetime) -> int:
        """Delete entries with ``expires_at < instant``. Returns count deleted."""
        pass

    # Tax filing operations
    @abstractmethod
    def create_tax_filing(
        self,
        organization_id: int,
        filing_type: str,
        period_start: date,
        period_end: date,
        due_date: date,
        filed_date: Optional[date] = None,
        status: str = "pending",
        ird_reference: Optional[str] = None,
    ) -> int:
        """Create a tax filing record. Returns filing ID."""
        pass

    @abstractmethod
    def list_tax_filings(
        self,
        organization_id: int,
        filing_type: Optional[str] = None,
    ) -> list[TaxFiling]:
        """List filings for an organization, most recent period first."""
        pass

    @abstractmethod
    def get_tax_filing(self, filing_id: int) -> Optional[TaxFiling]:
        """Get tax filing by ID."""
        pass
