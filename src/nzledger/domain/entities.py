"""Domain model entities for nzledger.

These are pure data classes representing business concepts, independent of
database schema. Money is always held as integer minor units.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from nzledger.utils.money import Money


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    PAYMENT_IN = "payment_in"
    PAYMENT_OUT = "payment_out"
    FEE_CHARGE = "fee_charge"
    INTEREST_PAYMENT = "interest_payment"

    @property
    def label(self) -> str:
        """Human readable type, e.g. ``Payment in``."""
        return self.value.replace("_", " ").capitalize()


INFLOW_TYPES = frozenset({TransactionType.DEPOSIT, TransactionType.PAYMENT_IN})
OUTFLOW_TYPES = frozenset({TransactionType.WITHDRAWAL, TransactionType.PAYMENT_OUT})


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    BUSINESS_CHECKING = "business_checking"
    TERM_DEPOSIT = "term_deposit"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"


class GstTreatment(str, Enum):
    STANDARD = "standard"
    ZERO_RATED = "zero_rated"
    EXEMPT = "exempt"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    FLAGGED = "flagged"


class ComplianceCategory(str, Enum):
    STANDARD = "standard"
    MEDIUM_RISK = "medium_risk"
    HIGH_RISK = "high_risk"


class ComplianceFlag(str, Enum):
    HIGH_VALUE = "high_value"
    INTERNATIONAL = "international"
    SUSPICIOUS_PATTERN = "suspicious_pattern"
    AFTER_HOURS = "after_hours"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    MANAGER = "manager"
    COMPLIANCE_OFFICER = "compliance_officer"


class BusinessType(str, Enum):
    SOLE_TRADER = "sole_trader"
    PARTNERSHIP = "partnership"
    COMPANY = "company"
    TRUST = "trust"
    OTHER = "other"


class FilingType(str, Enum):
    GST = "gst"
    PAYE = "paye"
    INCOME_TAX = "income_tax"


class FilingStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EntityKind(str, Enum):
    """Kinds of entity an audit entry can point at."""

    FINANCIAL_TRANSACTION = "financial_transaction"
    ORGANIZATION = "organization"
    TAX_FILING = "tax_filing"


@dataclass(frozen=True)
class Organization:
    """Organization (tenant) domain entity."""

    id: int
    name: str
    ird_number: str
    business_type: BusinessType
    contact_email: Optional[str]
    gst_registered: bool
    annual_turnover: int
    international_transactions_enabled: bool
    rbnz_identifier: Optional[str]
    created_at: datetime

    def requires_gst_registration(self, threshold: int) -> bool:
        return self.annual_turnover >= threshold and not self.gst_registered

    @property
    def display_name(self) -> str:
        return f"{self.name} (IRD: {self.ird_number})"


@dataclass(frozen=True)
class User:
    """User domain entity."""

    id: int
    organization_id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    authorized_for_high_value: bool
    created_at: datetime

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def can_authorize_high_value(self) -> bool:
        """Explicit authorization, or implied by the admin/compliance roles."""
        return self.authorized_for_high_value or self.role in (
            UserRole.ADMIN,
            UserRole.COMPLIANCE_OFFICER,
        )

    @property
    def can_approve_transactions(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.MANAGER, UserRole.COMPLIANCE_OFFICER)


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    organization_id: int
    name: str
    account_number: str
    account_type: AccountType
    currency: str
    balance: int
    active: bool
    frozen: bool
    created_at: datetime

    @property
    def can_transact(self) -> bool:
        return self.active and not self.frozen

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.account_number})"


@dataclass(frozen=True)
class TransactionCategory:
    """Reporting category for transactions."""

    id: int
    name: str
    category_type: Optional[str]
    gst_treatment: GstTreatment
    active: bool


@dataclass(frozen=True)
class FinancialTransaction:
    """Committed financial transaction.

    Compliance fields are computed once at creation and never change.
    """

    id: int
    reference: str
    amount: int
    currency: str
    transaction_type: TransactionType
    description: str
    account_id: int
    counterparty_account_id: Optional[int]
    created_by_id: int
    category_id: Optional[int]
    gst_treatment: GstTreatment
    compliance_flags: tuple[str, ...]
    compliance_status: ComplianceStatus
    risk_score: int
    compliance_category: ComplianceCategory
    created_at: datetime

    @property
    def money(self) -> Money:
        return Money(self.amount, self.currency)

    @property
    def flagged_for_review(self) -> bool:
        return bool(self.compliance_flags)


@dataclass(frozen=True)
class AuditableRef:
    """Tagged reference to an audited entity."""

    kind: EntityKind
    id: int

    def __str__(self) -> str:
        return f"{self.kind.value}#{self.id}"


@dataclass(frozen=True)
class AuditEntry:
    """Append-only audit record with a retention expiry."""

    id: int
    auditable: AuditableRef
    action: str
    audited_changes: Optional[str]
    user_id: Optional[int]
    remote_address: Optional[str]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass(frozen=True)
class TaxFiling:
    """IRD filing tracked per organization, period and filing type."""

    id: int
    organization_id: int
    filing_type: FilingType
    period_start: date
    period_end: date
    due_date: date
    filed_date: Optional[date]
    status: FilingStatus
    ird_reference: Optional[str]

    @property
    def filed(self) -> bool:
        return self.filed_date is not None

    @property
    def filed_late(self) -> bool:
        return self.filed_date is not None and self.filed_date > self.due_date

    def is_overdue(self, today: date) -> bool:
        return self.due_date < today and not self.filed


@dataclass(frozen=True)
class TransactionCandidate:
    """A proposed transaction, before validation."""

    account_id: int
    amount: int
    currency: str
    transaction_type: str
    created_by_id: int
    description: str
    reference: Optional[str] = None
    counterparty_account_id: Optional[int] = None
    category_id: Optional[int] = None
    gst_treatment: str = GstTreatment.STANDARD.value


@dataclass(frozen=True)
class Classification:
    """Compliance annotation derived for a transaction."""

    compliance_flags: tuple[str, ...]
    compliance_status: ComplianceStatus
    risk_score: int
    compliance_category: ComplianceCategory

    @property
    def requires_reporting(self) -> bool:
        return self.compliance_status == ComplianceStatus.FLAGGED


@dataclass(frozen=True)
class MonthlySummary:
    """Trailing-month activity for an account, in major units."""

    total_transactions: int
    total_inflow: Decimal
    total_outflow: Decimal
    average_transaction: Decimal
    largest_transaction: Decimal


@dataclass(frozen=True)
class StatementLine:
    date: date
    description: str
    reference: str
    amount: str
    type: str
    balance_impact: str


@dataclass(frozen=True)
class Statement:
    """Account statement for a window.

    Opening and closing balances are the account's current running balance;
    ``balances_approximate`` is always True until historical balances are
    reconstructed from the ledger.
    """

    account: str
    period_start: datetime
    period_end: datetime
    opening_balance: Decimal
    closing_balance: Decimal
    lines: tuple[StatementLine, ...]
    total_transactions: int
    total_deposits: Decimal
    total_withdrawals: Decimal
    balances_approximate: bool = True


@dataclass(frozen=True)
class OrganizationTotals:
    total_balance: Decimal
    monthly_transaction_volume: Decimal


@dataclass(frozen=True)
class ComplianceReport:
    """Transaction compliance report for an organization and window."""

    period_start: datetime
    period_end: datetime
    total_transactions: int
    total_value: Decimal
    high_value_transactions: int
    international_transactions: int
    currency_breakdown: dict[str, Decimal]
    compliance_flags: dict[str, int]
    generated_at: datetime
    retention_until: datetime


@dataclass(frozen=True)
class GstSummary:
    """GST figures for a period, in minor units."""

    total_sales_incl_gst: int
    total_sales_excl_gst: int
    total_gst_collected: int
    total_purchases_incl_gst: int
    total_purchases_excl_gst: int
    total_gst_paid: int
    net_gst_position: int
    zero_rated_sales: int
    exempt_supplies: int
    sales_count: int
    purchases_count: int

    @property
    def gst_to_pay(self) -> int:
        return self.net_gst_position if self.net_gst_position > 0 else 0

    @property
    def gst_refund_due(self) -> int:
        return -self.net_gst_position if self.net_gst_position < 0 else 0


@dataclass(frozen=True)
class FilingRequirement:
    band: str
    frequency: str
    period_months: int
    due_day_of_month: int
    special_requirements: bool = False


@dataclass(frozen=True)
class GstComplianceAssessment:
    status: str
    issues: tuple[str, ...]
    confidence_score: int


@dataclass(frozen=True)
class GstReturn:
    """Calculated GST return for one organization and period."""

    organization_id: int
    organization_name: str
    ird_number: str
    period_start: date
    period_end: date
    period_description: str
    summary: GstSummary
    sales_by_category: dict[str, Decimal]
    purchases_by_category: dict[str, Decimal]
    compliance: GstComplianceAssessment
    filing_requirements: FilingRequirement
    next_filing_due: date
    payment_due_date: date
    calculated_at: datetime
    calculator_version: str = "1.0"


@dataclass(frozen=True)
class ComplianceIssue:
    type: str
    severity: str
    description: str
    action_required: str
    details: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ComplianceAssessment:
    """Organization-wide tax compliance assessment."""

    compliant: bool
    compliance_score: int
    issues: tuple[ComplianceIssue, ...]
    last_assessed: datetime
    next_review_date: date

    @property
    def issues_count(self) -> int:
        return len(self.issues)


@dataclass(frozen=True)
class PayeSummary:
    applicable: bool
    reason: Optional[str] = None
    period_description: Optional[str] = None
    total_gross_wages: Decimal = Decimal("0.00")
    total_paye_deducted: Decimal = Decimal("0.00")
    total_acc_levies: Decimal = Decimal("0.00")
    total_kiwisaver_contributions: Decimal = Decimal("0.00")
    net_payment_to_ird: Decimal = Decimal("0.00")
    due_date: Optional[date] = None
    compliance_status: Optional[str] = None


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    submission_id: str
    ird_reference: str
    submitted_at: datetime
    status: str
    simulation_mode: bool
    confirmation_code: Optional[str] = None
    processing_time: Optional[str] = None
    next_steps: tuple[str, ...] = field(default_factory=tuple)
