"""Ledger aggregation service.

Read-only views over the transaction log, recomputed on every call.
"""

from collections import Counter, defaultdict
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from nzledger.config import LedgerConfig
from nzledger.database.base import Database
from nzledger.domain.clock import Clock, SystemClock, ensure_utc
from nzledger.domain.entities import (
    INFLOW_TYPES,
    OUTFLOW_TYPES,
    Account,
    ComplianceReport,
    ComplianceStatus,
    FinancialTransaction,
    MonthlySummary,
    Organization,
    OrganizationTotals,
    Statement,
    StatementLine,
)
from nzledger.domain.errors import NotFoundError, account_not_found, organization_not_found
from nzledger.utils.money import average_minor, format_amount, to_major

HIGH_VOLUME = "high_volume"
LARGE_TRANSACTIONS = "large_transactions"
DORMANT = "dormant"


def _sum(transactions: list[FinancialTransaction], types: frozenset) -> int:
    return sum(t.amount for t in transactions if t.transaction_type in types)


class LedgerService:
    """Service for account and organization level summaries."""

    def __init__(self, db: Database, config: LedgerConfig, clock: Optional[Clock] = None):
        """Initialize ledger service.

        Args:
            db: Database instance
            config: Ledger configuration
            clock: Clock used when no instant is given
        """
        self.db = db
        self.config = config
        self.clock = clock or SystemClock()

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else self.clock.now()

    def _account(self, account_id: int) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def _organization(self, organization_id: int) -> Organization:
        organization = self.db.get_organization(organization_id)
        if organization is None:
            raise NotFoundError(organization_not_found(organization_id))
        return organization

    def _monthly_transactions(self, account_id: int, now: datetime) -> list[FinancialTransaction]:
        return self.db.list_transactions(
            account_id=account_id,
            start=now - relativedelta(months=1),
            end=now,
        )

    def monthly_summary(self, account_id: int, now: Optional[datetime] = None) -> MonthlySummary:
        """Activity over ``[now - 1 month, now]``.

        Args:
            account_id: Account ID
            now: End of the window; defaults to the service clock

        Returns:
            MonthlySummary with amounts in major units

        Raises:
            NotFoundError: If the account does not exist
        """
        self._account(account_id)
        transactions = self._monthly_transactions(account_id, self._now(now))
        amounts = [t.amount for t in transactions]
        return MonthlySummary(
            total_transactions=len(transactions),
            total_inflow=to_major(_sum(transactions, INFLOW_TYPES)),
            total_outflow=to_major(_sum(transactions, OUTFLOW_TYPES)),
            average_transaction=average_minor(amounts),
            largest_transaction=to_major(max(amounts, default=0)),
        )

    def compliance_flags_for_account(self, account_id: int, now: Optional[datetime] = None) -> list[str]:
        """Account-level flags, in the order high_volume, large_transactions, dormant.

        Raises:
            NotFoundError: If the account does not exist
        """
        self._account(account_id)
        now = self._now(now)
        monthly = self._monthly_transactions(account_id, now)

        flags = []
        if len(monthly) > self.config.high_volume_threshold:
            flags.append(HIGH_VOLUME)
        if max((t.amount for t in monthly), default=0) > self.config.large_transaction_flag_threshold:
            flags.append(LARGE_TRANSACTIONS)
        recent = self.db.count_transactions(account_id=account_id, start=now - relativedelta(months=3), end=now)
        if recent == 0:
            flags.append(DORMANT)
        return flags

    def statement(self, account_id: int, start: datetime, end: datetime) -> Statement:
        """Account statement for ``[start, end]``.

        Opening and closing balances are both the account's current running
        balance, so the result is marked ``balances_approximate``.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._account(account_id)
        start, end = ensure_utc(start), ensure_utc(end)
        transactions = self.db.list_transactions(account_id=account_id, start=start, end=end)

        lines = tuple(
            StatementLine(
                date=t.created_at.astimezone(self.config.tzinfo).date(),
                description=t.description,
                reference=t.reference,
                amount=format_amount(t.amount, t.currency),
                type=t.transaction_type.label,
                balance_impact="+" if t.transaction_type in INFLOW_TYPES else "-",
            )
            for t in transactions
        )
        balance = to_major(account.balance)
        return Statement(
            account=account.display_name,
            period_start=start,
            period_end=end,
            opening_balance=balance,
            closing_balance=balance,
            lines=lines,
            total_transactions=len(transactions),
            total_deposits=to_major(_sum(transactions, INFLOW_TYPES)),
            total_withdrawals=to_major(_sum(transactions, OUTFLOW_TYPES)),
        )

    def organization_compliance_score(self, organization_id: int, now: Optional[datetime] = None) -> int:
        """Score from 100 down, never below 0.

        Deductions: 20 when GST registration is required, 10 when any filing
        is overdue, 5 when too many transactions are flagged.

        Raises:
            NotFoundError: If the organization does not exist
        """
        organization = self._organization(organization_id)
        today = self._now(now).astimezone(self.config.tzinfo).date()

        score = 100
        if organization.requires_gst_registration(self.config.gst_registration_threshold):
            score -= 20
        if any(f.is_overdue(today) for f in self.db.list_tax_filings(organization_id)):
            score -= 10
        flagged = self.db.count_transactions(
            organization_id=organization_id,
            compliance_status=ComplianceStatus.FLAGGED.value,
        )
        if flagged > self.config.flagged_transaction_tolerance:
            score -= 5
        return max(score, 0)

    def organization_totals(self, organization_id: int, now: Optional[datetime] = None) -> OrganizationTotals:
        """Balance across active accounts and trailing-month volume."""
        self._organization(organization_id)
        now = self._now(now)
        accounts = self.db.list_accounts(organization_id)
        transactions = self.db.list_transactions(
            organization_id=organization_id,
            start=now - relativedelta(months=1),
            end=now,
        )
        return OrganizationTotals(
            total_balance=to_major(sum(a.balance for a in accounts if a.active)),
            monthly_transaction_volume=to_major(sum(t.amount for t in transactions)),
        )

    def compliance_report(
        self,
        organization_id: int,
        start: datetime,
        end: datetime,
        now: Optional[datetime] = None,
    ) -> ComplianceReport:
        """Transaction compliance report for ``[start, end]``.

        Raises:
            NotFoundError: If the organization does not exist
        """
        self._organization(organization_id)
        start, end = ensure_utc(start), ensure_utc(end)
        now = self._now(now)
        transactions = self.db.list_transactions(organization_id=organization_id, start=start, end=end)

        by_currency: dict[str, int] = defaultdict(int)
        flag_counts: Counter[str] = Counter()
        for t in transactions:
            by_currency[t.currency] += t.amount
            flag_counts.update(t.compliance_flags)

        return ComplianceReport(
            period_start=start,
            period_end=end,
            total_transactions=len(transactions),
            total_value=to_major(sum(t.amount for t in transactions)),
            high_value_transactions=sum(1 for t in transactions if t.amount > self.config.high_value_threshold),
            international_transactions=sum(1 for t in transactions if self.config.is_international(t.currency)),
            currency_breakdown={currency: to_major(total) for currency, total in sorted(by_currency.items())},
            compliance_flags=dict(flag_counts),
            generated_at=now,
            retention_until=now + relativedelta(years=self.config.audit_retention_years),
        )
