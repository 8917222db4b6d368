"""IRD tax calculation service.

GST returns are computed from the committed transaction log for a period
``[period_start, period_end)`` of local calendar dates. All arithmetic is on
integer minor units; rounding is half up.
"""

import secrets
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from nzledger.config import LedgerConfig
from nzledger.database.base import Database
from nzledger.domain.audit import AuditTrailRecorder
from nzledger.domain.clock import Clock, SystemClock
from nzledger.domain.entities import (
    AuditableRef,
    ComplianceAssessment,
    ComplianceIssue,
    EntityKind,
    FilingRequirement,
    FilingStatus,
    FilingType,
    FinancialTransaction,
    GstComplianceAssessment,
    GstReturn,
    GstSummary,
    GstTreatment,
    Organization,
    PayeSummary,
    SubmissionResult,
    TransactionType,
)
from nzledger.domain.errors import (
    DependencyError,
    NotFoundError,
    PreconditionError,
    organization_not_found,
)
from nzledger.domain.gateways import PayrollProvider, TaxGateway
from nzledger.logging_config import get_logger
from nzledger.utils.money import split_gst_inclusive, to_major

logger = get_logger("domain.tax")

SALES_TYPES = frozenset({TransactionType.PAYMENT_IN, TransactionType.DEPOSIT})
PURCHASE_TYPES = frozenset({TransactionType.PAYMENT_OUT, TransactionType.WITHDRAWAL})

# Upper turnover bounds in minor units, checked in order
FILING_BANDS = (
    (200_000_000, FilingRequirement(band="up_to_2m", frequency="monthly", period_months=1, due_day_of_month=28)),
    (2_400_000_000, FilingRequirement(band="2m_to_24m", frequency="monthly", period_months=1, due_day_of_month=28)),
)
TOP_FILING_BAND = FilingRequirement(
    band="over_24m",
    frequency="monthly",
    period_months=1,
    due_day_of_month=28,
    special_requirements=True,
)

SEVERITY_PENALTIES = {"high": 30, "medium": 15}

CONFIDENCE_BASE = 85
ESTABLISHED_HISTORY_TRANSACTIONS = 50
UNCATEGORIZED_TOLERANCE = 0.1
CONSISTENT_FILING_COUNT = 12

PAYE_DUE_DAY = 20


def filing_requirement_for(annual_turnover: int) -> FilingRequirement:
    """Filing band for an annual turnover in minor units."""
    for upper, requirement in FILING_BANDS:
        if annual_turnover <= upper:
            return requirement
    return TOP_FILING_BAND


def period_description(period_start: date, period_end: date) -> str:
    """Human description of ``[period_start, period_end)``."""
    last_day = period_end - timedelta(days=1)
    days = (last_day - period_start).days
    if 27 <= days <= 31:
        return period_start.strftime("%B %Y")
    if 58 <= days <= 62:
        return f"{period_start.strftime('%B')} - {last_day.strftime('%B %Y')}"
    return f"{period_start.strftime('%d %b %Y')} to {last_day.strftime('%d %b %Y')}"


def _months_between(start: date, end: date) -> int:
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


class IrdTaxService:
    """Service for GST returns, PAYE and tax compliance assessments."""

    def __init__(
        self,
        db: Database,
        config: LedgerConfig,
        clock: Optional[Clock] = None,
        audit: Optional[AuditTrailRecorder] = None,
        gateway: Optional[TaxGateway] = None,
        payroll: Optional[PayrollProvider] = None,
    ):
        """Initialize IRD tax service.

        Args:
            db: Database instance
            config: Ledger configuration (GST rate, thresholds, timezone)
            clock: Clock for calculation and submission timestamps
            audit: Audit recorder for live submissions
            gateway: IRD gateway; live submission is unavailable without one
            payroll: Payroll source; PAYE is not applicable without one
        """
        self.db = db
        self.config = config
        self.clock = clock or SystemClock()
        self.audit = audit or AuditTrailRecorder(db, config, clock=self.clock)
        self.gateway = gateway
        self.payroll = payroll

    def _organization(self, organization_id: int) -> Organization:
        organization = self.db.get_organization(organization_id)
        if organization is None:
            raise NotFoundError(organization_not_found(organization_id))
        return organization

    def _today(self) -> date:
        return self.clock.now().astimezone(self.config.tzinfo).date()

    def _instant(self, day: date) -> datetime:
        """Start of a local calendar day as a UTC instant."""
        return datetime.combine(day, time.min, tzinfo=self.config.tzinfo).astimezone(UTC)

    def _period_transactions(
        self, organization_id: int, period_start: date, period_end: date
    ) -> list[FinancialTransaction]:
        return self.db.list_transactions(
            organization_id=organization_id,
            start=self._instant(period_start),
            end=self._instant(period_end),
            include_end=False,
        )

    def default_period(self, now: Optional[datetime] = None) -> tuple[date, date]:
        """The previous calendar month as ``(start, end)``, end exclusive."""
        now = now or self.clock.now()
        first_of_month = now.astimezone(self.config.tzinfo).date().replace(day=1)
        return first_of_month - relativedelta(months=1), first_of_month

    def gst_summary(self, transactions: list[FinancialTransaction]) -> GstSummary:
        """GST figures for a set of transactions.

        Zero-rated and exempt ``payment_in`` amounts are reported separately
        and left out of the GST collected.
        """
        rate = self.config.gst_rate
        sales = [t for t in transactions if t.transaction_type in SALES_TYPES]
        purchases = [t for t in transactions if t.transaction_type in PURCHASE_TYPES]

        def special(treatment: GstTreatment) -> int:
            return sum(
                t.amount
                for t in sales
                if t.transaction_type == TransactionType.PAYMENT_IN and t.gst_treatment == treatment
            )

        zero_rated = special(GstTreatment.ZERO_RATED)
        exempt = special(GstTreatment.EXEMPT)

        sales_incl = sum(t.amount for t in sales) - zero_rated - exempt
        sales_excl, gst_collected = split_gst_inclusive(sales_incl, rate)
        purchases_incl = sum(t.amount for t in purchases)
        purchases_excl, gst_paid = split_gst_inclusive(purchases_incl, rate)

        return GstSummary(
            total_sales_incl_gst=sales_incl,
            total_sales_excl_gst=sales_excl,
            total_gst_collected=gst_collected,
            total_purchases_incl_gst=purchases_incl,
            total_purchases_excl_gst=purchases_excl,
            total_gst_paid=gst_paid,
            net_gst_position=gst_collected - gst_paid,
            zero_rated_sales=zero_rated,
            exempt_supplies=exempt,
            sales_count=len(sales),
            purchases_count=len(purchases),
        )

    def _by_category(self, transactions: list[FinancialTransaction], types: frozenset) -> dict[str, Decimal]:
        totals: dict[str, int] = {}
        names: dict[int, str] = {}
        for t in transactions:
            if t.transaction_type not in types or t.category_id is None:
                continue
            if t.category_id not in names:
                category = self.db.get_category(t.category_id)
                names[t.category_id] = category.name if category is not None else f"Category {t.category_id}"
            name = names[t.category_id]
            totals[name] = totals.get(name, 0) + t.amount
        return {name: to_major(total) for name, total in sorted(totals.items())}

    def _previous_period(self, period_start: date, period_end: date) -> tuple[date, date]:
        if period_start.day == 1 and period_end.day == 1:
            months = _months_between(period_start, period_end)
            if months > 0:
                return period_start - relativedelta(months=months), period_start
        return period_start - (period_end - period_start), period_start

    def _assess_gst_compliance(
        self,
        organization: Organization,
        period_start: date,
        period_end: date,
        summary: GstSummary,
        transactions: list[FinancialTransaction],
    ) -> GstComplianceAssessment:
        issues: list[str] = []
        gst_filings = self.db.list_tax_filings(organization.id, filing_type=FilingType.GST.value)

        last_filing = next((f for f in gst_filings if f.period_end < period_start), None)
        if last_filing is not None and last_filing.filed_late:
            issues.append("late_filing_history")

        previous_start, previous_end = self._previous_period(period_start, period_end)
        previous = self._period_transactions(organization.id, previous_start, previous_end)
        if previous:
            previous_net = self.gst_summary(previous).net_gst_position
            if abs(summary.net_gst_position - previous_net) > self.config.gst_variation_threshold:
                issues.append("significant_variation")

        score = CONFIDENCE_BASE
        if self.db.count_transactions(organization_id=organization.id) > ESTABLISHED_HISTORY_TRANSACTIONS:
            score += 10
        uncategorized = sum(1 for t in transactions if t.category_id is None)
        if uncategorized > len(transactions) * UNCATEGORIZED_TOLERANCE:
            score -= 15
        if sum(1 for f in gst_filings if f.filed) >= CONSISTENT_FILING_COUNT:
            score += 5

        return GstComplianceAssessment(
            status="compliant" if not issues else "attention_required",
            issues=tuple(issues),
            confidence_score=min(score, 100),
        )

    def compute_gst_return(self, organization_id: int, period_start: date, period_end: date) -> GstReturn:
        """Calculate the GST return for ``[period_start, period_end)``.

        Args:
            organization_id: Organization ID
            period_start: First local day of the period
            period_end: First local day after the period

        Returns:
            GstReturn with amounts in minor units and breakdowns in major units

        Raises:
            NotFoundError: If the organization does not exist
            PreconditionError: If the organization is not GST registered,
                has no IRD number, or the period is empty
        """
        organization = self._organization(organization_id)
        if not organization.gst_registered:
            raise PreconditionError("Organization must be GST registered")
        if period_start >= period_end:
            raise PreconditionError("Invalid period dates")
        if not organization.ird_number:
            raise PreconditionError("Organization must have valid IRD number")

        transactions = self._period_transactions(organization_id, period_start, period_end)
        summary = self.gst_summary(transactions)
        requirement = filing_requirement_for(organization.annual_turnover)
        last_day = period_end - timedelta(days=1)

        gst_return = GstReturn(
            organization_id=organization.id,
            organization_name=organization.name,
            ird_number=organization.ird_number,
            period_start=period_start,
            period_end=period_end,
            period_description=period_description(period_start, period_end),
            summary=summary,
            sales_by_category=self._by_category(transactions, SALES_TYPES),
            purchases_by_category=self._by_category(transactions, PURCHASE_TYPES),
            compliance=self._assess_gst_compliance(organization, period_start, period_end, summary, transactions),
            filing_requirements=requirement,
            next_filing_due=(last_day + relativedelta(months=requirement.period_months)).replace(
                day=requirement.due_day_of_month
            ),
            payment_due_date=(last_day + relativedelta(months=1)).replace(day=requirement.due_day_of_month),
            calculated_at=self.clock.now(),
        )
        logger.info(
            "gst_return_calculated",
            extra={
                "organization_id": organization.id,
                "period_start": period_start,
                "period_end": period_end,
                "net_gst_position": summary.net_gst_position,
                "compliance_status": gst_return.compliance.status,
            },
        )
        return gst_return

    def assess_tax_compliance(self, organization_id: int) -> ComplianceAssessment:
        """Organization-wide tax compliance assessment.

        Raises:
            NotFoundError: If the organization does not exist
        """
        organization = self._organization(organization_id)
        today = self._today()
        issues: list[ComplianceIssue] = []

        if organization.requires_gst_registration(self.config.gst_registration_threshold):
            threshold = to_major(self.config.gst_registration_threshold)
            issues.append(
                ComplianceIssue(
                    type="gst_registration_required",
                    severity="high",
                    description=f"GST registration required - annual turnover exceeds ${threshold:,.0f}",
                    action_required="Register for GST within 21 days",
                )
            )

        gst_filings = self.db.list_tax_filings(organization_id, filing_type=FilingType.GST.value)
        if gst_filings:
            latest = gst_filings[0]
            months = _months_between(latest.period_start, latest.period_end + timedelta(days=1))
            if months != filing_requirement_for(organization.annual_turnover).period_months:
                issues.append(
                    ComplianceIssue(
                        type="filing_frequency_incorrect",
                        severity="medium",
                        description="Filing frequency may need adjustment based on turnover",
                        action_required="Review filing frequency with IRD",
                    )
                )

        outstanding = [f for f in self.db.list_tax_filings(organization_id) if f.is_overdue(today)]
        if outstanding:
            issues.append(
                ComplianceIssue(
                    type="outstanding_returns",
                    severity="high",
                    description=f"{len(outstanding)} overdue tax returns",
                    action_required="File outstanding returns immediately",
                    details=tuple(
                        {
                            "filing_type": f.filing_type.value,
                            "period_end": f.period_end,
                            "due_date": f.due_date,
                        }
                        for f in outstanding
                    ),
                )
            )

        score = max(100 - sum(SEVERITY_PENALTIES.get(i.severity, 0) for i in issues), 0)
        return ComplianceAssessment(
            compliant=not issues,
            compliance_score=score,
            issues=tuple(issues),
            last_assessed=self.clock.now(),
            next_review_date=today + relativedelta(months=3),
        )

    def calculate_paye(self, organization_id: int, period_start: date, period_end: date) -> PayeSummary:
        """PAYE figures for ``[period_start, period_end)``.

        Not applicable unless a payroll provider reports registered employees.
        """
        self._organization(organization_id)
        if self.payroll is None or not self.payroll.has_registered_employees(organization_id):
            return PayeSummary(applicable=False, reason="No employees registered")

        totals = self.payroll.payroll_totals(organization_id, period_start, period_end)
        last_day = period_end - timedelta(days=1)
        due_date = (last_day + relativedelta(months=1)).replace(day=PAYE_DUE_DAY)
        return PayeSummary(
            applicable=True,
            period_description=period_description(period_start, period_end),
            total_gross_wages=totals["gross_wages"],
            total_paye_deducted=totals["paye"],
            total_acc_levies=totals["acc_levies"],
            total_kiwisaver_contributions=totals["kiwisaver"],
            net_payment_to_ird=totals["paye"] + totals["kiwisaver"],
            due_date=due_date,
            compliance_status="overdue" if due_date < self._today() else "current",
        )

    def submit_gst_return(
        self,
        gst_return: GstReturn,
        dry_run: bool = True,
        actor_id: Optional[int] = None,
    ) -> SubmissionResult:
        """Submit a calculated GST return.

        A dry run returns a synthetic acceptance without any external call.
        A live submission goes through the IRD gateway, records the filing
        and audits the result against the organization.

        Raises:
            DependencyError: If no gateway is configured or the gateway fails
        """
        now = self.clock.now()
        if dry_run:
            return SubmissionResult(
                success=True,
                submission_id=f"SIM-{secrets.token_hex(8).upper()}",
                ird_reference=f"IRD-{now.strftime('%Y%m%d')}-{secrets.token_hex(4).upper()}",
                submitted_at=now,
                status="accepted",
                simulation_mode=True,
                confirmation_code=secrets.token_hex(6).upper(),
                processing_time="2-3 business days",
                next_steps=(
                    "Return will be processed by IRD",
                    "Confirmation will be sent to registered email",
                    f"Payment due date: {gst_return.payment_due_date.strftime('%d %B %Y')}",
                ),
            )

        if self.gateway is None:
            raise DependencyError("IRD gateway not configured; live submission unavailable")
        try:
            ack = self.gateway.submit_gst_return(gst_return)
        except Exception as exc:
            logger.error(
                "gst_return_submission_failed",
                extra={"organization_id": gst_return.organization_id, "error": str(exc)},
            )
            raise DependencyError(f"IRD gateway submission failed: {exc}") from exc

        result = SubmissionResult(
            success=bool(ack.get("success", True)),
            submission_id=str(ack["submission_id"]),
            ird_reference=str(ack["ird_reference"]),
            submitted_at=now,
            status=str(ack.get("status", FilingStatus.SUBMITTED.value)),
            simulation_mode=False,
            confirmation_code=ack.get("confirmation_code"),
            processing_time=ack.get("processing_time"),
        )

        filing_status = (
            result.status
            if result.status in {s.value for s in FilingStatus}
            else FilingStatus.SUBMITTED.value
        )
        with self.db.atomic():
            self.db.create_tax_filing(
                organization_id=gst_return.organization_id,
                filing_type=FilingType.GST.value,
                period_start=gst_return.period_start,
                period_end=gst_return.period_end - timedelta(days=1),
                due_date=gst_return.payment_due_date,
                filed_date=now.astimezone(self.config.tzinfo).date(),
                status=filing_status,
                ird_reference=result.ird_reference,
            )
            self.audit.record(
                AuditableRef(EntityKind.ORGANIZATION, gst_return.organization_id),
                "gst_return_submitted",
                changes={
                    "period_start": gst_return.period_start,
                    "period_end": gst_return.period_end,
                    "net_gst_position": gst_return.summary.net_gst_position,
                    "submission_id": result.submission_id,
                    "ird_reference": result.ird_reference,
                    "status": result.status,
                },
                user_id=actor_id,
                now=now,
            )
        logger.info(
            "gst_return_submitted",
            extra={
                "organization_id": gst_return.organization_id,
                "submission_id": result.submission_id,
                "status": result.status,
            },
        )
        return result
