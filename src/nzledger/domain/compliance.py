"""Compliance rule engine.

Validates a candidate transaction against the regulatory rules and derives
its compliance flags, status, risk score and category. Nothing here writes
to the database.
"""

from datetime import datetime
from typing import Optional

from nzledger.config import LedgerConfig
from nzledger.database.base import Database
from nzledger.domain.calendar import BusinessCalendar
from nzledger.domain.clock import Clock, SystemClock, ensure_utc
from nzledger.domain.entities import (
    Account,
    Classification,
    ComplianceCategory,
    ComplianceFlag,
    ComplianceStatus,
    GstTreatment,
    Organization,
    TransactionCandidate,
    TransactionType,
    User,
)
from nzledger.domain.errors import (
    FieldError,
    NotFoundError,
    account_not_found,
    category_not_found,
    organization_not_found,
    user_not_found,
)
from nzledger.logging_config import get_logger

logger = get_logger("domain.compliance")

HIGH_VALUE_UNAUTHORIZED = "High value transactions require authorized user approval"
INTERNATIONAL_NOT_ENABLED = "International transactions not enabled for this organization"
LARGE_OUTSIDE_BUSINESS_HOURS = "Large transactions must be processed during business hours"

RISK_WEIGHTS = {
    ComplianceFlag.SUSPICIOUS_PATTERN.value: 3,
    ComplianceFlag.HIGH_VALUE.value: 2,
    ComplianceFlag.INTERNATIONAL.value: 1,
    ComplianceFlag.AFTER_HOURS.value: 1,
}

_TRANSACTION_TYPES = frozenset(t.value for t in TransactionType)
_GST_TREATMENTS = frozenset(t.value for t in GstTreatment)


def _is_amount(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ComplianceEngine:
    """Validates and classifies candidate transactions."""

    def __init__(
        self,
        db: Database,
        config: LedgerConfig,
        calendar: Optional[BusinessCalendar] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize compliance engine.

        Args:
            db: Database instance
            config: Ledger configuration
            calendar: Business calendar; built from ``config`` if omitted
            clock: Clock used when no submission instant is given
        """
        self.db = db
        self.config = config
        self.calendar = calendar or BusinessCalendar(config)
        self.clock = clock or SystemClock()

    def _load_parties(self, candidate: TransactionCandidate) -> tuple[Account, Organization, User]:
        account = self.db.get_account(candidate.account_id)
        if account is None:
            raise NotFoundError(account_not_found(candidate.account_id))
        organization = self.db.get_organization(account.organization_id)
        if organization is None:
            raise NotFoundError(organization_not_found(account.organization_id))
        user = self.db.get_user(candidate.created_by_id)
        if user is None:
            raise NotFoundError(user_not_found(candidate.created_by_id))
        return account, organization, user

    def validate(self, candidate: TransactionCandidate, now: datetime) -> list[FieldError]:
        """Collect every rule the candidate breaks.

        Args:
            candidate: Proposed transaction
            now: Wall-clock submission instant

        Returns:
            Field errors, empty when the candidate is acceptable

        Raises:
            NotFoundError: If the account, its organization, the creating user,
                the counterparty account or the category does not exist
            DependencyError: If business hours cannot be evaluated
        """
        config = self.config
        account, organization, user = self._load_parties(candidate)

        counterparty = None
        if candidate.counterparty_account_id is not None:
            counterparty = self.db.get_account(candidate.counterparty_account_id)
            if counterparty is None:
                raise NotFoundError(account_not_found(candidate.counterparty_account_id))
        if candidate.category_id is not None and self.db.get_category(candidate.category_id) is None:
            raise NotFoundError(category_not_found(candidate.category_id))

        errors: list[FieldError] = []
        amount_ok = _is_amount(candidate.amount) and candidate.amount > 0

        if not amount_ok:
            errors.append(FieldError("amount", "must be greater than 0"))
        currency_ok = config.is_supported_currency(candidate.currency)
        if not currency_ok:
            supported = ", ".join(config.supported_currencies)
            errors.append(FieldError("currency", f"must be a supported currency: {supported}"))
        if candidate.transaction_type not in _TRANSACTION_TYPES:
            errors.append(FieldError("transaction_type", "is not included in the list"))

        description = (candidate.description or "").strip()
        if not description:
            errors.append(FieldError("description", "can't be blank"))
        elif len(candidate.description) > config.max_description_length:
            errors.append(
                FieldError(
                    "description",
                    f"is too long (maximum is {config.max_description_length} characters)",
                )
            )

        if candidate.reference is not None:
            if not candidate.reference.strip():
                errors.append(FieldError("reference", "can't be blank"))
            elif self.db.transaction_reference_exists(candidate.reference):
                errors.append(FieldError("reference", "has already been taken"))

        if candidate.gst_treatment not in _GST_TREATMENTS:
            errors.append(FieldError("gst_treatment", "is not included in the list"))

        if not account.can_transact:
            errors.append(FieldError("account", "is frozen or inactive"))
        if counterparty is not None and not counterparty.can_transact:
            errors.append(FieldError("counterparty_account", "is frozen or inactive"))

        if amount_ok and candidate.amount > config.high_value_threshold and not user.can_authorize_high_value:
            errors.append(FieldError("amount", HIGH_VALUE_UNAUTHORIZED))
        international = currency_ok and config.is_international(candidate.currency)
        if international and not organization.international_transactions_enabled:
            errors.append(FieldError("currency", INTERNATIONAL_NOT_ENABLED))
        if amount_ok and candidate.amount > config.large_transaction_threshold:
            if not self.calendar.is_business_time(now):
                errors.append(FieldError("base", LARGE_OUTSIDE_BUSINESS_HOURS))

        return errors

    def is_suspicious(self, account_id: int, now: datetime) -> bool:
        """Whether the account already has enough recent large transactions.

        Counts committed transactions created in ``[now - window, now]``
        above the suspicious amount. The candidate itself is not yet stored.
        """
        recent = self.db.count_transactions(
            account_id=account_id,
            start=now - self.config.suspicious_window,
            end=now,
            amount_above=self.config.suspicious_amount_threshold,
        )
        return recent >= self.config.suspicious_transaction_count

    def classify(self, candidate: TransactionCandidate, now: datetime) -> Classification:
        """Derive the compliance annotation for an already valid candidate."""
        flags: list[str] = []
        if candidate.amount > self.config.high_value_threshold:
            flags.append(ComplianceFlag.HIGH_VALUE.value)
        if self.config.is_international(candidate.currency):
            flags.append(ComplianceFlag.INTERNATIONAL.value)
        if self.is_suspicious(candidate.account_id, now):
            flags.append(ComplianceFlag.SUSPICIOUS_PATTERN.value)
        if not self.calendar.is_business_time(now):
            flags.append(ComplianceFlag.AFTER_HOURS.value)

        if ComplianceFlag.SUSPICIOUS_PATTERN.value in flags:
            category = ComplianceCategory.HIGH_RISK
        elif ComplianceFlag.HIGH_VALUE.value in flags or ComplianceFlag.INTERNATIONAL.value in flags:
            category = ComplianceCategory.MEDIUM_RISK
        else:
            category = ComplianceCategory.STANDARD

        return Classification(
            compliance_flags=tuple(flags),
            compliance_status=ComplianceStatus.FLAGGED if flags else ComplianceStatus.COMPLIANT,
            risk_score=sum(RISK_WEIGHTS[flag] for flag in flags),
            compliance_category=category,
        )

    def validate_and_classify(
        self,
        candidate: TransactionCandidate,
        now: Optional[datetime] = None,
    ) -> tuple[Optional[Classification], list[FieldError]]:
        """Validate a candidate and, when it passes, classify it.

        Args:
            candidate: Proposed transaction
            now: Submission instant; defaults to the engine clock

        Returns:
            ``(classification, [])`` on success or ``(None, field_errors)``
        """
        now = ensure_utc(now) if now is not None else self.clock.now()
        errors = self.validate(candidate, now)
        if errors:
            return None, errors
        classification = self.classify(candidate, now)
        logger.debug(
            "transaction_classified",
            extra={
                "account_id": candidate.account_id,
                "compliance_flags": list(classification.compliance_flags),
                "risk_score": classification.risk_score,
            },
        )
        return classification, []
