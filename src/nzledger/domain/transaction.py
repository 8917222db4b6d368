"""Transaction domain service.

Recording a transaction runs a fixed pipeline inside one database
transaction: validate, classify, persist, audit. Regulatory reporting is
queued only after the commit succeeds.
"""

import secrets
import weakref
from contextlib import contextmanager
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Iterator, Optional

from nzledger.config import LedgerConfig
from nzledger.database.base import Database
from nzledger.domain.audit import AuditTrailRecorder
from nzledger.domain.clock import Clock, SystemClock
from nzledger.domain.compliance import ComplianceEngine
from nzledger.domain.entities import (
    AuditableRef,
    AuditEntry,
    Classification,
    EntityKind,
    FinancialTransaction,
    TransactionCandidate,
)
from nzledger.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    transaction_not_found,
)
from nzledger.domain.gateways import ReportingQueue, optional_capability
from nzledger.logging_config import get_logger
from nzledger.utils.money import format_amount

logger = get_logger("domain.transaction")

CREATED_ACTION = "financial_transaction_created"
# A generated reference that collides is regenerated once
MAX_REFERENCE_ATTEMPTS = 2

# Entries disappear once no submission holds the lock
_account_locks: "weakref.WeakValueDictionary[int, Lock]" = weakref.WeakValueDictionary()
_account_locks_guard = Lock()


def _lock_for(account_id: int) -> Lock:
    with _account_locks_guard:
        lock = _account_locks.get(account_id)
        if lock is None:
            lock = _account_locks[account_id] = Lock()
        return lock


def generate_reference(now: datetime) -> str:
    """Build a reference such as ``TXN-20240115-9F86D081884C7D65``."""
    return f"TXN-{now.strftime('%Y%m%d')}-{secrets.token_hex(8).upper()}"


class TransactionService:
    """Service for recording and reading financial transactions."""

    def __init__(
        self,
        db: Database,
        config: LedgerConfig,
        engine: Optional[ComplianceEngine] = None,
        audit: Optional[AuditTrailRecorder] = None,
        clock: Optional[Clock] = None,
        reporting_queue: Optional[ReportingQueue] = None,
        reference_factory: Callable[[datetime], str] = generate_reference,
    ):
        """Initialize transaction service.

        Args:
            db: Database instance
            config: Ledger configuration
            engine: Compliance engine; built from ``db`` and ``config`` if omitted
            audit: Audit recorder; built from ``db`` and ``config`` if omitted
            clock: Clock for submission instants
            reporting_queue: Queue for transactions needing regulatory reporting
            reference_factory: Generates references for candidates without one
        """
        self.db = db
        self.config = config
        self.clock = clock or SystemClock()
        self.engine = engine or ComplianceEngine(db, config, clock=self.clock)
        self.audit = audit or AuditTrailRecorder(db, config, clock=self.clock)
        self.reporting_queue = reporting_queue
        self.reference_factory = reference_factory

    @contextmanager
    def _serialized(self, account_id: int) -> Iterator[None]:
        """Hold the account lock and a database transaction together."""
        with _lock_for(account_id):
            with self.db.atomic():
                yield

    def record_transaction(
        self,
        candidate: TransactionCandidate,
        actor_id: Optional[int] = None,
        remote_address: Optional[str] = None,
    ) -> tuple[FinancialTransaction, AuditEntry]:
        """Validate, classify and commit a transaction with its audit entry.

        Args:
            candidate: Proposed transaction; a reference is generated when absent
            actor_id: User recorded on the audit entry (defaults to the creator)
            remote_address: Origin address for the audit entry

        Returns:
            Tuple of (committed transaction, audit entry)

        Raises:
            ValidationError: If any compliance rule fails; nothing is written
            NotFoundError: If a referenced entity does not exist
            ConflictError: If the reference is taken and cannot be regenerated
            DependencyError: If the calendar or reporting queue fails
        """
        generated = candidate.reference is None
        attempts = MAX_REFERENCE_ATTEMPTS if generated else 1

        for attempt in range(1, attempts + 1):
            now = self.clock.now()
            reference = self.reference_factory(now) if generated else candidate.reference
            try:
                transaction, entry, classification = self._run_pipeline(
                    candidate, reference, now, actor_id, remote_address
                )
                break
            except ConflictError:
                logger.warning(
                    "transaction_reference_conflict",
                    extra={"reference": reference, "attempt": attempt, "generated": generated},
                )
                if attempt == attempts:
                    raise

        logger.info(
            "transaction_recorded",
            extra={
                "transaction_id": transaction.id,
                "reference": transaction.reference,
                "account_id": transaction.account_id,
                "amount_cents": transaction.amount,
                "currency": transaction.currency,
                "compliance_status": transaction.compliance_status.value,
                "risk_score": transaction.risk_score,
            },
        )
        if classification.requires_reporting:
            self._enqueue_reporting(transaction)
        return transaction, entry

    def _run_pipeline(
        self,
        candidate: TransactionCandidate,
        reference: str,
        now: datetime,
        actor_id: Optional[int],
        remote_address: Optional[str],
    ) -> tuple[FinancialTransaction, AuditEntry, Classification]:
        with self._serialized(candidate.account_id):
            classification, errors = self.engine.validate_and_classify(candidate, now)
            if errors:
                logger.info(
                    "transaction_validation_failed",
                    extra={
                        "account_id": candidate.account_id,
                        "errors": [str(error) for error in errors],
                    },
                )
                raise ValidationError(errors)

            transaction_id = self.db.create_transaction(
                reference=reference,
                amount=candidate.amount,
                currency=candidate.currency,
                transaction_type=candidate.transaction_type,
                description=candidate.description,
                account_id=candidate.account_id,
                created_by_id=candidate.created_by_id,
                compliance_flags=classification.compliance_flags,
                compliance_status=classification.compliance_status.value,
                risk_score=classification.risk_score,
                compliance_category=classification.compliance_category.value,
                created_at=now,
                counterparty_account_id=candidate.counterparty_account_id,
                category_id=candidate.category_id,
                gst_treatment=candidate.gst_treatment,
            )
            entry = self.audit.record(
                AuditableRef(EntityKind.FINANCIAL_TRANSACTION, transaction_id),
                CREATED_ACTION,
                changes={
                    "amount_cents": candidate.amount,
                    "currency": candidate.currency,
                    "transaction_type": candidate.transaction_type,
                    "compliance_flags": list(classification.compliance_flags),
                },
                user_id=actor_id if actor_id is not None else candidate.created_by_id,
                remote_address=remote_address,
                now=now,
            )
            transaction = self.db.get_transaction(transaction_id)
        return transaction, entry, classification

    def _enqueue_reporting(self, transaction: FinancialTransaction) -> None:
        queue = optional_capability(self.config.reporting_enabled, self.reporting_queue)
        if queue is None:
            reason = "reporting disabled" if not self.config.reporting_enabled else "no reporting queue"
            logger.warning(
                "regulatory_reporting_skipped",
                extra={"reference": transaction.reference, "reason": reason},
            )
            return
        try:
            queue.enqueue(transaction)
        except Exception as exc:
            raise DependencyError(
                f"Transaction {transaction.reference} committed but could not be queued for reporting: {exc}"
            ) from exc

    def get_transaction(self, transaction_id: int) -> Optional[FinancialTransaction]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def get_by_reference(self, reference: str) -> Optional[FinancialTransaction]:
        return self.db.get_transaction_by_reference(reference)

    def list_transactions(
        self,
        account_id: Optional[int] = None,
        organization_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[FinancialTransaction]:
        """List transactions created in ``[start, end]``, oldest first."""
        return self.db.list_transactions(
            account_id=account_id,
            organization_id=organization_id,
            start=start,
            end=end,
        )

    def _require(self, transaction_id: int) -> FinancialTransaction:
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def rbnz_report(self, transaction_id: int) -> dict[str, Any]:
        """Reporting record in the shape the RBNZ submission job expects.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction = self._require(transaction_id)
        account = self.db.get_account(transaction.account_id)
        organization = self.db.get_organization(account.organization_id)
        local = transaction.created_at.astimezone(self.config.tzinfo)
        return {
            "transaction_reference": transaction.reference,
            "amount_cents": transaction.amount,
            "currency": transaction.currency,
            "transaction_type": transaction.transaction_type.value,
            "transaction_date": local.strftime("%Y-%m-%d"),
            "reporting_entity": organization.rbnz_identifier,
            "compliance_category": transaction.compliance_category.value,
            "risk_assessment": transaction.risk_score,
        }

    def audit_trail_summary(self, transaction_id: int) -> dict[str, Any]:
        """Summary of a transaction and its audit history.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction = self._require(transaction_id)
        creator = self.db.get_user(transaction.created_by_id)
        entries = self.audit.entries_for(AuditableRef(EntityKind.FINANCIAL_TRANSACTION, transaction.id))
        return {
            "transaction_id": transaction.id,
            "reference": transaction.reference,
            "amount": format_amount(transaction.amount, transaction.currency),
            "created_at": transaction.created_at,
            "created_by": creator.email if creator is not None else None,
            "compliance_status": transaction.compliance_status.value,
            "audit_entries_count": len(entries),
            "last_audit_at": max((e.created_at for e in entries), default=None),
        }
