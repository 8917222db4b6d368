"""Tests for the transaction recording pipeline."""

import gc
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta

import pytest

from conftest import AFTER_HOURS
from nzledger.domain.audit import AuditTrailRecorder
from nzledger.domain.entities import (
    AuditableRef,
    ComplianceCategory,
    ComplianceStatus,
    EntityKind,
    TransactionType,
)
from nzledger.domain.errors import ConflictError, DependencyError, NotFoundError, ValidationError
from nzledger.domain.gateways import InMemoryReportingQueue, ReportingQueue
from nzledger.domain.transaction import CREATED_ACTION, TransactionService, generate_reference


class FailingAuditRecorder(AuditTrailRecorder):
    def record(self, *args, **kwargs):
        raise RuntimeError("audit store unavailable")


class FailingQueue(ReportingQueue):
    def enqueue(self, transaction):
        raise ConnectionError("queue down")


def _references(*values):
    remaining = list(values)
    return lambda now: remaining.pop(0)


def test_generate_reference_format(clock):
    reference = generate_reference(clock.now())
    assert re.fullmatch(r"TXN-20240115-[0-9A-F]{16}", reference)
    assert generate_reference(clock.now()) != reference


def test_record_compliant_transaction(transaction_service, make_candidate, clock):
    txn, entry = transaction_service.record_transaction(make_candidate(amount=115_000))

    assert txn.id is not None
    assert txn.reference.startswith("TXN-20240115-")
    assert txn.amount == 115_000
    assert txn.transaction_type == TransactionType.PAYMENT_IN
    assert txn.compliance_status == ComplianceStatus.COMPLIANT
    assert txn.compliance_flags == ()
    assert txn.risk_score == 0
    assert txn.created_at == clock.now()

    assert entry.auditable == AuditableRef(EntityKind.FINANCIAL_TRANSACTION, txn.id)
    assert entry.action == CREATED_ACTION
    assert entry.expires_at == clock.now().replace(year=2031)
    assert json.loads(entry.audited_changes) == {
        "amount_cents": 115_000,
        "compliance_flags": [],
        "currency": "NZD",
        "transaction_type": "payment_in",
    }


def test_audit_entry_user_and_address(transaction_service, make_candidate, sample_user, authorized_user):
    _, entry = transaction_service.record_transaction(make_candidate())
    assert entry.user_id == sample_user.id
    assert entry.remote_address == "127.0.0.1"

    _, entry = transaction_service.record_transaction(
        make_candidate(), actor_id=authorized_user.id, remote_address="203.0.113.7"
    )
    assert entry.user_id == authorized_user.id
    assert entry.remote_address == "203.0.113.7"


def test_unauthorized_high_value_is_rejected(transaction_service, make_candidate, temp_db):
    with pytest.raises(ValidationError, match="High value transactions require authorized user approval"):
        transaction_service.record_transaction(make_candidate(amount=1_500_000))
    assert temp_db.count_transactions() == 0
    assert temp_db.list_audit_entries() == []


def test_validation_error_carries_every_field(transaction_service, make_candidate):
    with pytest.raises(ValidationError) as excinfo:
        transaction_service.record_transaction(make_candidate(amount=0, description=""))
    assert excinfo.value.messages_for("amount") == ["must be greater than 0"]
    assert excinfo.value.messages_for("description") == ["can't be blank"]
    assert excinfo.value.code == "VALIDATION_FAILED"


def test_flagged_transaction(transaction_service, make_candidate, authorized_user, clock):
    clock.set_time(AFTER_HOURS)
    txn, entry = transaction_service.record_transaction(
        make_candidate(amount=1_500_000, currency="USD", created_by_id=authorized_user.id)
    )
    assert txn.compliance_flags == ("high_value", "international", "after_hours")
    assert txn.compliance_status == ComplianceStatus.FLAGGED
    assert txn.risk_score == 4
    assert txn.compliance_category == ComplianceCategory.MEDIUM_RISK
    assert json.loads(entry.audited_changes)["compliance_flags"] == ["high_value", "international", "after_hours"]


def test_suspicious_pattern_from_recorded_history(transaction_service, make_candidate):
    for _ in range(5):
        transaction_service.record_transaction(make_candidate(amount=600_000))
    txn, _ = transaction_service.record_transaction(make_candidate(amount=600_000))
    assert "suspicious_pattern" in txn.compliance_flags
    assert txn.risk_score >= 3
    assert txn.compliance_category == ComplianceCategory.HIGH_RISK


def test_caller_supplied_reference(transaction_service, make_candidate):
    txn, _ = transaction_service.record_transaction(make_candidate(reference="INV-1042"))
    assert txn.reference == "INV-1042"
    assert transaction_service.get_by_reference("INV-1042").id == txn.id


def test_duplicate_supplied_reference_is_a_validation_error(transaction_service, make_candidate, temp_db):
    transaction_service.record_transaction(make_candidate(reference="INV-1042"))
    with pytest.raises(ValidationError) as excinfo:
        transaction_service.record_transaction(make_candidate(reference="INV-1042"))
    assert excinfo.value.messages_for("reference") == ["has already been taken"]
    assert temp_db.count_transactions() == 1


def test_generated_reference_collision_is_retried(temp_db, config, clock, make_candidate):
    service = TransactionService(temp_db, config, clock=clock, reference_factory=_references("TXN-A", "TXN-A", "TXN-B"))
    first, _ = service.record_transaction(make_candidate())
    second, entry = service.record_transaction(make_candidate())

    assert first.reference == "TXN-A"
    assert second.reference == "TXN-B"
    assert temp_db.count_transactions() == 2
    # The rolled back attempt left no audit entry behind
    assert len(temp_db.list_audit_entries()) == 2
    assert entry.auditable.id == second.id


def test_generated_reference_collision_gives_up(temp_db, config, clock, make_candidate):
    service = TransactionService(temp_db, config, clock=clock, reference_factory=lambda now: "TXN-SAME")
    service.record_transaction(make_candidate())
    with pytest.raises(ConflictError):
        service.record_transaction(make_candidate())
    assert temp_db.count_transactions() == 1


def test_audit_failure_rolls_back_transaction(temp_db, config, clock, make_candidate):
    service = TransactionService(temp_db, config, clock=clock, audit=FailingAuditRecorder(temp_db, config, clock))
    with pytest.raises(RuntimeError, match="audit store unavailable"):
        service.record_transaction(make_candidate())
    assert temp_db.count_transactions() == 0
    assert temp_db.list_audit_entries() == []


def test_missing_account(transaction_service, make_candidate):
    with pytest.raises(NotFoundError):
        transaction_service.record_transaction(make_candidate(account_id=404))


def test_flagged_transaction_is_queued_for_reporting(temp_db, config, clock, make_candidate, authorized_user):
    queue = InMemoryReportingQueue()
    service = TransactionService(temp_db, config, clock=clock, reporting_queue=queue)

    service.record_transaction(make_candidate())
    flagged, _ = service.record_transaction(make_candidate(amount=1_500_000, created_by_id=authorized_user.id))

    queued = queue.drain()
    assert [t.reference for t in queued] == [flagged.reference]
    assert len(queue) == 0


def test_reporting_disabled_skips_queue(temp_db, config, clock, make_candidate, authorized_user, caplog):
    queue = InMemoryReportingQueue()
    service = TransactionService(
        temp_db, replace(config, reporting_enabled=False), clock=clock, reporting_queue=queue
    )
    with caplog.at_level(logging.WARNING, logger="nzledger.domain.transaction"):
        service.record_transaction(make_candidate(amount=1_500_000, created_by_id=authorized_user.id))

    assert len(queue) == 0
    assert any(r.getMessage() == "regulatory_reporting_skipped" for r in caplog.records)


def test_queue_failure_after_commit(temp_db, config, clock, make_candidate, authorized_user):
    service = TransactionService(temp_db, config, clock=clock, reporting_queue=FailingQueue())
    with pytest.raises(DependencyError, match="committed but could not be queued"):
        service.record_transaction(make_candidate(amount=1_500_000, created_by_id=authorized_user.id))
    assert temp_db.count_transactions() == 1


def test_list_transactions_window(transaction_service, make_candidate, clock, sample_account):
    first, _ = transaction_service.record_transaction(make_candidate())
    clock.advance(days=2)
    second, _ = transaction_service.record_transaction(make_candidate())

    listed = transaction_service.list_transactions(account_id=sample_account.id)
    assert [t.id for t in listed] == [first.id, second.id]

    recent = transaction_service.list_transactions(
        account_id=sample_account.id, start=clock.now() - timedelta(days=1), end=clock.now()
    )
    assert [t.id for t in recent] == [second.id]


def test_rbnz_report(transaction_service, make_candidate, authorized_user):
    txn, _ = transaction_service.record_transaction(
        make_candidate(amount=1_500_000, currency="AUD", created_by_id=authorized_user.id)
    )
    report = transaction_service.rbnz_report(txn.id)
    assert report == {
        "transaction_reference": txn.reference,
        "amount_cents": 1_500_000,
        "currency": "AUD",
        "transaction_type": "payment_in",
        "transaction_date": "2024-01-16",
        "reporting_entity": "RBNZ-0001",
        "compliance_category": "medium_risk",
        "risk_assessment": 3,
    }


def test_rbnz_report_missing_transaction(transaction_service):
    with pytest.raises(NotFoundError, match="Transaction 77 not found"):
        transaction_service.rbnz_report(77)


def test_audit_trail_summary(transaction_service, make_candidate, sample_user, clock):
    txn, _ = transaction_service.record_transaction(make_candidate(amount=25_050))
    summary = transaction_service.audit_trail_summary(txn.id)
    assert summary["reference"] == txn.reference
    assert summary["amount"] == "NZD $250.50"
    assert summary["created_by"] == sample_user.email
    assert summary["compliance_status"] == "compliant"
    assert summary["audit_entries_count"] == 1
    assert summary["last_audit_at"] == clock.now()


def test_account_lock_registry_reuses_locks():
    from nzledger.domain.transaction import _lock_for

    assert _lock_for(1) is _lock_for(1)
    assert _lock_for(1) is not _lock_for(2)


def test_account_lock_registry_drops_unused_locks():
    from nzledger.domain.transaction import _account_locks, _lock_for

    lock = _lock_for(41)
    assert _account_locks.get(41) is lock

    del lock
    gc.collect()
    assert 41 not in _account_locks


def test_concurrent_submissions_see_each_other(transaction_service, make_candidate, temp_db, sample_account):
    """Each submission counts every earlier commit on the account in its trailing window."""

    def submit(_):
        return transaction_service.record_transaction(make_candidate(amount=600_000))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(submit, range(8)))

    stored = temp_db.list_transactions(account_id=sample_account.id)
    assert len(stored) == 8
    assert ["suspicious_pattern" in txn.compliance_flags for txn in stored] == [False] * 5 + [True] * 3
