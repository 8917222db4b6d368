"""Shared pytest fixtures for nzledger tests."""

import os
import tempfile
from datetime import UTC, datetime
from itertools import count

import pytest

from nzledger.config import LedgerConfig
from nzledger.database.factories import create_sqlite_database
from nzledger.domain.account import AccountService
from nzledger.domain.audit import AuditTrailRecorder
from nzledger.domain.clock import FixedClock
from nzledger.domain.compliance import ComplianceEngine
from nzledger.domain.entities import TransactionCandidate
from nzledger.domain.ledger import LedgerService
from nzledger.domain.organization import OrganizationService
from nzledger.domain.tax import IrdTaxService
from nzledger.domain.transaction import TransactionService
from nzledger.logging_config import reset_logging

# Tuesday 16 January 2024, 11:00 in Auckland (NZDT)
BUSINESS_HOURS = datetime(2024, 1, 15, 22, 0, tzinfo=UTC)
# Tuesday 16 January 2024, 20:00 in Auckland
AFTER_HOURS = datetime(2024, 1, 16, 7, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers bound to streams of earlier tests."""
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def config():
    return LedgerConfig()


@pytest.fixture
def clock():
    """Clock fixed inside Auckland business hours."""
    return FixedClock(BUSINESS_HOURS)


@pytest.fixture
def organization_service(temp_db):
    return OrganizationService(temp_db)


@pytest.fixture
def account_service(temp_db, config):
    return AccountService(temp_db, config)


@pytest.fixture
def audit_recorder(temp_db, config, clock):
    return AuditTrailRecorder(temp_db, config, clock=clock)


@pytest.fixture
def compliance_engine(temp_db, config, clock):
    return ComplianceEngine(temp_db, config, clock=clock)


@pytest.fixture
def transaction_service(temp_db, config, clock):
    """TransactionService with reporting disabled by the absence of a queue."""
    return TransactionService(temp_db, config, clock=clock)


@pytest.fixture
def ledger_service(temp_db, config, clock):
    return LedgerService(temp_db, config, clock=clock)


@pytest.fixture
def tax_service(temp_db, config, clock):
    return IrdTaxService(temp_db, config, clock=clock)


@pytest.fixture
def sample_org(organization_service):
    """A GST registered organization that trades internationally."""
    org_id = organization_service.create_organization(
        name="Kiwi Traders Ltd",
        ird_number="123456789",
        contact_email="accounts@kiwitraders.co.nz",
        gst_registered=True,
        annual_turnover=150_000_000,
        international_transactions_enabled=True,
        rbnz_identifier="RBNZ-0001",
    )
    return organization_service.get_organization(org_id)


@pytest.fixture
def domestic_org(organization_service):
    """An organization limited to NZD transactions."""
    org_id = organization_service.create_organization(
        name="Tui Cafe",
        ird_number="87654321",
        contact_email="owner@tuicafe.nz",
        business_type="sole_trader",
    )
    return organization_service.get_organization(org_id)


@pytest.fixture
def sample_user(organization_service, sample_org):
    """A regular user without high value authorization."""
    user_id = organization_service.create_user(
        organization_id=sample_org.id,
        email="clerk@kiwitraders.co.nz",
        first_name="Aroha",
        last_name="Ngata",
    )
    return organization_service.get_user(user_id)


@pytest.fixture
def authorized_user(organization_service, sample_org):
    user_id = organization_service.create_user(
        organization_id=sample_org.id,
        email="cfo@kiwitraders.co.nz",
        first_name="Sam",
        last_name="Lee",
        role="manager",
        authorized_for_high_value=True,
    )
    return organization_service.get_user(user_id)


@pytest.fixture
def sample_account(account_service, sample_org):
    account_id = account_service.create_account(
        organization_id=sample_org.id,
        name="Operating",
        account_number="12-3456-7890123-00",
        account_type="business_checking",
        balance=2_500_000,
    )
    return account_service.get_account(account_id)


@pytest.fixture
def second_account(account_service, sample_org):
    account_id = account_service.create_account(
        organization_id=sample_org.id,
        name="Savings",
        account_number="12-3456-7890123-01",
        account_type="savings",
    )
    return account_service.get_account(account_id)


@pytest.fixture
def make_candidate(sample_account, sample_user):
    """Build a valid candidate, overriding any field by keyword."""

    def _make(**overrides):
        fields = {
            "account_id": sample_account.id,
            "amount": 10_000,
            "currency": "NZD",
            "transaction_type": "payment_in",
            "created_by_id": sample_user.id,
            "description": "Invoice 1042",
        }
        fields.update(overrides)
        return TransactionCandidate(**fields)

    return _make


@pytest.fixture
def insert_transaction(temp_db, sample_account, sample_user, clock):
    """Insert a committed transaction directly, bypassing the pipeline."""
    references = count(1)

    def _insert(amount=10_000, created_at=None, **overrides):
        fields = {
            "reference": f"TXN-TEST-{next(references):04d}",
            "amount": amount,
            "currency": "NZD",
            "transaction_type": "payment_in",
            "description": "Seeded transaction",
            "account_id": sample_account.id,
            "created_by_id": sample_user.id,
            "compliance_flags": (),
            "compliance_status": "compliant",
            "risk_score": 0,
            "compliance_category": "standard",
            "created_at": created_at or clock.now(),
        }
        fields.update(overrides)
        return temp_db.create_transaction(**fields)

    return _insert


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_obj(temp_db, config, clock):
    """Context object injected into the CLI in place of real resources."""
    return {"db": temp_db, "config": config, "clock": clock}
