"""Tests for database mappers."""

from datetime import UTC, date, datetime

from nzledger.database.mappers import (
    account_to_domain,
    audit_entry_to_domain,
    decode_flags,
    encode_flags,
    organization_to_domain,
    tax_filing_to_domain,
    transaction_to_domain,
)
from nzledger.database.models import (
    Account as ORMAccount,
    AuditEntry as ORMAuditEntry,
    FinancialTransaction as ORMFinancialTransaction,
    Organization as ORMOrganization,
    TaxFiling as ORMTaxFiling,
)
from nzledger.domain.entities import (
    AccountType,
    AuditableRef,
    BusinessType,
    ComplianceCategory,
    ComplianceStatus,
    EntityKind,
    FilingStatus,
    FilingType,
    GstTreatment,
    TransactionType,
)

NOW = datetime(2024, 1, 15, 22, 0, tzinfo=UTC)


class TestFlagEncoding:
    """Tests for compliance flag storage."""

    def test_order_is_preserved(self):
        flags = ("international", "high_value", "after_hours")
        assert decode_flags(encode_flags(flags)) == flags

    def test_empty(self):
        assert encode_flags(()) == "[]"
        assert decode_flags("[]") == ()
        assert decode_flags(None) == ()
        assert decode_flags("") == ()


def test_organization_to_domain():
    orm_org = ORMOrganization(
        id=3,
        name="Kiwi Traders Ltd",
        ird_number="123456789",
        business_type="trust",
        contact_email="a@b.nz",
        gst_registered=True,
        annual_turnover_cents=150_000_000,
        international_transactions_enabled=False,
        rbnz_identifier=None,
        created_at=NOW,
    )
    org = organization_to_domain(orm_org)

    assert org.business_type == BusinessType.TRUST
    assert org.annual_turnover == 150_000_000
    assert org.created_at == NOW


def test_account_to_domain():
    orm_account = ORMAccount(
        id=1,
        organization_id=3,
        name="Operating",
        account_number="12-3456-7890123-00",
        account_type="term_deposit",
        currency="AUD",
        balance_cents=-500,
        active=True,
        frozen=True,
        created_at=NOW,
    )
    account = account_to_domain(orm_account)

    assert account.account_type == AccountType.TERM_DEPOSIT
    assert account.balance == -500
    assert account.frozen
    assert not account.can_transact


def test_transaction_to_domain():
    orm_txn = ORMFinancialTransaction(
        id=9,
        reference="TXN-20240116-0A1B2C3D",
        amount_cents=1_500_000,
        currency="USD",
        transaction_type="payment_out",
        description="Supplier",
        account_id=1,
        counterparty_account_id=2,
        created_by_id=4,
        transaction_category_id=None,
        gst_treatment="zero_rated",
        compliance_flags='["high_value", "international"]',
        compliance_status="flagged",
        risk_score=55,
        compliance_category="medium_risk",
        created_at=NOW,
    )
    txn = transaction_to_domain(orm_txn)

    assert txn.amount == 1_500_000
    assert txn.transaction_type == TransactionType.PAYMENT_OUT
    assert txn.gst_treatment == GstTreatment.ZERO_RATED
    assert txn.compliance_flags == ("high_value", "international")
    assert txn.compliance_status == ComplianceStatus.FLAGGED
    assert txn.compliance_category == ComplianceCategory.MEDIUM_RISK
    assert txn.category_id is None
    assert txn.counterparty_account_id == 2


def test_audit_entry_to_domain():
    orm_entry = ORMAuditEntry(
        id=5,
        auditable_type="tax_filing",
        auditable_id=8,
        action="filed",
        audited_changes='{"status": "submitted"}',
        user_id=None,
        remote_address="10.0.0.1",
        created_at=NOW,
        expires_at=NOW.replace(year=2031),
    )
    entry = audit_entry_to_domain(orm_entry)

    assert entry.auditable == AuditableRef(EntityKind.TAX_FILING, 8)
    assert entry.expires_at.year == 2031


def test_tax_filing_to_domain():
    orm_filing = ORMTaxFiling(
        id=2,
        organization_id=3,
        filing_type="income_tax",
        period_start=date(2023, 4, 1),
        period_end=date(2024, 3, 31),
        due_date=date(2024, 7, 7),
        filed_date=None,
        status="rejected",
        ird_reference="IRD-1",
    )
    filing = tax_filing_to_domain(orm_filing)

    assert filing.filing_type == FilingType.INCOME_TAX
    assert filing.status == FilingStatus.REJECTED
    assert not filing.filed
