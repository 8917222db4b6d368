"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including enum coercion and the
JSON encoding of compliance flags.
"""

import json

from nzledger.domain import entities as domain
from nzledger.database.models import (
    Organization as ORMOrganization,
    User as ORMUser,
    Account as ORMAccount,
    TransactionCategory as ORMTransactionCategory,
    FinancialTransaction as ORMFinancialTransaction,
    AuditEntry as ORMAuditEntry,
    TaxFiling as ORMTaxFiling,
)


def encode_flags(flags: tuple[str, ...]) -> str:
    """Encode an ordered flag tuple for storage."""
    return json.dumps(list(flags))


def decode_flags(raw: str | None) -> tuple[str, ...]:
    """Decode stored flags, preserving order."""
    if not raw:
        return ()
    return tuple(json.loads(raw))


def organization_to_domain(orm_org: ORMOrganization) -> domain.Organization:
    """Convert SQLAlchemy Organization model to domain Organization entity."""
    return domain.Organization(
        id=orm_org.id,
        name=orm_org.name,
        ird_number=orm_org.ird_number,
        business_type=domain.BusinessType(orm_org.business_type),
        contact_email=orm_org.contact_email,
        gst_registered=orm_org.gst_registered,
        annual_turnover=orm_org.annual_turnover_cents,
        international_transactions_enabled=orm_org.international_transactions_enabled,
        rbnz_identifier=orm_org.rbnz_identifier,
        created_at=orm_org.created_at,
    )


def user_to_domain(orm_user: ORMUser) -> domain.User:
    """Convert SQLAlchemy User model to domain User entity."""
    return domain.User(
        id=orm_user.id,
        organization_id=orm_user.organization_id,
        email=orm_user.email,
        first_name=orm_user.first_name,
        last_name=orm_user.last_name,
        role=domain.UserRole(orm_user.role),
        authorized_for_high_value=orm_user.authorized_for_high_value,
        created_at=orm_user.created_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        organization_id=orm_account.organization_id,
        name=orm_account.name,
        account_number=orm_account.account_number,
        account_type=domain.AccountType(orm_account.account_type),
        currency=orm_account.currency,
        balance=orm_account.balance_cents,
        active=orm_account.active,
        frozen=orm_account.frozen,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMTransactionCategory) -> domain.TransactionCategory:
    """Convert SQLAlchemy TransactionCategory model to domain entity."""
    return domain.TransactionCategory(
        id=orm_category.id,
        name=orm_category.name,
        category_type=orm_category.category_type,
        gst_treatment=domain.GstTreatment(orm_category.gst_treatment),
        active=orm_category.active,
    )


def transaction_to_domain(orm_txn: ORMFinancialTransaction) -> domain.FinancialTransaction:
    """Convert SQLAlchemy FinancialTransaction model to domain entity."""
    return domain.FinancialTransaction(
        id=orm_txn.id,
        reference=orm_txn.reference,
        amount=orm_txn.amount_cents,
        currency=orm_txn.currency,
        transaction_type=domain.TransactionType(orm_txn.transaction_type),
        description=orm_txn.description,
        account_id=orm_txn.account_id,
        counterparty_account_id=orm_txn.counterparty_account_id,
        created_by_id=orm_txn.created_by_id,
        category_id=orm_txn.transaction_category_id,
        gst_treatment=domain.GstTreatment(orm_txn.gst_treatment),
        compliance_flags=decode_flags(orm_txn.compliance_flags),
        compliance_status=domain.ComplianceStatus(orm_txn.compliance_status),
        risk_score=orm_txn.risk_score,
        compliance_category=domain.ComplianceCategory(orm_txn.compliance_category),
        created_at=orm_txn.created_at,
    )


def audit_entry_to_domain(orm_entry: ORMAuditEntry) -> domain.AuditEntry:
    """Convert SQLAlchemy AuditEntry model to domain AuditEntry entity."""
    return domain.AuditEntry(
        id=orm_entry.id,
        auditable=domain.AuditableRef(
            kind=domain.EntityKind(orm_entry.auditable_type),
            id=orm_entry.auditable_id,
        ),
        action=orm_entry.action,
        audited_changes=orm_entry.audited_changes,
        user_id=orm_entry.user_id,
        remote_address=orm_entry.remote_address,
        created_at=orm_entry.created_at,
        expires_at=orm_entry.expires_at,
    )


def tax_filing_to_domain(orm_filing: ORMTaxFiling) -> domain.TaxFiling:
    """Convert SQLAlchemy TaxFiling model to domain TaxFiling entity."""
    return domain.TaxFiling(
        id=orm_filing.id,
        organization_id=orm_filing.organization_id,
        filing_type=domain.FilingType(orm_filing.filing_type),
        period_start=orm_filing.period_start,
        period_end=orm_filing.period_end,
        due_date=orm_filing.due_date,
        filed_date=orm_filing.filed_date,
        status=domain.FilingStatus(orm_filing.status),
        ird_reference=orm_filing.ird_reference,
    )
