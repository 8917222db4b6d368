"""SQLAlchemy models for the nzledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, returns aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Organization(Base):
    """Organization (tenant) model."""

    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    ird_number = Column(String(9), unique=True, nullable=False)
    rbnz_identifier = Column(String(20), unique=True, nullable=True)
    business_type = Column(String, nullable=False, default="company")
    contact_email = Column(String, nullable=True)
    gst_registered = Column(Boolean, default=False, nullable=False)
    annual_turnover_cents = Column(BigInteger, default=0, nullable=False)
    international_transactions_enabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    # Relationships
    users = relationship("User", back_populates="organization")
    accounts = relationship("Account", back_populates="organization")
    tax_filings = relationship("TaxFiling", back_populates="organization")


class User(Base):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    email = Column(String, unique=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    authorized_for_high_value = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="users")


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    currency = Column(String(3), nullable=False, default="NZD")
    balance_cents = Column(BigInteger, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    frozen = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "account_number", name="uq_organization_account_number"),
    )

    # Relationships
    organization = relationship("Organization", back_populates="accounts")
    transactions = relationship(
        "FinancialTransaction",
        back_populates="account",
        foreign_keys="FinancialTransaction.account_id",
    )


class TransactionCategory(Base):
    """Reporting category model."""

    __tablename__ = "transaction_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    category_type = Column(String, nullable=True)
    gst_treatment = Column(String, nullable=False, default="standard")
    active = Column(Boolean, default=True, nullable=False)


class FinancialTransaction(Base):
    """Financial transaction model."""

    __tablename__ = "financial_transactions"

    id = Column(Integer, primary_key=True)
    reference = Column(String, unique=True, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False, default="NZD")
    transaction_type = Column(String, nullable=False)
    description = Column(String(500), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    counterparty_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    transaction_category_id = Column(Integer, ForeignKey("transaction_categories.id"), nullable=True)
    gst_treatment = Column(String, nullable=False, default="standard")
    compliance_flags = Column(Text, nullable=False, default="[]")
    compliance_status = Column(String, nullable=False)
    risk_score = Column(Integer, nullable=False, default=0)
    compliance_category = Column(String, nullable=False, default="standard")
    created_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("ix_financial_transactions_account_created", "account_id", "created_at"),
        Index("ix_financial_transactions_compliance_status", "compliance_status"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions", foreign_keys=[account_id])
    category = relationship("TransactionCategory")


class AuditEntry(Base):
    """Audit trail model."""

    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True)
    auditable_type = Column(String, nullable=False)
    auditable_id = Column(Integer, nullable=False)
    action = Column(String, nullable=False)
    audited_changes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    remote_address = Column(String, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("ix_audit_entries_auditable", "auditable_type", "auditable_id"),
        Index("ix_audit_entries_expires_at", "expires_at"),
    )


class TaxFiling(Base):
    """IRD tax filing model."""

    __tablename__ = "tax_filings"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    filing_type = Column(String, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    filed_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="pending")
    ird_reference = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_tax_filings_org_type_period", "organization_id", "filing_type", "period_end"),
    )

    # Relationships
    organization = relationship("Organization", back_populates="tax_filings")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
