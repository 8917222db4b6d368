"""Organization domain service.

Onboarding for organizations, their users, transaction categories and the
tax filings tracked against them.
"""

import re
from datetime import date
from typing import Optional

from nzledger.database.base import Database
from nzledger.domain.entities import (
    BusinessType,
    FilingStatus,
    FilingType,
    GstTreatment,
    Organization as OrganizationEntity,
    TaxFiling,
    TransactionCategory,
    User as UserEntity,
    UserRole,
)
from nzledger.domain.errors import (
    ConflictError,
    FieldError,
    NotFoundError,
    ValidationError,
    organization_not_found,
    user_not_found,
)
from nzledger.logging_config import get_logger

logger = get_logger("domain.organization")

IRD_NUMBER_PATTERN = re.compile(r"[0-9]{8,9}")
EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
CATEGORY_TYPES = ("income", "expense", "asset", "liability")
BUSINESS_TYPES = tuple(t.value for t in BusinessType)
USER_ROLES = tuple(r.value for r in UserRole)
GST_TREATMENTS = tuple(t.value for t in GstTreatment)
FILING_TYPES = tuple(t.value for t in FilingType)
FILING_STATUSES = tuple(s.value for s in FilingStatus)


def _choice_error(field: str, value: str, choices: tuple[str, ...]) -> Optional[FieldError]:
    if value not in choices:
        return FieldError(field, f"must be a valid {field.replace('_', ' ')}")
    return None


class OrganizationService:
    """Service for managing organizations, users, categories and filings."""

    def __init__(self, db: Database):
        """Initialize organization service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_organization(
        self,
        name: str,
        ird_number: str,
        contact_email: str,
        business_type: str = BusinessType.COMPANY.value,
        gst_registered: bool = False,
        annual_turnover: int = 0,
        international_transactions_enabled: bool = False,
        rbnz_identifier: Optional[str] = None,
    ) -> int:
        """Create a new organization.

        Args:
            name: Organization name
            ird_number: IRD number, 8 or 9 digits
            contact_email: Contact email address
            business_type: One of the BusinessType values
            gst_registered: Whether registered for GST
            annual_turnover: Annual turnover in minor units
            international_transactions_enabled: Whether non-home currencies are allowed
            rbnz_identifier: Optional RBNZ reporting entity identifier

        Returns:
            Organization ID

        Raises:
            ValidationError: If any field is invalid
            ConflictError: If the IRD number is already registered
        """
        errors = []
        if not name or not name.strip():
            errors.append(FieldError("name", "can't be blank"))
        if not IRD_NUMBER_PATTERN.fullmatch(ird_number or ""):
            errors.append(FieldError("ird_number", "must be 8 or 9 digits"))
        if not EMAIL_PATTERN.fullmatch(contact_email or ""):
            errors.append(FieldError("contact_email", "is invalid"))
        error = _choice_error("business_type", business_type, BUSINESS_TYPES)
        if error:
            errors.append(error)
        if annual_turnover < 0:
            errors.append(FieldError("annual_turnover", "must be greater than or equal to 0"))
        if errors:
            raise ValidationError(errors)

        organization_id = self.db.create_organization(
            name=name.strip(),
            ird_number=ird_number,
            business_type=business_type,
            contact_email=contact_email,
            gst_registered=gst_registered,
            annual_turnover=annual_turnover,
            international_transactions_enabled=international_transactions_enabled,
            rbnz_identifier=rbnz_identifier,
        )
        logger.info("organization_created", extra={"organization_id": organization_id})
        return organization_id

    def get_organization(self, organization_id: int) -> Optional[OrganizationEntity]:
        """Get organization by ID.

        Args:
            organization_id: Organization ID

        Returns:
            Organization entity or None if not found
        """
        return self.db.get_organization(organization_id)

    def list_organizations(self) -> list[OrganizationEntity]:
        return self.db.list_organizations()

    def _require(self, organization_id: int) -> OrganizationEntity:
        organization = self.db.get_organization(organization_id)
        if organization is None:
            raise NotFoundError(organization_not_found(organization_id))
        return organization

    def create_user(
        self,
        organization_id: int,
        email: str,
        first_name: str,
        last_name: str,
        role: str = UserRole.USER.value,
        authorized_for_high_value: bool = False,
    ) -> int:
        """Create a user within an organization.

        Returns:
            User ID

        Raises:
            NotFoundError: If the organization does not exist
            ValidationError: If any field is invalid
            ConflictError: If the email is already taken
        """
        self._require(organization_id)
        errors = []
        if not EMAIL_PATTERN.fullmatch(email or ""):
            errors.append(FieldError("email", "is invalid"))
        if not first_name or not first_name.strip():
            errors.append(FieldError("first_name", "can't be blank"))
        if not last_name or not last_name.strip():
            errors.append(FieldError("last_name", "can't be blank"))
        error = _choice_error("role", role, USER_ROLES)
        if error:
            errors.append(error)
        if errors:
            raise ValidationError(errors)

        return self.db.create_user(
            organization_id=organization_id,
            email=email,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=role,
            authorized_for_high_value=authorized_for_high_value,
        )

    def get_user(self, user_id: int) -> UserEntity:
        """Get user by ID.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(user_not_found(user_id))
        return user

    def create_category(
        self,
        name: str,
        category_type: Optional[str] = None,
        gst_treatment: str = GstTreatment.STANDARD.value,
    ) -> int:
        """Create a transaction category.

        Raises:
            ValidationError: If the type or GST treatment is unknown
            ConflictError: If a category with the same name exists
        """
        errors = []
        if not name or not name.strip():
            errors.append(FieldError("name", "can't be blank"))
        if category_type is not None:
            error = _choice_error("category_type", category_type, CATEGORY_TYPES)
            if error:
                errors.append(error)
        error = _choice_error("gst_treatment", gst_treatment, GST_TREATMENTS)
        if error:
            errors.append(error)
        if errors:
            raise ValidationError(errors)

        if self.db.get_category_by_name(name.strip()) is not None:
            raise ConflictError(f"Category '{name.strip()}' already exists")
        return self.db.create_category(name=name.strip(), category_type=category_type, gst_treatment=gst_treatment)

    def get_category_by_name(self, name: str) -> Optional[TransactionCategory]:
        return self.db.get_category_by_name(name)

    def record_tax_filing(
        self,
        organization_id: int,
        filing_type: str,
        period_start: date,
        period_end: date,
        due_date: date,
        filed_date: Optional[date] = None,
        status: Optional[str] = None,
        ird_reference: Optional[str] = None,
    ) -> int:
        """Track a tax filing for an organization.

        ``period_end`` is the last day covered by the filing. Status defaults
        to ``submitted`` when a filed date is given, otherwise ``pending``.

        Returns:
            Filing ID

        Raises:
            NotFoundError: If the organization does not exist
            ValidationError: If the type, status or dates are invalid
        """
        self._require(organization_id)
        if status is None:
            status = FilingStatus.SUBMITTED.value if filed_date is not None else FilingStatus.PENDING.value

        errors = []
        error = _choice_error("filing_type", filing_type, FILING_TYPES)
        if error:
            errors.append(error)
        error = _choice_error("status", status, FILING_STATUSES)
        if error:
            errors.append(error)
        if period_end < period_start:
            errors.append(FieldError("period_end", "must be on or after period start"))
        if errors:
            raise ValidationError(errors)

        return self.db.create_tax_filing(
            organization_id=organization_id,
            filing_type=filing_type,
            period_start=period_start,
            period_end=period_end,
            due_date=due_date,
            filed_date=filed_date,
            status=status,
            ird_reference=ird_reference,
        )

    def list_tax_filings(self, organization_id: int, filing_type: Optional[str] = None) -> list[TaxFiling]:
        """List filings, most recent period first."""
        self._require(organization_id)
        return self.db.list_tax_filings(organization_id, filing_type=filing_type)
