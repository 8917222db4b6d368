"""Shared domain error messages and error types."""

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class FieldError:
    """A single validation failure tied to an input field."""

    field: str
    message: str

    def __str__(self) -> str:
        if self.field == "base":
            return self.message
        return f"{self.field}: {self.message}"


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. ``code`` is a stable,
    machine-readable identifier for callers that serialize errors.
    """

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic.

    Carries every field-level failure so callers can render them per field.
    """

    code = "VALIDATION_FAILED"

    def __init__(self, field_errors: Iterable[FieldError]):
        self.field_errors: tuple[FieldError, ...] = tuple(field_errors)
        super().__init__("; ".join(str(e) for e in self.field_errors) or "Validation failed")

    def messages_for(self, field: str) -> list[str]:
        """Return the messages reported against ``field``."""
        return [e.message for e in self.field_errors if e.field == field]


class PreconditionError(DomainError):
    """Operation requested in a state that does not allow it."""

    code = "PRECONDITION_FAILED"


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    code = "NOT_FOUND"


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    code = "CONFLICT"


class DependencyError(DomainError):
    """A collaborator (calendar, gateway, queue) failed or is unavailable."""

    code = "DEPENDENCY_UNAVAILABLE"


def organization_not_found(organization_id: int) -> str:
    """Return message for missing organization."""
    return f"Organization {organization_id} not found"


def user_not_found(user_id: int) -> str:
    """Return message for missing user."""
    return f"User {user_id} not found"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing transaction category."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def duplicate_reference(reference: str) -> str:
    """Return message for a transaction reference that is already taken."""
    return f"Transaction with reference '{reference}' already exists"


def duplicate_account_number(account_number: str, organization_id: int) -> str:
    """Return message for duplicate account number within an organization."""
    return f"Account number '{account_number}' already exists for organization {organization_id}"
