"""Collaborator interfaces for systems outside the ledger core.

Each optional subsystem is injected explicitly. A service that was built
without one reports a degraded result instead of probing for it at runtime.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from threading import Lock
from typing import Any, Optional

from nzledger.domain.entities import FinancialTransaction, GstReturn


class ReportingQueue(ABC):
    """Destination for transactions that need regulatory reporting."""

    @abstractmethod
    def enqueue(self, transaction: FinancialTransaction) -> None:
        """Queue a committed transaction for reporting."""
        pass


class InMemoryReportingQueue(ReportingQueue):
    """Thread-safe in-process queue, drained by a separate reporting job."""

    def __init__(self):
        self._items: list[FinancialTransaction] = []
        self._lock = Lock()

    def enqueue(self, transaction: FinancialTransaction) -> None:
        with self._lock:
            self._items.append(transaction)

    def drain(self) -> list[FinancialTransaction]:
        """Remove and return everything queued so far."""
        with self._lock:
            items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class TaxGateway(ABC):
    """Tax-authority submission endpoint used by the live filing path."""

    @abstractmethod
    def submit_gst_return(self, gst_return: GstReturn) -> dict[str, Any]:
        """Submit a GST return.

        Returns:
            Acknowledgment with at least ``submission_id``, ``ird_reference``
            and ``status`` keys

        Raises:
            Exception: Any failure; callers wrap it as a DependencyError
        """
        pass


class PayrollProvider(ABC):
    """Source of payroll figures for PAYE calculation."""

    @abstractmethod
    def has_registered_employees(self, organization_id: int) -> bool:
        pass

    @abstractmethod
    def payroll_totals(self, organization_id: int, start: date, end: date) -> dict[str, Decimal]:
        """Totals for ``[start, end)`` in major units.

        Returns:
            Mapping with ``gross_wages``, ``paye``, ``acc_levies`` and
            ``kiwisaver`` keys
        """
        pass


def optional_capability(enabled: bool, collaborator: Optional[Any]) -> Optional[Any]:
    """Return the collaborator only when its capability flag is on."""
    return collaborator if enabled else None
