"""Fixed-point money helpers.

Amounts are held as integer minor units (cents). Conversion to ``Decimal``
major units happens only when a value leaves the core.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

MINOR_UNITS_PER_MAJOR = 100
CENT = Decimal("0.01")


def to_major(minor: int) -> Decimal:
    """Convert minor units to a 2-place Decimal in major units."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor(major: Decimal) -> int:
    """Convert a major-unit Decimal to minor units, rounding half up."""
    return int((Decimal(major) * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def round_half_up(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, ties away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def split_gst_inclusive(amount_incl: int, rate: Decimal) -> tuple[int, int]:
    """Split a GST-inclusive amount into (exclusive, gst) minor units.

    The exclusive part is ``inclusive / (1 + rate)`` rounded half up on
    minor units; GST is the remainder, so the two always add back up to
    the inclusive amount.
    """
    exclusive = round_half_up(Decimal(amount_incl) / (Decimal(1) + rate))
    return exclusive, amount_incl - exclusive


def average_minor(amounts: list[int]) -> Decimal:
    """Average of minor-unit amounts as a major-unit Decimal (0 if empty)."""
    if not amounts:
        return Decimal("0.00")
    mean = Decimal(sum(amounts)) / len(amounts)
    return (mean / MINOR_UNITS_PER_MAJOR).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(minor: int, currency: str) -> str:
    """Render an amount for display, e.g. ``NZD $1,234.50``."""
    return f"{currency} ${to_major(minor):,.2f}"


@dataclass(frozen=True)
class Money:
    """Integer minor-unit amount with its currency code."""

    amount: int
    currency: str

    def to_major(self) -> Decimal:
        return to_major(self.amount)

    def __str__(self) -> str:
        return format_amount(self.amount, self.currency)
