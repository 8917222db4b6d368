"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

from nzledger.utils.money import to_minor


def parse_amount(amount_str: str) -> Decimal:
    """Parse a major-unit amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "NZ$1,234.56"
    - "1,234.56"

    Negative amounts are rejected; transactions carry their direction in
    the transaction type, not the sign.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed or is negative
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = amount_str.strip()

    # Remove currency prefixes and symbols
    cleaned = re.sub(r"^(NZD|AUD|USD|GBP|EUR|NZ|AU|US)\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"[$€£]", "", cleaned)
    cleaned = cleaned.replace(",", "").strip()

    if cleaned.startswith("-") or (cleaned.startswith("(") and cleaned.endswith(")")):
        raise ValueError(f"Amount must not be negative: '{amount_str}'")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return amount


def parse_minor_units(amount_str: str) -> int:
    """Parse a major-unit amount string into integer minor units.

    Raises:
        ValueError: If the amount has more than two decimal places
    """
    amount = parse_amount(amount_str)
    if amount != amount.quantize(Decimal("0.01")):
        raise ValueError(f"Amount '{amount_str}' has more than two decimal places")
    return to_minor(amount)
