"""Ledger configuration.

All regulatory constants live on a single immutable ``LedgerConfig`` that is
passed explicitly into every service. Values can be overridden from
``NZLEDGER_*`` environment variables through ``load_config``.
"""

import os
from dataclasses import dataclass, replace
from datetime import time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


DEFAULT_SUPPORTED_CURRENCIES = ("NZD", "AUD", "USD", "GBP", "EUR")


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable regulatory and operational settings."""

    home_currency: str = "NZD"
    supported_currencies: tuple[str, ...] = DEFAULT_SUPPORTED_CURRENCIES

    # Thresholds in minor units
    high_value_threshold: int = 1_000_000
    large_transaction_threshold: int = 5_000_000
    suspicious_amount_threshold: int = 500_000
    suspicious_transaction_count: int = 5
    suspicious_window: timedelta = timedelta(hours=24)

    # Business calendar
    business_hours_start: time = time(9, 0)
    business_hours_end: time = time(17, 0)
    timezone: str = "Pacific/Auckland"
    jurisdiction: str = "nz"

    # RBNZ retention
    audit_retention_years: int = 7

    # IRD
    gst_rate: Decimal = Decimal("0.15")
    gst_registration_threshold: int = 6_000_000
    gst_variation_threshold: int = 1_000_000

    max_description_length: int = 500
    reporting_enabled: bool = True
    default_remote_address: str = "127.0.0.1"

    # Ledger aggregation
    high_volume_threshold: int = 100
    large_transaction_flag_threshold: int = 5_000_000
    flagged_transaction_tolerance: int = 5

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone used for business hours and period boundaries."""
        return ZoneInfo(self.timezone)

    def is_supported_currency(self, currency: str) -> bool:
        return currency in self.supported_currencies

    def is_international(self, currency: str) -> bool:
        return currency != self.home_currency


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean for {name}: '{value}'")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: '{value}'")


def _parse_hours(name: str, value: str) -> tuple[time, time]:
    """Parse a business-hours window such as ``09:00-17:00``."""
    try:
        start_str, end_str = value.split("-")
        start = time.fromisoformat(start_str.strip())
        end = time.fromisoformat(end_str.strip())
    except ValueError:
        raise ValueError(f"Invalid business hours for {name}: '{value}' (expected HH:MM-HH:MM)")
    if start >= end:
        raise ValueError(f"Invalid business hours for {name}: start must be before end")
    return start, end


def load_config(environ: Optional[Mapping[str, str]] = None) -> LedgerConfig:
    """Build a configuration from defaults and ``NZLEDGER_*`` variables.

    Args:
        environ: Mapping to read overrides from (defaults to ``os.environ``)

    Returns:
        LedgerConfig instance

    Raises:
        ValueError: If an override cannot be parsed
    """
    if environ is None:
        environ = os.environ

    config = LedgerConfig()
    overrides: dict = {}

    currency = environ.get("NZLEDGER_HOME_CURRENCY")
    if currency:
        overrides["home_currency"] = currency.strip().upper()

    currencies = environ.get("NZLEDGER_SUPPORTED_CURRENCIES")
    if currencies:
        parsed = tuple(c.strip().upper() for c in currencies.split(",") if c.strip())
        if not parsed:
            raise ValueError("NZLEDGER_SUPPORTED_CURRENCIES must list at least one currency")
        overrides["supported_currencies"] = parsed

    hours = environ.get("NZLEDGER_BUSINESS_HOURS")
    if hours:
        start, end = _parse_hours("NZLEDGER_BUSINESS_HOURS", hours)
        overrides["business_hours_start"] = start
        overrides["business_hours_end"] = end

    tz_name = environ.get("NZLEDGER_TIMEZONE")
    if tz_name:
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone for NZLEDGER_TIMEZONE: '{tz_name}'")
        overrides["timezone"] = tz_name

    retention = environ.get("NZLEDGER_AUDIT_RETENTION_YEARS")
    if retention:
        years = _parse_int("NZLEDGER_AUDIT_RETENTION_YEARS", retention)
        if years <= 0:
            raise ValueError("NZLEDGER_AUDIT_RETENTION_YEARS must be positive")
        overrides["audit_retention_years"] = years

    gst_rate = environ.get("NZLEDGER_GST_RATE")
    if gst_rate:
        try:
            overrides["gst_rate"] = Decimal(gst_rate.strip())
        except InvalidOperation:
            raise ValueError(f"Invalid decimal for NZLEDGER_GST_RATE: '{gst_rate}'")

    reporting = environ.get("NZLEDGER_REPORTING_ENABLED")
    if reporting:
        overrides["reporting_enabled"] = _parse_bool("NZLEDGER_REPORTING_ENABLED", reporting)

    home = overrides.get("home_currency", config.home_currency)
    supported = overrides.get("supported_currencies", config.supported_currencies)
    if home not in supported:
        raise ValueError(f"Home currency {home} is not in the supported currencies")

    return replace(config, **overrides) if overrides else config
