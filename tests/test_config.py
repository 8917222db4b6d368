"""Tests for ledger configuration loading."""

from datetime import time
from decimal import Decimal

import pytest

from nzledger.config import LedgerConfig, load_config


def test_defaults():
    config = load_config({})
    assert config == LedgerConfig()
    assert config.home_currency == "NZD"
    assert config.supported_currencies == ("NZD", "AUD", "USD", "GBP", "EUR")
    assert config.high_value_threshold == 1_000_000
    assert config.gst_rate == Decimal("0.15")
    assert config.audit_retention_years == 7


def test_currency_helpers():
    config = LedgerConfig()
    assert config.is_supported_currency("AUD")
    assert not config.is_supported_currency("JPY")
    assert config.is_international("USD")
    assert not config.is_international("NZD")


def test_overrides_from_environment():
    config = load_config(
        {
            "NZLEDGER_SUPPORTED_CURRENCIES": "nzd, aud",
            "NZLEDGER_BUSINESS_HOURS": "08:30-18:00",
            "NZLEDGER_TIMEZONE": "Pacific/Chatham",
            "NZLEDGER_AUDIT_RETENTION_YEARS": "10",
            "NZLEDGER_GST_RATE": "0.125",
            "NZLEDGER_REPORTING_ENABLED": "off",
        }
    )
    assert config.supported_currencies == ("NZD", "AUD")
    assert config.business_hours_start == time(8, 30)
    assert config.business_hours_end == time(18, 0)
    assert config.timezone == "Pacific/Chatham"
    assert config.audit_retention_years == 10
    assert config.gst_rate == Decimal("0.125")
    assert config.reporting_enabled is False


@pytest.mark.parametrize(
    "environ,message",
    [
        ({"NZLEDGER_BUSINESS_HOURS": "17:00-09:00"}, "start must be before end"),
        ({"NZLEDGER_BUSINESS_HOURS": "nine to five"}, "expected HH:MM-HH:MM"),
        ({"NZLEDGER_TIMEZONE": "Middle/Earth"}, "Unknown timezone"),
        ({"NZLEDGER_AUDIT_RETENTION_YEARS": "0"}, "must be positive"),
        ({"NZLEDGER_AUDIT_RETENTION_YEARS": "seven"}, "Invalid integer"),
        ({"NZLEDGER_GST_RATE": "fifteen"}, "Invalid decimal"),
        ({"NZLEDGER_REPORTING_ENABLED": "maybe"}, "Invalid boolean"),
        ({"NZLEDGER_SUPPORTED_CURRENCIES": "AUD,USD"}, "Home currency NZD"),
    ],
)
def test_invalid_overrides(environ, message):
    with pytest.raises(ValueError, match=message):
        load_config(environ)
