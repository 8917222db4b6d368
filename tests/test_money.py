"""Tests for fixed-point money helpers."""

from decimal import Decimal

import pytest

from nzledger.utils.money import (
    Money,
    average_minor,
    format_amount,
    round_half_up,
    split_gst_inclusive,
    to_major,
    to_minor,
)

GST_RATE = Decimal("0.15")


def test_to_major_and_back():
    assert to_major(123456) == Decimal("1234.56")
    assert to_minor(Decimal("1234.56")) == 123456
    assert to_minor(Decimal("0.005")) == 1


def test_round_half_up_ties_away_from_zero():
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("3.5")) == 4
    assert round_half_up(Decimal("-2.5")) == -3
    assert round_half_up(Decimal("2.4999")) == 2


@pytest.mark.parametrize(
    "inclusive,expected",
    [
        (115_000, (100_000, 15_000)),
        (1_150_000_000, (1_000_000_000, 150_000_000)),
        (0, (0, 0)),
        (1, (1, 0)),
        (100, (87, 13)),
    ],
)
def test_split_gst_inclusive(inclusive, expected):
    assert split_gst_inclusive(inclusive, GST_RATE) == expected


@pytest.mark.parametrize("inclusive", [1, 7, 99, 12_345, 999_999, 31_415_927])
def test_split_gst_parts_add_back_up(inclusive):
    exclusive, gst = split_gst_inclusive(inclusive, GST_RATE)
    assert exclusive + gst == inclusive


def test_average_minor():
    assert average_minor([]) == Decimal("0.00")
    assert average_minor([100, 200]) == Decimal("1.50")
    assert average_minor([1, 2]) == Decimal("0.02")


def test_format_amount():
    assert format_amount(123450, "NZD") == "NZD $1,234.50"
    assert str(Money(5, "AUD")) == "AUD $0.05"
    assert Money(250, "NZD").to_major() == Decimal("2.50")
