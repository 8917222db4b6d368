"""Utility functions for nzledger."""

from nzledger.utils.date_parser import parse_date, parse_period
from nzledger.utils.amount_parser import parse_amount, parse_minor_units
from nzledger.utils.money import Money, format_amount, split_gst_inclusive, to_major, to_minor

__all__ = [
    "parse_date",
    "parse_period",
    "parse_amount",
    "parse_minor_units",
    "Money",
    "format_amount",
    "split_gst_inclusive",
    "to_major",
    "to_minor",
]
