"""nzledger - transaction compliance and GST for New Zealand ledgers."""

__version__ = "0.1.0"
