"""Command-line interface for nzledger."""
