"""Database layer for nzledger."""

from nzledger.database.base import Database
from nzledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
