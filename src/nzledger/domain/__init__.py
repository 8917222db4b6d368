"""Domain layer for nzledger.

Services live in their own modules (``nzledger.domain.transaction`` and so
on); importing them from here would create a cycle with ``database.base``.
"""
