"""Ledger storage layer for certledger."""

from certledger.database.base import LedgerStore
from certledger.database.factories import create_sqlite_store, create_store

__all__ = ["LedgerStore", "create_sqlite_store", "create_store"]
