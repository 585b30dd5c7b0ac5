"""Ledger store factory functions."""

import os
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from certledger.database.sqlalchemy_db import SQLAlchemyLedgerStore
from certledger.domain.errors import ValidationError


def default_database_path() -> Path:
    return Path.home() / ".certledger" / "certledger.db"


def sqlite_url(database_path: str) -> str:
    """Build a SQLite URL for a file path, creating its directory if needed."""
    path = Path(database_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def create_sqlite_store(database_path: Optional[str] = None) -> SQLAlchemyLedgerStore:
    """Create a SQLite-backed ledger store.

    Args:
        database_path: Path to SQLite database file. If None, checks CERTLEDGER_DB_PATH
            environment variable, then defaults to ~/.certledger/certledger.db

    Returns:
        SQLAlchemyLedgerStore instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("CERTLEDGER_DB_PATH") or str(default_database_path())

    return SQLAlchemyLedgerStore(sqlite_url(database_path))


def create_store(
    database_url: Optional[str] = None,
    database_path: Optional[str] = None,
) -> SQLAlchemyLedgerStore:
    """Create a ledger store from a database URL or a SQLite path.

    Resolution order: ``database_url``, ``database_path``, the
    CERTLEDGER_DATABASE_URL environment variable, then the SQLite default
    of ``create_sqlite_store``. A URL lets the ledger live in PostgreSQL
    (the partial unique indexes are declared for both backends).

    Raises:
        ValidationError: If the database URL cannot be parsed
    """
    if database_url is None and database_path is None:
        database_url = os.environ.get("CERTLEDGER_DATABASE_URL") or None

    if database_url is None:
        return create_sqlite_store(database_path)

    try:
        url = make_url(database_url)
    except ArgumentError as e:
        raise ValidationError(f"Invalid database URL: {e}") from e

    if url.get_backend_name() == "sqlite" and url.database:
        return SQLAlchemyLedgerStore(sqlite_url(url.database))
    return SQLAlchemyLedgerStore(database_url)
