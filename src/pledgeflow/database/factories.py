"""Database factory functions for creating store instances."""

from typing import Optional

from pledgeflow.config import default_database_path
from pledgeflow.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed agreement store.

    Args:
        database_path: Path to SQLite database file. If None, checks PLEDGEFLOW_DB_PATH
            environment variable, then defaults to ~/.pledgeflow/pledgeflow.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path()

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url)
