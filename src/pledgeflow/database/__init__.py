"""Persistence layer for pledgeflow."""

from pledgeflow.database.base import AgreementStore
from pledgeflow.database.factories import create_sqlite_database

__all__ = ["AgreementStore", "create_sqlite_database"]
