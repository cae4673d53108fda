"""Abstract agreement store interface."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

# Import entities directly to avoid circular import through domain/__init__.py
from pledgeflow.domain.entities import (
    AgreementState,
    DonationInstance,
    Frequency,
    RecurringAgreement,
)


class AgreementStore(ABC):
    """Durable record of agreements and their donation instances.

    All agreement mutations go through ``conditional_write``, which applies
    only if the stored version still equals the version the caller read.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Agreement operations
    @abstractmethod
    def create_agreement(
        self,
        donor_id: str,
        amount: Decimal,
        currency: str,
        frequency: Frequency,
        anchor_date: date,
        next_due_date: date,
        occurrence_limit: Optional[int] = None,
        end_date: Optional[date] = None,
    ) -> RecurringAgreement:
        """Create an active agreement at version 1."""
        pass

    @abstractmethod
    def get_agreement(self, agreement_id: int) -> Optional[RecurringAgreement]:
        """Get agreement by ID. The returned ``version`` is the one to write against."""
        pass

    @abstractmethod
    def list_agreements(
        self,
        state: Optional[AgreementState] = None,
        donor_id: Optional[str] = None,
    ) -> list[RecurringAgreement]:
        """List agreements, optionally filtered by state and donor."""
        pass

    @abstractmethod
    def query_due(self, now: datetime) -> list[RecurringAgreement]:
        """List active agreements whose current cycle may be attempted at ``now``.

        Due means ``next_due_date <= now.date()`` and no retry backoff pending
        past ``now``. Results are ordered by due date, then ID.
        """
        pass

    @abstractmethod
    def conditional_write(
        self,
        agreement: RecurringAgreement,
        expected_version: int,
        instance: Optional[DonationInstance] = None,
    ) -> RecurringAgreement:
        """Persist ``agreement`` if the stored version equals ``expected_version``.

        When ``instance`` is given, its status, capture details and failure
        reason are written in the same transaction.

        Returns:
            The stored agreement with its new version

        Raises:
            VersionConflict: If another writer got there first
            AgreementNotFound: If the agreement does not exist
        """
        pass

    # Donation instance operations
    @abstractmethod
    def get_instance(self, agreement_id: int, due_date: date) -> Optional[DonationInstance]:
        """Get the instance of one cycle, if materialized."""
        pass

    @abstractmethod
    def begin_attempt(
        self, agreement_id: int, due_date: date, amount: Decimal
    ) -> DonationInstance:
        """Get or create the cycle's instance, mark it pending and count the attempt.

        Instances that are already captured are returned unchanged. The
        amount is only replaced after a declined attempt; a pending instance
        keeps the amount its earlier capture was sent with.
        """
        pass

    @abstractmethod
    def list_instances(self, agreement_id: int) -> list[DonationInstance]:
        """List all instances of an agreement ordered by due date."""
        pass

    @abstractmethod
    def list_all_instances(self) -> list[DonationInstance]:
        """List every instance in the store."""
        pass
