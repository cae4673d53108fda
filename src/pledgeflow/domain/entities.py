"""Domain model entities for pledgeflow.

These are pure data classes representing the recurring-giving concepts,
independent of the database schema. Services and the state machine pass
them around and derive new values with ``dataclasses.replace``; only the
store turns them into rows.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class Frequency(str, Enum):
    """Cadence of a recurring agreement."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class AgreementState(str, Enum):
    """Lifecycle state of a recurring agreement."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (AgreementState.COMPLETED, AgreementState.CANCELLED)


class InstanceStatus(str, Enum):
    """Status of one materialized donation."""

    PENDING = "pending"
    CAPTURED = "captured"
    FAILED = "failed"


class ResumePolicy(str, Enum):
    """What resuming does with cycles that fell due while paused."""

    SKIP_MISSED = "skip_missed"
    CATCH_UP = "catch_up"


@dataclass(frozen=True)
class RecurringAgreement:
    """Recurring donation agreement domain entity."""

    id: int
    donor_id: str
    amount: Decimal
    currency: str
    frequency: Frequency
    anchor_date: date
    next_due_date: date
    state: AgreementState
    occurrences_completed: int = 0
    cycles_skipped: int = 0
    occurrence_limit: Optional[int] = None
    end_date: Optional[date] = None
    failure_streak: int = 0
    next_retry_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def cycle_index(self) -> int:
        """Index of the cycle ``next_due_date`` belongs to."""
        return self.occurrences_completed + self.cycles_skipped

    @property
    def idempotency_key(self) -> str:
        """Capture key of the cycle currently due."""
        return cycle_key(self.id, self.next_due_date)


def cycle_key(agreement_id: int, due_date: date) -> str:
    """Deterministic idempotency key for one cycle of an agreement."""
    return f"{agreement_id}:{due_date.isoformat()}"


@dataclass(frozen=True)
class AgreementSpec:
    """Input for creating an agreement."""

    donor_id: str
    amount: Decimal
    frequency: Frequency
    anchor_date: date
    occurrence_limit: Optional[int] = None
    end_date: Optional[date] = None
    currency: Optional[str] = None


@dataclass(frozen=True)
class AgreementPatch:
    """Fields changed by ``modify``. ``None`` leaves a field as it is."""

    amount: Optional[Decimal] = None
    frequency: Optional[Frequency] = None
    end_date: Optional[date] = None
    occurrence_limit: Optional[int] = None

    def is_empty(self) -> bool:
        return (
            self.amount is None
            and self.frequency is None
            and self.end_date is None
            and self.occurrence_limit is None
        )


@dataclass(frozen=True)
class DonationInstance:
    """One materialized payment belonging to a cycle."""

    id: int
    agreement_id: int
    due_date: date
    amount: Decimal
    status: InstanceStatus
    attempts: int = 0
    captured_at: Optional[datetime] = None
    transaction_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class MaterializationEvent:
    """Published after a cycle outcome has been persisted."""

    agreement_id: int
    donation_instance_id: int
    due_date: date
    amount: Decimal
    outcome: InstanceStatus
    occurred_at: datetime


@dataclass(frozen=True)
class SweepReport:
    """Outcome counters of one sweep."""

    started_at: datetime
    finished_at: datetime
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    conflicts: int = 0
    unknown_outcomes: int = 0
    cancelled: bool = False
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProjectedCycle:
    """A future cycle computed from an agreement's schedule."""

    agreement_id: int
    donor_id: str
    due_date: date
    amount: Decimal


@dataclass(frozen=True)
class ForecastMonth:
    """Projected totals for one calendar month."""

    month: str
    total_amount: Decimal
    cycle_count: int


@dataclass(frozen=True)
class EngineStats:
    """Point-in-time counts across all agreements and instances."""

    agreements_by_state: dict[str, int]
    instances_by_status: dict[str, int]
    captured_amount: Decimal
