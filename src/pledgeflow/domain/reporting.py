"""Reporting domain service: schedules, upcoming and overdue cycles, forecasts."""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from pledgeflow.config import EngineConfig
from pledgeflow.database.base import AgreementStore
from pledgeflow.domain import state_machine
from pledgeflow.domain.entities import (
    AgreementState,
    EngineStats,
    ForecastMonth,
    InstanceStatus,
    ProjectedCycle,
    RecurringAgreement,
)
from pledgeflow.domain.errors import AgreementNotFound, ValidationError, agreement_not_found
from pledgeflow.domain.frequency import next_due_date, project_schedule


def remaining_occurrences(agreement: RecurringAgreement) -> Optional[int]:
    """Cycles left before the occurrence limit, or None when unlimited."""
    if agreement.occurrence_limit is None:
        return None
    return max(0, agreement.occurrence_limit - agreement.occurrences_completed)


def projected_dates(agreement: RecurringAgreement, until: date) -> list[date]:
    """Due dates of the agreement from its current cycle up to ``until``.

    Respects the end date and the occurrence limit.
    """
    remaining = remaining_occurrences(agreement)
    dates = []
    index = agreement.cycle_index
    while remaining is None or len(dates) < remaining:
        due = next_due_date(agreement.frequency, agreement.anchor_date, index)
        if due > until or (agreement.end_date is not None and due > agreement.end_date):
            break
        dates.append(due)
        index += 1
    return dates


class ReportingService:
    """Service for read-only views over agreements and their instances."""

    def __init__(self, store: AgreementStore, config: Optional[EngineConfig] = None):
        """Initialize reporting service.

        Args:
            store: Agreement store
            config: Engine configuration, for the resume policy (defaults if None)
        """
        self.store = store
        self.config = config if config is not None else EngineConfig()

    def schedule(self, agreement_id: int, count: int = 12) -> list[date]:
        """Preview the next ``count`` due dates of an agreement.

        Terminal agreements have no upcoming dates.

        Raises:
            AgreementNotFound: If the agreement does not exist
            ValidationError: If count is not positive
        """
        if count < 1:
            raise ValidationError("Count must be at least 1")
        agreement = self.store.get_agreement(agreement_id)
        if agreement is None:
            raise AgreementNotFound(agreement_not_found(agreement_id))
        if agreement.state.is_terminal:
            return []

        remaining = remaining_occurrences(agreement)
        if remaining is not None:
            count = min(count, remaining)
        return project_schedule(
            agreement.frequency,
            agreement.anchor_date,
            agreement.cycle_index,
            count,
            end_date=agreement.end_date,
        )

    def upcoming(self, days: int, today: date) -> list[ProjectedCycle]:
        """Cycles of active agreements due within the next ``days`` days.

        Args:
            days: Look-ahead window in days (today included)
            today: Reference date

        Returns:
            Projected cycles sorted by due date, then agreement ID
        """
        if days < 0:
            raise ValidationError("Days must not be negative")
        until = today + timedelta(days=days)
        cycles = []
        for agreement in self.store.list_agreements(state=AgreementState.ACTIVE):
            for due in projected_dates(agreement, until):
                if due >= today:
                    cycles.append(
                        ProjectedCycle(
                            agreement_id=agreement.id,
                            donor_id=agreement.donor_id,
                            due_date=due,
                            amount=agreement.amount,
                        )
                    )
        return sorted(cycles, key=lambda c: (c.due_date, c.agreement_id))

    def overdue(self, today: date) -> list[RecurringAgreement]:
        """Active or failed agreements whose current cycle is past due."""
        agreements = self.store.list_agreements(state=AgreementState.ACTIVE)
        agreements += self.store.list_agreements(state=AgreementState.FAILED)
        overdue = [a for a in agreements if a.next_due_date < today]
        return sorted(overdue, key=lambda a: (a.next_due_date, a.id))

    def forecast(self, months: int, today: date) -> list[ForecastMonth]:
        """Projected totals per calendar month for active and paused agreements.

        The window runs from today's month for ``months`` months. Overdue
        cycles of active agreements are counted in today's month, since the
        next sweep captures them. Paused agreements are projected as if
        resumed today, so under ``SKIP_MISSED`` their missed cycles drop out.
        """
        if months < 1:
            raise ValidationError("Months must be at least 1")
        until = today.replace(day=1) + relativedelta(months=months) - timedelta(days=1)

        totals: dict[str, Decimal] = defaultdict(Decimal)
        counts: dict[str, int] = defaultdict(int)
        agreements = self.store.list_agreements(state=AgreementState.ACTIVE)
        agreements += self.store.list_agreements(state=AgreementState.PAUSED)
        for agreement in agreements:
            if agreement.state == AgreementState.PAUSED:
                agreement = state_machine.resume(agreement, today, self.config.resume_policy)
                if agreement.state.is_terminal:
                    continue
            for due in projected_dates(agreement, until):
                charged = max(due, today)
                key = f"{charged.year}-{charged.month:02d}"
                totals[key] += agreement.amount
                counts[key] += 1

        return [
            ForecastMonth(month=key, total_amount=totals[key], cycle_count=counts[key])
            for key in sorted(totals)
        ]

    def stats(self) -> EngineStats:
        """Counts per agreement state and instance status, plus captured total."""
        agreements_by_state = {state.value: 0 for state in AgreementState}
        for agreement in self.store.list_agreements():
            agreements_by_state[agreement.state.value] += 1

        instances_by_status = {status.value: 0 for status in InstanceStatus}
        captured_amount = Decimal("0.00")
        for instance in self.store.list_all_instances():
            instances_by_status[instance.status.value] += 1
            if instance.status == InstanceStatus.CAPTURED:
                captured_amount += instance.amount

        return EngineStats(
            agreements_by_state=agreements_by_state,
            instances_by_status=instances_by_status,
            captured_amount=captured_amount,
        )
