"""Lifecycle transitions of a recurring agreement.

Every transition is a pure function: it takes an agreement, validates the
request against the agreement's state and returns the updated agreement.
Nothing here reads the clock or the store; the caller supplies ``today`` or
``now`` and persists the result with a conditional write.

    active --pause--> paused --resume--> active
    active --record_success--> active | completed
    active --record_failure--> active | failed
    failed --reactivate--> active
    active | paused | failed --cancel--> cancelled
"""

import random
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from pledgeflow.domain.entities import (
    AgreementPatch,
    AgreementState,
    RecurringAgreement,
    ResumePolicy,
)
from pledgeflow.domain.errors import (
    InvalidTransition,
    RetryBudgetExhausted,
    ValidationError,
    invalid_transition,
)
from pledgeflow.domain.frequency import (
    coerce_frequency,
    first_due_on_or_after,
    next_due_date,
)
from pledgeflow.domain.retry import RetryPolicy

CANCELLABLE_STATES = (AgreementState.ACTIVE, AgreementState.PAUSED, AgreementState.FAILED)
MODIFIABLE_STATES = (AgreementState.ACTIVE, AgreementState.PAUSED)


def _require_state(
    agreement: RecurringAgreement, action: str, allowed: tuple[AgreementState, ...]
) -> None:
    if agreement.state not in allowed:
        raise InvalidTransition(
            invalid_transition(action, agreement.id, agreement.state.value)
        )


def _past_end(agreement: RecurringAgreement, due: date) -> bool:
    return agreement.end_date is not None and due > agreement.end_date


def _limit_reached(agreement: RecurringAgreement) -> bool:
    return (
        agreement.occurrence_limit is not None
        and agreement.occurrences_completed >= agreement.occurrence_limit
    )


def pause(agreement: RecurringAgreement) -> RecurringAgreement:
    """Pause an active agreement."""
    _require_state(agreement, "pause", (AgreementState.ACTIVE,))
    return replace(agreement, state=AgreementState.PAUSED)


def resume(
    agreement: RecurringAgreement,
    today: date,
    policy: ResumePolicy = ResumePolicy.SKIP_MISSED,
) -> RecurringAgreement:
    """Resume a paused agreement.

    With ``SKIP_MISSED`` any cycles that fell due while paused are passed
    over and the agreement continues from the first cycle due on or after
    ``today``. With ``CATCH_UP`` the stored due date is kept and the next
    sweep captures the missed cycle.
    """
    _require_state(agreement, "resume", (AgreementState.PAUSED,))

    cycles_skipped = agreement.cycles_skipped
    due = agreement.next_due_date
    if policy == ResumePolicy.SKIP_MISSED and due < today:
        index, due = first_due_on_or_after(
            agreement.frequency, agreement.anchor_date, agreement.cycle_index, today
        )
        cycles_skipped = index - agreement.occurrences_completed

    state = AgreementState.COMPLETED if _past_end(agreement, due) else AgreementState.ACTIVE
    resumed = replace(agreement, state=state)
    if due != agreement.next_due_date:
        # A new cycle starts with a clean retry budget.
        resumed = replace(
            resumed,
            next_due_date=due,
            cycles_skipped=cycles_skipped,
            failure_streak=0,
            next_retry_at=None,
        )
    return resumed


def record_success(agreement: RecurringAgreement) -> RecurringAgreement:
    """Apply a captured cycle: count it and advance to the next cycle.

    The agreement completes when the occurrence limit is reached or the next
    due date falls after the end date.
    """
    _require_state(agreement, "record a captured cycle for", (AgreementState.ACTIVE,))

    completed = agreement.occurrences_completed + 1
    advanced = replace(
        agreement,
        occurrences_completed=completed,
        failure_streak=0,
        next_retry_at=None,
        next_due_date=next_due_date(
            agreement.frequency,
            agreement.anchor_date,
            completed + agreement.cycles_skipped,
        ),
    )
    if _limit_reached(advanced) or _past_end(advanced, advanced.next_due_date):
        return replace(advanced, state=AgreementState.COMPLETED)
    return advanced


def record_failure(
    agreement: RecurringAgreement,
    now: datetime,
    retry_policy: RetryPolicy,
    rng: Optional[random.Random] = None,
) -> RecurringAgreement:
    """Apply a declined capture of the current cycle.

    The due date is left alone so the same cycle is retried after the
    backoff delay. Once the retry budget is exhausted the agreement moves to
    ``failed`` and waits for an operator.
    """
    _require_state(agreement, "record a failed cycle for", (AgreementState.ACTIVE,))

    streak = agreement.failure_streak + 1
    try:
        delay = retry_policy.next_retry_delay(streak, rng=rng)
    except RetryBudgetExhausted:
        return replace(
            agreement,
            state=AgreementState.FAILED,
            failure_streak=streak,
            next_retry_at=None,
        )
    return replace(agreement, failure_streak=streak, next_retry_at=now + delay)


def reactivate(agreement: RecurringAgreement) -> RecurringAgreement:
    """Operator reset of a failed agreement back to active."""
    _require_state(agreement, "reactivate", (AgreementState.FAILED,))
    return replace(
        agreement,
        state=AgreementState.ACTIVE,
        failure_streak=0,
        next_retry_at=None,
    )


def cancel(agreement: RecurringAgreement, reason: Optional[str] = None) -> RecurringAgreement:
    """Cancel an agreement. Cancellation cannot be undone."""
    _require_state(agreement, "cancel", CANCELLABLE_STATES)
    return replace(
        agreement,
        state=AgreementState.CANCELLED,
        next_retry_at=None,
        cancel_reason=reason,
    )


def modify(
    agreement: RecurringAgreement,
    patch: AgreementPatch,
    today: date,
    last_captured: Optional[date] = None,
) -> RecurringAgreement:
    """Change amount, frequency, end date or occurrence limit.

    A cadence change recomputes the due date from the anchor and the number
    of completed occurrences under the new frequency. If that date has
    already passed, the schedule continues from the first future cycle, and
    it always lands after ``last_captured``, the due date of the latest
    captured cycle. Moving to a new cycle resets the retry budget.

    Raises:
        InvalidTransition: If the agreement is not active or paused
        ValidationError: If a patched value is invalid
    """
    _require_state(agreement, "modify", MODIFIABLE_STATES)
    if patch.is_empty():
        raise ValidationError("Nothing to modify")

    changes: dict = {}

    if patch.amount is not None:
        changes["amount"] = validate_amount(patch.amount)

    if patch.occurrence_limit is not None:
        if patch.occurrence_limit < max(1, agreement.occurrences_completed):
            raise ValidationError(
                f"Occurrence limit must be at least "
                f"{max(1, agreement.occurrences_completed)}"
            )
        changes["occurrence_limit"] = patch.occurrence_limit

    if patch.end_date is not None:
        if patch.end_date < agreement.anchor_date:
            raise ValidationError("End date must not be before the anchor date")
        changes["end_date"] = patch.end_date

    if patch.frequency is not None:
        frequency = coerce_frequency(patch.frequency)
        if frequency != agreement.frequency:
            earliest = today
            if last_captured is not None and last_captured >= earliest:
                earliest = last_captured + timedelta(days=1)
            index, due = first_due_on_or_after(
                frequency, agreement.anchor_date, agreement.occurrences_completed, earliest
            )
            changes["frequency"] = frequency
            changes["cycles_skipped"] = index - agreement.occurrences_completed
            if due != agreement.next_due_date:
                changes.update(next_due_date=due, failure_streak=0, next_retry_at=None)

    updated = replace(agreement, **changes)
    if _limit_reached(updated) or _past_end(updated, updated.next_due_date):
        return replace(updated, state=AgreementState.COMPLETED, next_retry_at=None)
    return updated


def validate_amount(amount: Decimal) -> Decimal:
    """Return the amount rounded to cents, rejecting zero or negative values."""
    amount = Decimal(amount).quantize(Decimal("0.01"))
    if amount <= 0:
        raise ValidationError(f"Amount must be positive: {amount}")
    return amount
