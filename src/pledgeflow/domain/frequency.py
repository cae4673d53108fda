"""Due date calculation for recurring agreements.

Every due date is computed from the anchor date and a cycle index, never
from the previous due date, so month-end clamping does not accumulate.
``relativedelta`` clamps to the last valid day of the target month
(Jan 31 + 1 month is Feb 28/29, Feb 29 + 1 year is Feb 28).
"""

from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from pledgeflow.domain.entities import Frequency
from pledgeflow.domain.errors import InvalidFrequency, invalid_frequency

_MONTH_STEPS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}


def coerce_frequency(value: Frequency | str) -> Frequency:
    """Return ``value`` as a Frequency.

    Raises:
        InvalidFrequency: If the value is not a known frequency
    """
    if isinstance(value, Frequency):
        return value
    if isinstance(value, str):
        try:
            return Frequency(value.strip().lower())
        except ValueError:
            pass
    raise InvalidFrequency(invalid_frequency(value))


def next_due_date(
    frequency: Frequency | str, anchor_date: date, occurrences_completed: int
) -> date:
    """Compute the due date of cycle ``occurrences_completed``.

    Cycle 0 is one period after the anchor.

    Args:
        frequency: Agreement cadence
        anchor_date: Original start date
        occurrences_completed: Cycle index (completed plus skipped cycles)

    Returns:
        Due date of the cycle

    Raises:
        InvalidFrequency: If frequency is not recognized
        ValueError: If occurrences_completed is negative
    """
    frequency = coerce_frequency(frequency)
    if occurrences_completed < 0:
        raise ValueError(f"Cycle index must not be negative: {occurrences_completed}")

    periods = occurrences_completed + 1
    if frequency == Frequency.WEEKLY:
        return anchor_date + timedelta(days=7 * periods)
    return anchor_date + relativedelta(months=_MONTH_STEPS[frequency] * periods)


def first_due_on_or_after(
    frequency: Frequency | str, anchor_date: date, start_index: int, on_or_after: date
) -> tuple[int, date]:
    """Find the first cycle at or after ``start_index`` due on/after a date.

    Returns:
        Tuple of (cycle index, due date)
    """
    index = start_index
    due = next_due_date(frequency, anchor_date, index)
    while due < on_or_after:
        index += 1
        due = next_due_date(frequency, anchor_date, index)
    return index, due


def project_schedule(
    frequency: Frequency | str,
    anchor_date: date,
    start_index: int,
    count: int,
    end_date: Optional[date] = None,
) -> list[date]:
    """List up to ``count`` due dates starting at cycle ``start_index``.

    Dates after ``end_date`` are not included.
    """
    dates = []
    for index in range(start_index, start_index + count):
        due = next_due_date(frequency, anchor_date, index)
        if end_date is not None and due > end_date:
            break
        dates.append(due)
    return dates
