"""Mapper functions to convert between domain models and SQLAlchemy models.

SQLite hands back naive datetimes; everything is stored in UTC, so the
mappers re-attach the timezone on the way out and strip it on the way in.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pledgeflow.domain import entities as domain
from pledgeflow.database.models import (
    Agreement as ORMAgreement,
    DonationInstance as ORMDonationInstance,
)
from pledgeflow.utils.date_parser import as_utc


def to_storage(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as a naive UTC datetime for storage."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def agreement_to_domain(orm_agreement: ORMAgreement) -> domain.RecurringAgreement:
    """Convert SQLAlchemy Agreement model to domain RecurringAgreement entity."""
    return domain.RecurringAgreement(
        id=orm_agreement.id,
        donor_id=orm_agreement.donor_id,
        amount=Decimal(orm_agreement.amount),
        currency=orm_agreement.currency,
        frequency=domain.Frequency(orm_agreement.frequency),
        anchor_date=orm_agreement.anchor_date,
        next_due_date=orm_agreement.next_due_date,
        state=domain.AgreementState(orm_agreement.state),
        occurrences_completed=orm_agreement.occurrences_completed,
        cycles_skipped=orm_agreement.cycles_skipped,
        occurrence_limit=orm_agreement.occurrence_limit,
        end_date=orm_agreement.end_date,
        failure_streak=orm_agreement.failure_streak,
        next_retry_at=as_utc(orm_agreement.next_retry_at),
        cancel_reason=orm_agreement.cancel_reason,
        version=orm_agreement.version,
        created_at=as_utc(orm_agreement.created_at),
        updated_at=as_utc(orm_agreement.updated_at),
    )


def agreement_to_row(agreement: domain.RecurringAgreement) -> dict:
    """Column values written by a conditional update (excludes id and version)."""
    return {
        "donor_id": agreement.donor_id,
        "amount": agreement.amount,
        "currency": agreement.currency,
        "frequency": agreement.frequency.value,
        "anchor_date": agreement.anchor_date,
        "next_due_date": agreement.next_due_date,
        "state": agreement.state.value,
        "occurrences_completed": agreement.occurrences_completed,
        "cycles_skipped": agreement.cycles_skipped,
        "occurrence_limit": agreement.occurrence_limit,
        "end_date": agreement.end_date,
        "failure_streak": agreement.failure_streak,
        "next_retry_at": to_storage(agreement.next_retry_at),
        "cancel_reason": agreement.cancel_reason,
    }


def donation_instance_to_domain(
    orm_instance: ORMDonationInstance,
) -> domain.DonationInstance:
    """Convert SQLAlchemy DonationInstance model to domain DonationInstance entity."""
    return domain.DonationInstance(
        id=orm_instance.id,
        agreement_id=orm_instance.agreement_id,
        due_date=orm_instance.due_date,
        amount=Decimal(orm_instance.amount),
        status=domain.InstanceStatus(orm_instance.status),
        attempts=orm_instance.attempts,
        captured_at=as_utc(orm_instance.captured_at),
        transaction_ref=orm_instance.transaction_ref,
        failure_reason=orm_instance.failure_reason,
        created_at=as_utc(orm_instance.created_at),
    )
