"""Tests for database mappers."""

from datetime import date, datetime, timedelta, timezone, UTC
from decimal import Decimal

from pledgeflow.database.models import (
    Agreement as ORMAgreement,
    DonationInstance as ORMDonationInstance,
)
from pledgeflow.database.mappers import (
    agreement_to_domain,
    agreement_to_row,
    as_utc,
    donation_instance_to_domain,
    to_storage,
)
from pledgeflow.domain.entities import (
    AgreementState,
    DonationInstance,
    Frequency,
    InstanceStatus,
    RecurringAgreement,
)


class TestAgreementMapper:
    """Tests for Agreement mapper."""

    def test_agreement_to_domain(self):
        """Test converting ORM Agreement to domain RecurringAgreement."""
        orm_agreement = ORMAgreement(
            id=3,
            donor_id="D-9",
            amount=Decimal("750.00"),
            currency="INR",
            frequency="quarterly",
            anchor_date=date(2024, 1, 31),
            next_due_date=date(2024, 4, 30),
            state="paused",
            occurrences_completed=1,
            cycles_skipped=2,
            occurrence_limit=None,
            end_date=None,
            failure_streak=1,
            next_retry_at=datetime(2024, 5, 1, 10, 0),
            cancel_reason=None,
            version=4,
            created_at=datetime(2024, 1, 1, 0, 0),
            updated_at=datetime(2024, 5, 1, 9, 0),
        )

        agreement = agreement_to_domain(orm_agreement)

        assert isinstance(agreement, RecurringAgreement)
        assert agreement.frequency == Frequency.QUARTERLY
        assert agreement.state == AgreementState.PAUSED
        assert agreement.cycle_index == 3
        assert agreement.version == 4
        assert agreement.next_retry_at == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        assert agreement.idempotency_key == "3:2024-04-30"

    def test_agreement_to_row_excludes_identity(self):
        """Test that row values leave id and version to the store."""
        agreement = RecurringAgreement(
            id=1,
            donor_id="D-1",
            amount=Decimal("10.00"),
            currency="INR",
            frequency=Frequency.WEEKLY,
            anchor_date=date(2024, 1, 1),
            next_due_date=date(2024, 1, 8),
            state=AgreementState.ACTIVE,
            next_retry_at=datetime(2024, 1, 8, 15, 30, tzinfo=timezone(timedelta(hours=5, minutes=30))),
            version=9,
        )

        row = agreement_to_row(agreement)

        assert "id" not in row
        assert "version" not in row
        assert row["frequency"] == "weekly"
        assert row["state"] == "active"
        assert row["next_retry_at"] == datetime(2024, 1, 8, 10, 0)


class TestDonationInstanceMapper:
    """Tests for DonationInstance mapper."""

    def test_donation_instance_to_domain(self):
        """Test converting ORM DonationInstance to domain DonationInstance."""
        orm_instance = ORMDonationInstance(
            id=7,
            agreement_id=3,
            due_date=date(2024, 2, 29),
            amount=Decimal("500.00"),
            status="captured",
            attempts=2,
            captured_at=datetime(2024, 2, 29, 9, 0),
            transaction_ref="sim-000001",
            failure_reason=None,
            created_at=datetime(2024, 2, 29, 8, 0),
        )

        instance = donation_instance_to_domain(orm_instance)

        assert isinstance(instance, DonationInstance)
        assert instance.status == InstanceStatus.CAPTURED
        assert instance.attempts == 2
        assert instance.captured_at.tzinfo is not None
        assert instance.transaction_ref == "sim-000001"


def test_datetime_helpers():
    """Test UTC normalisation helpers."""
    ist = timezone(timedelta(hours=5, minutes=30))
    assert as_utc(None) is None
    assert to_storage(None) is None
    assert as_utc(datetime(2024, 1, 1, 12, 0)) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert to_storage(datetime(2024, 1, 1, 17, 30, tzinfo=ist)) == datetime(2024, 1, 1, 12, 0)
