"""Agreement command service."""

from datetime import date, datetime, UTC
from typing import Callable, Optional

from pledgeflow.config import EngineConfig
from pledgeflow.database.base import AgreementStore
from pledgeflow.domain import state_machine
from pledgeflow.domain.entities import (
    AgreementPatch,
    AgreementSpec,
    AgreementState,
    DonationInstance,
    InstanceStatus,
    RecurringAgreement,
    ResumePolicy,
)
from pledgeflow.domain.errors import (
    AgreementNotFound,
    ConcurrentModification,
    InvalidTransition,
    ValidationError,
    VersionConflict,
    agreement_not_found,
)
from pledgeflow.domain.frequency import coerce_frequency, next_due_date
from pledgeflow.logging_config import get_logger

logger = get_logger("agreement")


class AgreementService:
    """Service for creating and changing recurring agreements.

    Every change reads the agreement, applies a state machine transition and
    writes it back conditionally on the version it read. Losing that race
    raises ConcurrentModification; nothing is written and the caller may
    retry. A sweep running at the same time needs no special handling.
    """

    def __init__(
        self,
        store: AgreementStore,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize agreement service.

        Args:
            store: Agreement store
            config: Engine configuration (defaults if None)
            clock: Returns the current UTC time (datetime.now(UTC) if None)
        """
        self.store = store
        self.config = config if config is not None else EngineConfig()
        self.clock = clock if clock is not None else (lambda: datetime.now(UTC))

    def _today(self) -> date:
        return self.clock().date()

    def create(self, spec: AgreementSpec) -> RecurringAgreement:
        """Create an active agreement.

        The first cycle falls one period after the anchor date.

        Args:
            spec: Agreement details

        Returns:
            The created agreement

        Raises:
            ValidationError: If the donor, amount or bounds are invalid
            InvalidFrequency: If the frequency is not recognized
        """
        if not spec.donor_id or not spec.donor_id.strip():
            raise ValidationError("Donor ID is required")
        amount = state_machine.validate_amount(spec.amount)
        frequency = coerce_frequency(spec.frequency)

        if spec.occurrence_limit is not None and spec.occurrence_limit < 1:
            raise ValidationError("Occurrence limit must be at least 1")

        first_due = next_due_date(frequency, spec.anchor_date, 0)
        if spec.end_date is not None and spec.end_date < first_due:
            raise ValidationError(
                f"End date {spec.end_date} is before the first due date {first_due}"
            )

        agreement = self.store.create_agreement(
            donor_id=spec.donor_id.strip(),
            amount=amount,
            currency=(spec.currency or self.config.currency).upper(),
            frequency=frequency,
            anchor_date=spec.anchor_date,
            next_due_date=first_due,
            occurrence_limit=spec.occurrence_limit,
            end_date=spec.end_date,
        )
        logger.info(
            "agreement_created",
            extra={
                "agreement_id": agreement.id,
                "donor_id": agreement.donor_id,
                "frequency": agreement.frequency,
                "next_due_date": agreement.next_due_date,
            },
        )
        return agreement

    def get(self, agreement_id: int) -> RecurringAgreement:
        """Get agreement by ID.

        Raises:
            AgreementNotFound: If the agreement does not exist
        """
        agreement = self.store.get_agreement(agreement_id)
        if agreement is None:
            raise AgreementNotFound(agreement_not_found(agreement_id))
        return agreement

    def list_agreements(
        self,
        state: Optional[AgreementState] = None,
        donor_id: Optional[str] = None,
    ) -> list[RecurringAgreement]:
        """List agreements, optionally filtered by state and donor."""
        return self.store.list_agreements(state=state, donor_id=donor_id)

    def history(self, agreement_id: int) -> list[DonationInstance]:
        """List the donation instances materialized for an agreement."""
        self.get(agreement_id)
        return self.store.list_instances(agreement_id)

    def pause(self, agreement_id: int) -> RecurringAgreement:
        """Pause an active agreement."""
        return self._apply(agreement_id, "pause", state_machine.pause)

    def resume(self, agreement_id: int) -> RecurringAgreement:
        """Resume a paused agreement according to the configured resume policy.

        A cycle whose capture is still pending is never skipped, whatever the
        policy: the gateway may already have charged it, and the next sweep
        settles it under the same idempotency key.
        """
        today = self._today()

        def transition(agreement: RecurringAgreement) -> RecurringAgreement:
            policy = self.config.resume_policy
            if self._capture_in_flight(agreement):
                logger.info(
                    "resume_keeps_pending_cycle",
                    extra={"agreement_id": agreement.id, "due_date": agreement.next_due_date},
                )
                policy = ResumePolicy.CATCH_UP
            return state_machine.resume(agreement, today, policy)

        return self._apply(agreement_id, "resume", transition)

    def cancel(self, agreement_id: int, reason: Optional[str] = None) -> RecurringAgreement:
        """Cancel an agreement permanently."""
        return self._apply(agreement_id, "cancel", lambda a: state_machine.cancel(a, reason))

    def reactivate(self, agreement_id: int) -> RecurringAgreement:
        """Put a failed agreement back into active with a fresh retry budget."""
        return self._apply(agreement_id, "reactivate", state_machine.reactivate)

    def modify(self, agreement_id: int, patch: AgreementPatch) -> RecurringAgreement:
        """Change amount, frequency, end date or occurrence limit.

        A cadence change always moves the schedule past the latest captured
        cycle.

        Raises:
            InvalidTransition: If the frequency changes while the current
                cycle has a capture pending
        """
        today = self._today()

        def transition(agreement: RecurringAgreement) -> RecurringAgreement:
            if (
                patch.frequency is not None
                and coerce_frequency(patch.frequency) != agreement.frequency
                and self._capture_in_flight(agreement)
            ):
                raise InvalidTransition(
                    f"Agreement {agreement.id} has a capture pending for "
                    f"{agreement.next_due_date}; run a sweep before changing its frequency"
                )
            return state_machine.modify(
                agreement, patch, today, last_captured=self._last_captured(agreement.id)
            )

        return self._apply(agreement_id, "modify", transition)

    def _capture_in_flight(self, agreement: RecurringAgreement) -> bool:
        instance = self.store.get_instance(agreement.id, agreement.next_due_date)
        return instance is not None and instance.status == InstanceStatus.PENDING

    def _last_captured(self, agreement_id: int) -> Optional[date]:
        captured = [
            i.due_date
            for i in self.store.list_instances(agreement_id)
            if i.status == InstanceStatus.CAPTURED
        ]
        return max(captured, default=None)

    def _apply(
        self,
        agreement_id: int,
        action: str,
        transition: Callable[[RecurringAgreement], RecurringAgreement],
    ) -> RecurringAgreement:
        agreement = self.get(agreement_id)
        updated = transition(agreement)
        try:
            stored = self.store.conditional_write(updated, agreement.version)
        except VersionConflict as e:
            logger.info(
                "command_conflict",
                extra={"agreement_id": agreement_id, "action": action, "version": agreement.version},
            )
            raise ConcurrentModification(str(e)) from e

        logger.info(
            "agreement_updated",
            extra={
                "agreement_id": agreement_id,
                "action": action,
                "state": stored.state,
                "version": stored.version,
            },
        )
        return stored
