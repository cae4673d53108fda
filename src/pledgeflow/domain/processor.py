"""Due-cycle processor: the batch sweep.

A sweep pulls the due agreements from the store and handles each one
independently on a bounded thread pool:

1. re-read the agreement and re-check that it is still eligible,
2. skip the cycle if its donation instance is already captured,
3. mark the instance pending and call the gateway with the cycle's
   idempotency key,
4. apply the state machine to the outcome and persist agreement and
   instance together with a conditional write on the version read in 1,
5. emit a materialization event once the write has succeeded.

The gateway call happens outside any transaction. A lost version race
leaves the agreement for the next sweep; a gateway timeout leaves the
instance pending and the agreement untouched, and the next sweep repeats the
capture under the same idempotency key.
"""

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, UTC
from enum import Enum
from typing import Callable, Optional

from pledgeflow.config import EngineConfig
from pledgeflow.database.base import AgreementStore
from pledgeflow.domain import state_machine
from pledgeflow.domain.entities import (
    AgreementState,
    InstanceStatus,
    MaterializationEvent,
    RecurringAgreement,
    SweepReport,
)
from pledgeflow.domain.errors import GatewayError, VersionConflict
from pledgeflow.domain.events import EventSink, LoggingEventSink
from pledgeflow.gateway.base import PaymentGateway
from pledgeflow.logging_config import get_logger
from pledgeflow.utils.date_parser import as_utc

logger = get_logger("processor")


class CycleOutcome(str, Enum):
    """What happened to one agreement during a sweep."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CycleResult:
    """Outcome of processing one agreement."""

    agreement_id: int
    outcome: CycleOutcome
    message: Optional[str] = None


def is_eligible(agreement: RecurringAgreement, now: datetime) -> bool:
    """Whether the agreement's current cycle may be attempted at ``now``."""
    now = as_utc(now)
    return (
        agreement.state == AgreementState.ACTIVE
        and agreement.next_due_date <= now.date()
        and (agreement.next_retry_at is None or agreement.next_retry_at <= now)
    )


class DueCycleProcessor:
    """Materializes due cycles of recurring agreements."""

    def __init__(
        self,
        store: AgreementStore,
        gateway: PaymentGateway,
        event_sink: Optional[EventSink] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the processor.

        Args:
            store: Agreement store
            gateway: Payment gateway adapter
            event_sink: Receiver of materialization events (logs them if None)
            config: Engine configuration (defaults if None)
            clock: Returns the current UTC time (datetime.now(UTC) if None)
            rng: Random source for retry jitter
        """
        self.store = store
        self.gateway = gateway
        self.event_sink = event_sink if event_sink is not None else LoggingEventSink()
        self.config = config if config is not None else EngineConfig()
        self.clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self.rng = rng if rng is not None else random.Random()
        self._cancel_requested = threading.Event()

    def cancel(self) -> None:
        """Stop the running sweep after the agreements already in progress."""
        self._cancel_requested.set()

    def run_sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """Process every agreement due at ``now``.

        Args:
            now: Sweep time (current time if None; naive values are UTC)

        Returns:
            SweepReport with per-outcome counts
        """
        now = as_utc(now if now is not None else self.clock())
        started_at = self.clock()
        self._cancel_requested.clear()

        due = self.store.query_due(now)
        logger.info("sweep_started", extra={"now": now, "due_count": len(due)})

        results: list[CycleResult] = []
        if due:
            workers = min(self.config.worker_concurrency, len(due))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sweep") as pool:
                futures = [pool.submit(self._process_guarded, a.id, now) for a in due]
                results = [future.result() for future in futures]

        report = _build_report(results, started_at, self.clock())
        logger.info(
            "sweep_finished",
            extra={
                "processed": report.processed,
                "succeeded": report.succeeded,
                "failed": report.failed,
                "skipped": report.skipped,
                "conflicts": report.conflicts,
                "unknown_outcomes": report.unknown_outcomes,
                "cancelled": report.cancelled,
            },
        )
        return report

    def _process_guarded(self, agreement_id: int, now: datetime) -> CycleResult:
        if self._cancel_requested.is_set():
            return CycleResult(agreement_id, CycleOutcome.CANCELLED)
        try:
            return self.process_agreement(agreement_id, now)
        except Exception as e:
            # One agreement must not take the sweep down with it.
            logger.exception("cycle_error", extra={"agreement_id": agreement_id})
            return CycleResult(agreement_id, CycleOutcome.ERROR, f"Agreement {agreement_id}: {e}")

    def process_agreement(self, agreement_id: int, now: Optional[datetime] = None) -> CycleResult:
        """Attempt the current cycle of one agreement.

        Args:
            agreement_id: Agreement to process
            now: Processing time (current time if None; naive values are UTC)

        Returns:
            CycleResult describing the outcome
        """
        now = as_utc(now if now is not None else self.clock())

        agreement = self.store.get_agreement(agreement_id)
        if agreement is None or not is_eligible(agreement, now):
            return CycleResult(agreement_id, CycleOutcome.SKIPPED, "not eligible")

        due_date = agreement.next_due_date
        existing = self.store.get_instance(agreement.id, due_date)
        if existing is not None and existing.status == InstanceStatus.CAPTURED:
            logger.info(
                "cycle_already_captured",
                extra={"agreement_id": agreement.id, "due_date": due_date},
            )
            return CycleResult(agreement_id, CycleOutcome.SKIPPED, "already captured")

        instance = self.store.begin_attempt(agreement.id, due_date, agreement.amount)
        if instance.status == InstanceStatus.CAPTURED:
            return CycleResult(agreement_id, CycleOutcome.SKIPPED, "already captured")

        try:
            result = self.gateway.capture(instance.amount, agreement.idempotency_key)
        except GatewayError as e:
            logger.warning(
                "capture_outcome_unknown",
                extra={
                    "agreement_id": agreement.id,
                    "due_date": due_date,
                    "idempotency_key": agreement.idempotency_key,
                    "error": str(e),
                },
            )
            return CycleResult(agreement_id, CycleOutcome.UNKNOWN, str(e))

        if result.success:
            updated = state_machine.record_success(agreement)
            instance = replace(
                instance,
                status=InstanceStatus.CAPTURED,
                captured_at=now,
                transaction_ref=result.transaction_ref,
                failure_reason=None,
            )
            outcome = CycleOutcome.SUCCEEDED
        else:
            updated = state_machine.record_failure(
                agreement, now, self.config.retry_policy, rng=self.rng
            )
            instance = replace(
                instance,
                status=InstanceStatus.FAILED,
                failure_reason=result.reason_code,
            )
            outcome = CycleOutcome.FAILED

        try:
            stored = self.store.conditional_write(updated, agreement.version, instance=instance)
        except VersionConflict:
            logger.warning(
                "cycle_write_conflict",
                extra={
                    "agreement_id": agreement.id,
                    "version": agreement.version,
                    "due_date": due_date,
                    "capture_succeeded": result.success,
                    "transaction_ref": result.transaction_ref,
                },
            )
            return CycleResult(agreement_id, CycleOutcome.CONFLICT, "version conflict")

        logger.info(
            "cycle_persisted",
            extra={
                "agreement_id": stored.id,
                "due_date": due_date,
                "outcome": outcome.value,
                "state": stored.state,
                "version": stored.version,
                "failure_streak": stored.failure_streak,
            },
        )
        self._emit(
            MaterializationEvent(
                agreement_id=stored.id,
                donation_instance_id=instance.id,
                due_date=due_date,
                amount=instance.amount,
                outcome=instance.status,
                occurred_at=now,
            )
        )
        return CycleResult(agreement_id, outcome)

    def _emit(self, event: MaterializationEvent) -> None:
        try:
            self.event_sink.emit(event)
        except Exception:
            # Delivery is the sink's concern; the cycle is already persisted.
            logger.exception(
                "event_emit_failed",
                extra={"agreement_id": event.agreement_id, "due_date": event.due_date},
            )


def _build_report(
    results: list[CycleResult], started_at: datetime, finished_at: datetime
) -> SweepReport:
    counts = {outcome: 0 for outcome in CycleOutcome}
    for result in results:
        counts[result.outcome] += 1

    skipped = (
        counts[CycleOutcome.SKIPPED]
        + counts[CycleOutcome.CONFLICT]
        + counts[CycleOutcome.UNKNOWN]
        + counts[CycleOutcome.ERROR]
    )
    return SweepReport(
        started_at=started_at,
        finished_at=finished_at,
        processed=len(results) - counts[CycleOutcome.CANCELLED],
        succeeded=counts[CycleOutcome.SUCCEEDED],
        failed=counts[CycleOutcome.FAILED],
        skipped=skipped,
        conflicts=counts[CycleOutcome.CONFLICT],
        unknown_outcomes=counts[CycleOutcome.UNKNOWN],
        cancelled=counts[CycleOutcome.CANCELLED] > 0,
        errors=tuple(r.message for r in results if r.outcome == CycleOutcome.ERROR),
    )
