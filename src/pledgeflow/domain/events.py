"""Event sinks for materialization events.

Receipt and notification collaborators subscribe through an EventSink. The
processor emits after the cycle outcome is persisted and does not wait for
or depend on the sink.
"""

import threading
from abc import ABC, abstractmethod

from pledgeflow.domain.entities import MaterializationEvent
from pledgeflow.logging_config import get_logger

logger = get_logger("events")


class EventSink(ABC):
    """Receiver of materialization events."""

    @abstractmethod
    def emit(self, event: MaterializationEvent) -> None:
        """Publish one event."""
        pass


class LoggingEventSink(EventSink):
    """Writes each event to the pledgeflow.events logger."""

    def emit(self, event: MaterializationEvent) -> None:
        logger.info(
            "donation_materialized",
            extra={
                "agreement_id": event.agreement_id,
                "donation_instance_id": event.donation_instance_id,
                "due_date": event.due_date,
                "amount": event.amount,
                "outcome": event.outcome,
            },
        )


class InMemoryEventSink(EventSink):
    """Collects events in a list."""

    def __init__(self):
        self.events: list[MaterializationEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: MaterializationEvent) -> None:
        with self._lock:
            self.events.append(event)
