"""In-process gateway used by the operator CLI and tests."""

import threading
from decimal import Decimal
from typing import Iterable, Optional

from pledgeflow.domain.errors import GatewayTimeout
from pledgeflow.gateway.base import CaptureResult, PaymentGateway
from pledgeflow.logging_config import get_logger

logger = get_logger("gateway.simulated")


class SimulatedGateway(PaymentGateway):
    """Gateway that approves everything unless told otherwise.

    Keys listed in ``decline_keys`` are declined and keys in ``timeout_keys``
    time out. Outcomes are remembered per idempotency key, so a repeated call
    returns the first answer and a key is charged at most once.
    """

    def __init__(
        self,
        decline_keys: Optional[Iterable[str]] = None,
        timeout_keys: Optional[Iterable[str]] = None,
        decline_all: bool = False,
        reason_code: str = "card_declined",
    ):
        self.decline_keys = set(decline_keys or ())
        self.timeout_keys = set(timeout_keys or ())
        self.decline_all = decline_all
        self.reason_code = reason_code
        self.calls: list[tuple[Decimal, str]] = []
        self.charges: dict[str, Decimal] = {}
        self._outcomes: dict[str, CaptureResult] = {}
        self._lock = threading.Lock()

    def capture(self, amount: Decimal, idempotency_key: str) -> CaptureResult:
        with self._lock:
            self.calls.append((amount, idempotency_key))
            if idempotency_key in self._outcomes:
                return self._outcomes[idempotency_key]

            if idempotency_key in self.timeout_keys:
                logger.info("simulated_timeout", extra={"idempotency_key": idempotency_key})
                raise GatewayTimeout(f"Capture timed out for {idempotency_key}")

            if self.decline_all or idempotency_key in self.decline_keys:
                # Declines are not remembered; a later retry may succeed.
                return CaptureResult.declined(self.reason_code)

            result = CaptureResult.captured(f"sim-{len(self.charges) + 1:06d}")
            self.charges[idempotency_key] = amount
            self._outcomes[idempotency_key] = result
            return result
