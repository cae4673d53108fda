"""Abstract payment gateway interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class CaptureResult:
    """Definite answer from a capture call.

    Declines are results, not exceptions. A call that ends without an answer
    raises GatewayTimeout instead.
    """

    success: bool
    transaction_ref: Optional[str] = None
    reason_code: Optional[str] = None

    @classmethod
    def captured(cls, transaction_ref: str) -> "CaptureResult":
        return cls(success=True, transaction_ref=transaction_ref)

    @classmethod
    def declined(cls, reason_code: str) -> "CaptureResult":
        return cls(success=False, reason_code=reason_code)


class PaymentGateway(ABC):
    """Capability interface every gateway provider adapter implements."""

    @abstractmethod
    def capture(self, amount: Decimal, idempotency_key: str) -> CaptureResult:
        """Capture ``amount`` for one cycle.

        Calls repeated with the same idempotency key must not charge twice;
        they return the outcome of the first call.

        Raises:
            GatewayTimeout: If the outcome is unknown
        """
        pass
