"""Payment gateway adapters."""

from pledgeflow.gateway.base import CaptureResult, PaymentGateway
from pledgeflow.gateway.simulated import SimulatedGateway

__all__ = ["CaptureResult", "PaymentGateway", "SimulatedGateway"]
