"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for callers that handle plain ValueError.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InvalidFrequency(ValidationError):
    """Frequency is not one of weekly, monthly, quarterly, yearly."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class AgreementNotFound(NotFoundError):
    """No agreement with the requested ID."""


class ConflictError(DomainError):
    """Domain conflict, such as a lost optimistic-concurrency race."""


class VersionConflict(ConflictError):
    """Raised by the store when a conditional write finds a newer version."""

    def __init__(self, agreement_id: int, expected_version: int):
        super().__init__(version_conflict(agreement_id, expected_version))
        self.agreement_id = agreement_id
        self.expected_version = expected_version


class ConcurrentModification(ConflictError):
    """A command lost a race with another writer; the caller may retry."""


class InvalidTransition(DomainError):
    """Requested state change is not allowed from the current state."""


class RetryBudgetExhausted(DomainError):
    """The current cycle has failed more often than the retry budget allows."""

    def __init__(self, failure_streak: int, max_retries: int):
        super().__init__(
            f"Failure streak {failure_streak} exceeds max retries {max_retries}"
        )
        self.failure_streak = failure_streak
        self.max_retries = max_retries


class GatewayError(Exception):
    """Payment gateway could not give a definite answer."""


class GatewayTimeout(GatewayError):
    """Capture call timed out; the charge may or may not have happened."""


def agreement_not_found(agreement_id: int) -> str:
    """Return message for missing agreement."""
    return f"Agreement {agreement_id} not found"


def invalid_frequency(value: object) -> str:
    """Return message for an unknown frequency."""
    return (
        f"Invalid frequency '{value}'. "
        "Supported frequencies: weekly, monthly, quarterly, yearly"
    )


def invalid_transition(action: str, agreement_id: int, state: str) -> str:
    """Return message for a transition not allowed from ``state``."""
    return f"Cannot {action} agreement {agreement_id}: agreement is {state}"


def version_conflict(agreement_id: int, expected_version: int) -> str:
    """Return message for a failed conditional write."""
    return (
        f"Agreement {agreement_id} was modified concurrently "
        f"(expected version {expected_version})"
    )
