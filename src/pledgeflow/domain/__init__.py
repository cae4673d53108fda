"""Domain layer for pledgeflow.

Services live in their own modules (``pledgeflow.domain.agreement``,
``pledgeflow.domain.processor``, ``pledgeflow.domain.reporting``) and are
not re-exported here, since they depend on the database layer which in turn
imports the entities below.
"""

from pledgeflow.domain.entities import (
    AgreementPatch,
    AgreementSpec,
    AgreementState,
    DonationInstance,
    Frequency,
    InstanceStatus,
    MaterializationEvent,
    RecurringAgreement,
    ResumePolicy,
    SweepReport,
)

__all__ = [
    "AgreementPatch",
    "AgreementSpec",
    "AgreementState",
    "DonationInstance",
    "Frequency",
    "InstanceStatus",
    "MaterializationEvent",
    "RecurringAgreement",
    "ResumePolicy",
    "SweepReport",
]
