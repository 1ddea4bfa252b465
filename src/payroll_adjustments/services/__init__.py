"""Payroll adjustment services."""

from payroll_adjustments.services.edit_service import LineItemEditor
from payroll_adjustments.services.period_grouper import PeriodGroup, PeriodGrouper
from payroll_adjustments.services.session import AdjustmentSession
from payroll_adjustments.services.staging import StagingList
from payroll_adjustments.services.state_machine import (
    InvalidTransitionError,
    SubmissionStateMachine,
    SubmissionStatus,
)
from payroll_adjustments.services.submission import (
    AggregateResult,
    SubmissionCoordinator,
    SubmissionError,
    SubmissionOutcome,
)

__all__ = [
    "LineItemEditor",
    "PeriodGroup",
    "PeriodGrouper",
    "AdjustmentSession",
    "StagingList",
    "InvalidTransitionError",
    "SubmissionStateMachine",
    "SubmissionStatus",
    "AggregateResult",
    "SubmissionCoordinator",
    "SubmissionError",
    "SubmissionOutcome",
]
