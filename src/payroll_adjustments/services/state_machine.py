"""Submission state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class SubmissionStatus(str, Enum):
    """Submission status values."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    ALL_SUCCEEDED = "all_succeeded"
    PARTIALLY_FAILED = "partially_failed"


class InvalidTransitionError(Exception):
    """A submission status change the coordinator does not allow."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        # Store plain values so messages read the same for enums and strings
        self.from_status = getattr(from_status, "value", from_status)
        self.to_status = getattr(to_status, "value", to_status)
        self.reason = reason
        message = f"Cannot move submission from '{self.from_status}' to '{self.to_status}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SubmissionStateMachine:
    """State machine for one coordinator's submissions.

    Allowed transitions:
    - idle → validating
    - validating → idle (validation failed)
    - validating → submitting
    - submitting → all_succeeded
    - submitting → partially_failed
    - all_succeeded → idle
    - partially_failed → idle
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        SubmissionStatus.IDLE: [SubmissionStatus.VALIDATING],
        SubmissionStatus.VALIDATING: [SubmissionStatus.IDLE, SubmissionStatus.SUBMITTING],
        SubmissionStatus.SUBMITTING: [
            SubmissionStatus.ALL_SUCCEEDED,
            SubmissionStatus.PARTIALLY_FAILED,
        ],
        SubmissionStatus.ALL_SUCCEEDED: [SubmissionStatus.IDLE],
        SubmissionStatus.PARTIALLY_FAILED: [SubmissionStatus.IDLE],
    }

    # Statuses in which no submission is running
    AT_REST = {
        SubmissionStatus.IDLE,
        SubmissionStatus.ALL_SUCCEEDED,
        SubmissionStatus.PARTIALLY_FAILED,
    }

    TERMINAL = {
        SubmissionStatus.ALL_SUCCEEDED,
        SubmissionStatus.PARTIALLY_FAILED,
    }

    def __init__(self) -> None:
        self.status = SubmissionStatus.IDLE
        self.history: list[SubmissionStatus] = [SubmissionStatus.IDLE]

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @property
    def is_busy(self) -> bool:
        return self.status not in self.AT_REST

    def transition(self, to_status: SubmissionStatus) -> None:
        """Move to to_status, raising InvalidTransitionError if not allowed."""
        self.validate_transition(self.status, to_status)
        self.status = to_status
        self.history.append(to_status)

    def begin(self) -> None:
        """Start a submission from idle."""
        if self.is_busy:
            raise InvalidTransitionError(
                self.status.value,
                SubmissionStatus.VALIDATING.value,
                reason="a submission is already in progress",
            )
        if self.status in self.TERMINAL:
            self.transition(SubmissionStatus.IDLE)
        self.transition(SubmissionStatus.VALIDATING)

    def reset(self) -> None:
        """Return to idle after an aborted submission."""
        self.status = SubmissionStatus.IDLE
        self.history.append(SubmissionStatus.IDLE)
