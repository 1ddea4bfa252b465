"""Concurrent submission of period groups to the batch endpoints."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from payroll_adjustments.calculators.types import (
    AdjustmentKind,
    AdjustmentLineItem,
    AdjustmentValidationError,
)
from payroll_adjustments.gateway.base import GatewayError
from payroll_adjustments.schemas import BatchCreateRequest, BatchItem, PeriodPayload
from payroll_adjustments.services.period_grouper import PeriodGroup, PeriodGrouper
from payroll_adjustments.services.staging import StagingList
from payroll_adjustments.services.state_machine import (
    SubmissionStateMachine,
    SubmissionStatus,
)

if TYPE_CHECKING:
    from payroll_adjustments.gateway.base import PayrollGateway

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """A period group's batch call failed."""

    def __init__(self, period_key: str, message: str):
        self.period_key = period_key
        self.message = message
        super().__init__(f"Batch for {period_key} failed: {message}")


class SubmissionOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial-failure"
    FAILED = "failed"


class GroupStatus(str, Enum):
    COMMITTED = "committed"
    FAILED = "failed"
    ALREADY_COMMITTED = "already_committed"


@dataclass(frozen=True)
class GroupResult:
    """Outcome of one period group."""

    period_key: str
    status: GroupStatus
    idempotency_key: str
    item_count: int
    persisted_count: int = 0
    error: SubmissionError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not GroupStatus.FAILED


@dataclass(frozen=True)
class AggregateResult:
    """Single summary of a submission across all period groups."""

    outcome: SubmissionOutcome
    groups: list[GroupResult] = field(default_factory=list)
    first_failure_message: str | None = None
    persisted_count: int = 0

    @property
    def success(self) -> bool:
        return self.outcome is SubmissionOutcome.SUCCESS

    @property
    def failed_periods(self) -> list[str]:
        return [g.period_key for g in self.groups if not g.succeeded]

    @property
    def already_committed_count(self) -> int:
        return sum(
            g.item_count for g in self.groups if g.status is GroupStatus.ALREADY_COMMITTED
        )

    def summary(self) -> str:
        """One notification line for the whole submission."""
        months = len(self.groups)
        if self.outcome is SubmissionOutcome.SUCCESS:
            message = f"Successfully created {self.persisted_count} record(s) for {months} month(s)"
            if self.already_committed_count:
                message += f" ({self.already_committed_count} already created earlier)"
            return message
        reason = self.first_failure_message or "unknown error"
        if self.outcome is SubmissionOutcome.FAILED:
            return f"Failed to create records: {reason}"
        return (
            f"Created {self.persisted_count} record(s); "
            f"{len(self.failed_periods)} of {months} month(s) failed: {reason}"
        )


class SubmissionCoordinator:
    """Issues one batch request per period group, concurrently.

    Key invariants:
    1. Validation happens before any request is sent
    2. All groups are sent at once, with no concurrency cap; the coordinator
       waits for every one of them before reporting
    3. Succeeded groups are never rolled back when a sibling fails
    4. Each group carries a deterministic idempotency key; groups already
       committed by an earlier call on this coordinator are not re-sent
    5. No automatic retry. There is also no cancellation: if the caller
       abandons submit(), requests already sent still complete server-side
    """

    def __init__(self, gateway: PayrollGateway, kind: AdjustmentKind):
        self.gateway = gateway
        self.kind = kind
        self.state = SubmissionStateMachine()
        # idempotency key -> group status, across invocations
        self.commit_log: dict[str, GroupStatus] = {}

    @property
    def status(self) -> SubmissionStatus:
        return self.state.status

    def build_request(self, group: PeriodGroup) -> BatchCreateRequest:
        return BatchCreateRequest(
            period=PeriodPayload.from_period(group.period),
            items=[BatchItem.from_line_item(item) for item in group.items],
            idempotency_key=group.idempotency_key(self.kind),
            date=group.period.first_day.isoformat(),
        )

    async def submit(
        self, staging: StagingList | Iterable[AdjustmentLineItem]
    ) -> AggregateResult:
        """Validate, group and submit staged items.

        Raises:
            AdjustmentValidationError: Nothing is sent when validation fails.
            InvalidTransitionError: A submission is already running.
        """
        if not isinstance(staging, StagingList):
            staging = StagingList(items=tuple(staging))

        self.state.begin()
        errors = staging.submission_errors()
        if errors:
            self.state.transition(SubmissionStatus.IDLE)
            raise AdjustmentValidationError(errors)

        groups = PeriodGrouper.group(staging)
        self.state.transition(SubmissionStatus.SUBMITTING)
        logger.info(
            "Submitting %d %s item(s) in %d period group(s)",
            len(staging), self.kind.value, len(groups),
        )

        try:
            results = await asyncio.gather(
                *(self._submit_group(group) for group in groups.values())
            )
        except BaseException:
            self.state.reset()
            raise

        aggregate = self._aggregate(list(results))
        if aggregate.success:
            self.state.transition(SubmissionStatus.ALL_SUCCEEDED)
            logger.info("%s", aggregate.summary())
        else:
            self.state.transition(SubmissionStatus.PARTIALLY_FAILED)
            logger.warning("%s", aggregate.summary())
        self.state.transition(SubmissionStatus.IDLE)
        return aggregate

    async def _submit_group(self, group: PeriodGroup) -> GroupResult:
        """Send one group; failures are captured, never raised."""
        period_key = group.period.key
        key = group.idempotency_key(self.kind)

        if self.commit_log.get(key) is GroupStatus.COMMITTED:
            logger.info("Skipping %s batch for %s: already committed", self.kind.value, period_key)
            return GroupResult(
                period_key=period_key,
                status=GroupStatus.ALREADY_COMMITTED,
                idempotency_key=key,
                item_count=group.item_count,
            )

        try:
            result = await self.gateway.create_batch(self.kind, self.build_request(group))
        except GatewayError as e:
            error = SubmissionError(period_key, e.message)
        else:
            if result.succeeded:
                self.commit_log[key] = GroupStatus.COMMITTED
                persisted = (
                    len(result.created_items)
                    if result.created_items is not None
                    else group.item_count
                )
                return GroupResult(
                    period_key=period_key,
                    status=GroupStatus.COMMITTED,
                    idempotency_key=key,
                    item_count=group.item_count,
                    persisted_count=persisted,
                )
            error = SubmissionError(
                period_key, result.message or f"Failed to create {self.kind.value} records"
            )

        logger.warning("%s", error)
        self.commit_log[key] = GroupStatus.FAILED
        return GroupResult(
            period_key=period_key,
            status=GroupStatus.FAILED,
            idempotency_key=key,
            item_count=group.item_count,
            error=error,
        )

    @staticmethod
    def _aggregate(results: list[GroupResult]) -> AggregateResult:
        failures = [r for r in results if not r.succeeded]
        persisted = sum(r.persisted_count for r in results)

        if not failures:
            outcome = SubmissionOutcome.SUCCESS
        elif len(failures) == len(results):
            outcome = SubmissionOutcome.FAILED
        else:
            outcome = SubmissionOutcome.PARTIAL_FAILURE

        first_failure = failures[0].error.message if failures and failures[0].error else None
        return AggregateResult(
            outcome=outcome,
            groups=results,
            first_failure_message=first_failure,
            persisted_count=persisted,
        )
