"""Session-scoped baseline (salary) resolution with caching."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from payroll_adjustments.gateway.base import GatewayError

if TYPE_CHECKING:
    from payroll_adjustments.gateway.base import PayrollGateway

logger = logging.getLogger(__name__)


class ResolutionError(Exception):
    """Raised when an employee's baseline cannot be obtained."""

    def __init__(self, employee_id: str, reason: str):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Could not resolve baseline for employee {employee_id}: {reason}")


class BaselineStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class BaselineState:
    """Current knowledge about one employee's baseline.

    A pending or failed state carries no value; it is never read as zero.
    """

    status: BaselineStatus
    value: Decimal | None = None
    error: str | None = None
    display_name: str = ""
    code: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.status is BaselineStatus.RESOLVED

    @classmethod
    def pending(cls) -> BaselineState:
        return cls(BaselineStatus.PENDING)


class BaselineResolver:
    """Resolves employee baselines from the employee directory.

    - One lookup per employee per session unless invalidated
    - Concurrent callers for the same employee share one in-flight lookup
    - New employees are resolved concurrently; one failure does not affect
      the others
    """

    def __init__(self, gateway: PayrollGateway):
        self.gateway = gateway
        self._cache: dict[str, BaselineState] = {}
        self._in_flight: dict[str, asyncio.Task[BaselineState]] = {}

    def peek(self, employee_id: str) -> BaselineState:
        """Return cached state without triggering a lookup."""
        return self._cache.get(employee_id, BaselineState.pending())

    def snapshot(self, employee_ids: Iterable[str] | None = None) -> dict[str, BaselineState]:
        """Return cached states for the given employees (all if None)."""
        if employee_ids is None:
            return dict(self._cache)
        return {emp_id: self.peek(emp_id) for emp_id in employee_ids}

    async def resolve(self, employee_id: str) -> BaselineState:
        """Resolve one employee's baseline, using the cache when possible."""
        cached = self._cache.get(employee_id)
        if cached is not None:
            return cached

        task = self._in_flight.get(employee_id)
        if task is None:
            task = asyncio.ensure_future(self._lookup(employee_id))
            self._in_flight[employee_id] = task
        return await asyncio.shield(task)

    async def resolve_many(self, employee_ids: Iterable[str]) -> dict[str, BaselineState]:
        """Resolve several employees concurrently."""
        ids = list(dict.fromkeys(employee_ids))
        states = await asyncio.gather(*(self.resolve(emp_id) for emp_id in ids))
        return dict(zip(ids, states))

    async def _lookup(self, employee_id: str) -> BaselineState:
        try:
            try:
                detail = await self.gateway.get_employee_by_id(employee_id)
            except GatewayError as e:
                raise ResolutionError(employee_id, e.message) from e

            if detail.baseline_value is None:
                raise ResolutionError(employee_id, "employee has no salary on record")

            state = BaselineState(
                BaselineStatus.RESOLVED,
                value=Decimal(detail.baseline_value),
                display_name=detail.display_name,
                code=detail.code,
            )
        except ResolutionError as e:
            logger.warning("%s", e)
            state = BaselineState(BaselineStatus.FAILED, error=e.reason)
        finally:
            self._in_flight.pop(employee_id, None)

        # A lookup finishing after invalidate() still lands in the cache;
        # it is the freshest data available
        self._cache[employee_id] = state
        return state

    def invalidate(self, employee_ids: Iterable[str] | None = None) -> None:
        """Forget cached baselines so the next resolve() fetches again."""
        if employee_ids is None:
            self._cache.clear()
            return
        for emp_id in employee_ids:
            self._cache.pop(emp_id, None)

    def discard(self, employee_ids: Iterable[str]) -> None:
        """Drop entries for employees no longer selected."""
        self.invalidate(employee_ids)

    def failed_ids(self) -> list[str]:
        return [
            emp_id
            for emp_id, state in self._cache.items()
            if state.status is BaselineStatus.FAILED
        ]

    async def retry_failed(self) -> dict[str, BaselineState]:
        """Re-request every employee whose lookup failed."""
        failed = self.failed_ids()
        self.invalidate(failed)
        return await self.resolve_many(failed)
