"""In-process gateway stub for demos and tests.

Mirrors a backend that stores batches in memory. Deduplicates batches by
idempotency key so retried submissions do not create items twice.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from payroll_adjustments.calculators.types import AdjustmentKind
from payroll_adjustments.gateway.base import GatewayError
from payroll_adjustments.schemas import (
    BatchCreateRequest,
    BatchCreateResult,
    EmployeeDetail,
    EmployeeOption,
    RuleTypeEntry,
    SubDepartment,
)


@dataclass
class StoredBatch:
    """A batch accepted by the stub."""

    kind: AdjustmentKind
    request: BatchCreateRequest
    created_items: list[dict[str, Any]]


@dataclass
class InMemoryPayrollGateway:
    """PayrollGateway backed by plain dictionaries.

    Failure injection:
    - failing_employees: get_employee_by_id raises GatewayError for these ids
    - rejected_periods: create_batch reports failure for these YYYY-MM keys
    - latency: seconds awaited inside every call, to exercise concurrency
    """

    employees: dict[str, EmployeeDetail] = field(default_factory=dict)
    options: list[EmployeeOption] = field(default_factory=list)
    sub_departments: dict[str, list[SubDepartment]] = field(default_factory=dict)
    catalogs: dict[AdjustmentKind, list[RuleTypeEntry]] = field(default_factory=dict)

    failing_employees: set[str] = field(default_factory=set)
    rejected_periods: dict[str, str] = field(default_factory=dict)
    latency: float = 0.0

    batches: list[StoredBatch] = field(default_factory=list)
    employee_lookups: list[str] = field(default_factory=list)
    batch_calls: list[tuple[AdjustmentKind, str]] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0
    _by_idempotency_key: dict[str, StoredBatch] = field(default_factory=dict)

    def add_employee(
        self,
        employee_id: str,
        name: str,
        salary: Decimal | None,
        code: str | None = None,
        department_id: str | None = None,
        sub_department_id: str | None = None,
    ) -> None:
        """Register an employee in both the dropdown and the detail store."""
        code = code or employee_id.upper()
        self.employees[employee_id] = EmployeeDetail(
            id=employee_id,
            display_name=name,
            code=code,
            baseline_value=salary,
        )
        self.options.append(
            EmployeeOption(
                id=employee_id,
                display_name=name,
                code=code,
                department_id=department_id,
                sub_department_id=sub_department_id,
            )
        )

    async def _pause(self) -> None:
        # Always yield so concurrent callers interleave
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.latency)
        finally:
            self.in_flight -= 1

    async def get_employee_by_id(self, employee_id: str) -> EmployeeDetail:
        self.employee_lookups.append(employee_id)
        await self._pause()
        operation = f"get_employee_by_id({employee_id})"
        if employee_id in self.failing_employees:
            raise GatewayError(operation, "Backend unavailable", status_code=503)
        try:
            return self.employees[employee_id]
        except KeyError:
            raise GatewayError(operation, "Employee not found", status_code=404) from None

    async def get_employees_for_dropdown(self) -> list[EmployeeOption]:
        await self._pause()
        return list(self.options)

    async def get_sub_departments_by_department(
        self, department_id: str
    ) -> list[SubDepartment]:
        await self._pause()
        return list(self.sub_departments.get(department_id, []))

    async def get_rule_types(self, kind: AdjustmentKind) -> list[RuleTypeEntry]:
        await self._pause()
        return list(self.catalogs.get(kind, []))

    async def create_batch(
        self, kind: AdjustmentKind, request: BatchCreateRequest
    ) -> BatchCreateResult:
        period_key = f"{request.period.year}-{request.period.month}"
        self.batch_calls.append((kind, period_key))
        await self._pause()

        if period_key in self.rejected_periods:
            return BatchCreateResult(
                succeeded=False, message=self.rejected_periods[period_key]
            )

        key = request.idempotency_key
        if key and key in self._by_idempotency_key:
            stored = self._by_idempotency_key[key]
            return BatchCreateResult(
                succeeded=True,
                message="Batch already created",
                created_items=stored.created_items,
            )

        created = [
            {"id": f"{kind.value}-{len(self.batches)}-{index}", **item.model_dump(mode="json")}
            for index, item in enumerate(request.items)
        ]
        stored = StoredBatch(kind=kind, request=request, created_items=created)
        self.batches.append(stored)
        if key:
            self._by_idempotency_key[key] = stored
        return BatchCreateResult(
            succeeded=True,
            message=f"Created {len(created)} {kind.value} record(s)",
            created_items=created,
        )
