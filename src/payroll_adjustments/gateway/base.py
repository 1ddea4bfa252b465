"""Base protocol for the payroll backend collaborators.

All backend adapters must implement the PayrollGateway protocol. The engine
uses these adapters without knowing how master data is stored or how batches
are persisted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from payroll_adjustments.calculators.types import AdjustmentKind
    from payroll_adjustments.schemas import (
        BatchCreateRequest,
        BatchCreateResult,
        EmployeeDetail,
        EmployeeOption,
        RuleTypeEntry,
        SubDepartment,
    )


class GatewayError(Exception):
    """Raised when a backend call fails or returns an error envelope."""

    def __init__(self, operation: str, message: str, status_code: int | None = None):
        self.operation = operation
        self.message = message
        self.status_code = status_code
        detail = f"{operation} failed: {message}"
        if status_code is not None:
            detail += f" (HTTP {status_code})"
        super().__init__(detail)


class PayrollGateway(Protocol):
    """Protocol for backend adapters."""

    async def get_employee_by_id(self, employee_id: str) -> EmployeeDetail:
        """Fetch one employee's detail record, including the salary baseline.

        Raises:
            GatewayError: If the employee cannot be fetched.
        """
        ...

    async def get_employees_for_dropdown(self) -> list[EmployeeOption]:
        """List active employees for selection."""
        ...

    async def get_sub_departments_by_department(
        self, department_id: str
    ) -> list[SubDepartment]:
        """List sub-departments of a department."""
        ...

    async def get_rule_types(self, kind: AdjustmentKind) -> list[RuleTypeEntry]:
        """List catalog entries for an adjustment kind.

        Allowance heads, deduction heads, bonus types, or employee grades for
        increments.
        """
        ...

    async def create_batch(
        self, kind: AdjustmentKind, request: BatchCreateRequest
    ) -> BatchCreateResult:
        """Persist one period's batch of line items.

        Args:
            kind: Which adjustment endpoint receives the batch.
            request: Period, items and idempotency key.

        Returns:
            BatchCreateResult; a server-side rejection is reported with
            succeeded=False rather than raised.

        Raises:
            GatewayError: On transport failure.
        """
        ...
