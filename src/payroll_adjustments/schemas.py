"""Pydantic schemas for gateway request/response payloads."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

if TYPE_CHECKING:
    from payroll_adjustments.calculators.types import AdjustmentLineItem, Period

# Decimal on the Python side, a JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class GatewayModel(BaseModel):
    """Base schema accepting both camelCase wire names and snake_case."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ============================================================================
# Master data schemas
# ============================================================================


class EmployeeOption(GatewayModel):
    """Employee entry of the selection dropdown."""

    id: str
    display_name: str = Field(default="", alias="employeeName")
    code: str = Field(default="", alias="employeeId")
    department_id: str | None = Field(default=None, alias="departmentId")
    sub_department_id: str | None = Field(default=None, alias="subDepartmentId")
    department_name: str | None = Field(default=None, alias="departmentName")


class EmployeeDetail(GatewayModel):
    """Employee detail record; only the fields this engine reads."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    display_name: str = Field(default="", alias="employeeName")
    code: str = Field(default="", alias="employeeId")
    baseline_value: Money | None = Field(default=None, alias="employeeSalary")
    grade_id: str | None = Field(default=None, alias="employeeGradeId")
    designation_id: str | None = Field(default=None, alias="designationId")


class SubDepartment(GatewayModel):
    id: str
    name: str


class RuleTypeEntry(GatewayModel):
    """Catalog entry: allowance head, deduction head, bonus type or grade."""

    id: str
    name: str
    calculation_method: str = Field(default="Amount", alias="calculationMethod")
    fixed_amount: Money | None = Field(default=None, alias="fixedAmount")
    fixed_percentage: Money | None = Field(default=None, alias="fixedPercentage")
    status: str | None = None


# ============================================================================
# Batch creation schemas
# ============================================================================


class PeriodPayload(GatewayModel):
    month: str
    year: str

    @classmethod
    def from_period(cls, period: Period) -> PeriodPayload:
        return cls(**period.to_payload())


class BatchItem(GatewayModel):
    """One line item as sent to a batch endpoint."""

    # Kind-specific auxiliary fields pass through as extras
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    employee_id: str = Field(alias="employeeId")
    rule_type_id: str | None = Field(default=None, alias="ruleTypeId")
    amount: Money
    percentage: Money | None = None
    is_taxable: bool = Field(default=False, alias="isTaxable")
    tax_percentage: Money | None = Field(default=None, alias="taxPercentage")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    adjustment_method: str | None = Field(default=None, alias="adjustmentMethod")
    notes: str | None = None

    @classmethod
    def from_line_item(cls, item: AdjustmentLineItem) -> BatchItem:
        return cls.model_validate(item.to_payload())


class BatchCreateRequest(GatewayModel):
    """Request body for one period's batch."""

    period: PeriodPayload
    items: list[BatchItem]
    idempotency_key: str | None = Field(default=None, alias="idempotencyKey")
    date: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class BatchCreateResult(GatewayModel):
    """Outcome reported by a batch endpoint."""

    succeeded: bool
    message: str | None = None
    created_items: list[dict[str, Any]] | None = None
