"""Pytest fixtures for payroll adjustment tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from payroll_adjustments.calculators.types import (
    AdjustmentKind,
    AdjustmentRule,
    Category,
    Direction,
    Method,
)
from payroll_adjustments.gateway.memory import InMemoryPayrollGateway
from payroll_adjustments.schemas import RuleTypeEntry, SubDepartment

TODAY = date(2024, 3, 15)


@pytest.fixture
def gateway() -> InMemoryPayrollGateway:
    """In-memory backend with three employees and catalogs for every kind."""
    gw = InMemoryPayrollGateway()
    gw.add_employee("emp-1", "Alice Khan", Decimal("50000"), code="EMP001",
                    department_id="dep-eng", sub_department_id="sub-backend")
    gw.add_employee("emp-2", "Bilal Ahmed", Decimal("80000"), code="EMP002",
                    department_id="dep-eng", sub_department_id="sub-frontend")
    gw.add_employee("emp-3", "Sara Malik", Decimal("30000"), code="EMP003",
                    department_id="dep-hr", sub_department_id=None)

    gw.sub_departments["dep-eng"] = [
        SubDepartment(id="sub-backend", name="Backend"),
        SubDepartment(id="sub-frontend", name="Frontend"),
    ]
    gw.catalogs[AdjustmentKind.ALLOWANCE] = [
        RuleTypeEntry(id="alw-fuel", name="Fuel", calculation_method="Amount",
                      fixed_amount=Decimal("5000")),
    ]
    gw.catalogs[AdjustmentKind.DEDUCTION] = [
        RuleTypeEntry(id="ded-loan", name="Loan", calculation_method="Amount"),
    ]
    gw.catalogs[AdjustmentKind.BONUS] = [
        RuleTypeEntry(id="bon-eid", name="Eid Bonus", calculation_method="Percentage",
                      fixed_percentage=Decimal("10")),
    ]
    return gw


@pytest.fixture
def increment_rule() -> AdjustmentRule:
    """10% increment."""
    return AdjustmentRule(
        direction=Direction.INCREMENT,
        method=Method.PERCENTAGE,
        value=Decimal("10"),
        kind=AdjustmentKind.INCREMENT,
        rule_type_id="grade-a",
    )


@pytest.fixture
def deduction_rule() -> AdjustmentRule:
    """Fixed 2000 deduction."""
    return AdjustmentRule(
        direction=Direction.DECREMENT,
        method=Method.AMOUNT,
        value=Decimal("2000"),
        kind=AdjustmentKind.DEDUCTION,
        rule_type_id="ded-loan",
    )


@pytest.fixture
def recurring_allowance_rule() -> AdjustmentRule:
    return AdjustmentRule(
        direction=Direction.INCREMENT,
        method=Method.AMOUNT,
        value=Decimal("5000"),
        category=Category.RECURRING,
        kind=AdjustmentKind.ALLOWANCE,
        rule_type_id="alw-fuel",
    )
