#!/usr/bin/env python
"""Adjustments Minimal Example - Library-first demonstration.

Walks one bulk workflow end to end:
1. Select employees (baselines resolve concurrently)
2. Generate line items for a rule across several months
3. Edit one staged item
4. Submit one batch per month and print the aggregate result

Usage:
    # In-memory backend, one rejected month:
    python main.py --reject-month 2024-02

    # Against a running backend (API_BASE_URL / API_TOKEN from .env):
    python main.py --live --kind deduction --rule-type ded-loan --value 2000
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal

from payroll_adjustments.calculators.types import (
    AdjustmentKind,
    AdjustmentRule,
    AdjustmentValidationError,
    Direction,
    Method,
)
from payroll_adjustments.config import configure_logging, get_settings
from payroll_adjustments.gateway import HttpPayrollGateway, InMemoryPayrollGateway
from payroll_adjustments.services.session import AdjustmentSession


def print_header(title: str) -> None:
    print()
    print("=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_step(step: int, description: str) -> None:
    print()
    print(f"[Step {step}] {description}")
    print("-" * 40)


def demo_gateway(reject_months: list[str]) -> InMemoryPayrollGateway:
    gateway = InMemoryPayrollGateway(latency=0.05)
    gateway.add_employee("emp-1", "Alice Khan", Decimal("50000"), department_id="dep-eng")
    gateway.add_employee("emp-2", "Bilal Ahmed", Decimal("80000"), department_id="dep-eng")
    gateway.add_employee("emp-3", "Sara Malik", Decimal("30000"), department_id="dep-hr")
    for month in reject_months:
        gateway.rejected_periods[month] = f"Payroll for {month} is locked"
    return gateway


async def run_demo(gateway, args: argparse.Namespace) -> int:
    kind = AdjustmentKind(args.kind)
    session = AdjustmentSession(gateway, kind)
    currency = get_settings().currency

    print_header(f"Bulk {kind.value} adjustment")

    print_step(1, "Select employees")
    options = await session.employee_options(args.department)
    states = await session.select_employees([o.id for o in options])
    for emp_id, state in states.items():
        shown = f"{currency} {state.value:,.2f}" if state.is_resolved else state.status.value
        print(f"  {state.display_name or emp_id}: {shown}")

    print_step(2, "Generate line items")
    rule = AdjustmentRule(
        direction=Direction(args.direction),
        method=Method(args.method),
        value=Decimal(args.value),
        kind=kind,
        rule_type_id=args.rule_type,
    )
    result = session.generate(rule, args.months)
    print(f"  {result.summary()}")

    print_step(3, "Edit the first item")
    first = session.staging.items[0]
    if first.computed_amount is not None:
        session.edit_item(first.id, amount=first.computed_amount + 100)
    for item in session.staging:
        amount = "unresolved" if item.computed_amount is None else f"{item.computed_amount:,.2f}"
        print(f"  {item.employee_name or item.employee_id} {item.period}: {amount}")
    print(f"  Total: {currency} {session.staging.total():,.2f}")

    print_step(4, "Submit one batch per month")
    try:
        outcome = await session.submit()
    except AdjustmentValidationError as e:
        for error in e.errors:
            print(f"  BLOCKED: {error}")
        return 1
    print(f"  {outcome.summary()}")
    for group in outcome.groups:
        print(f"    - {group.period_key}: {group.status.value} ({group.item_count} item(s))")
    return 0 if outcome.success else 2


async def run(args: argparse.Namespace) -> int:
    if args.live:
        async with HttpPayrollGateway() as gateway:
            return await run_demo(gateway, args)
    return await run_demo(demo_gateway(args.reject_month), args)


def main() -> int:
    """Entry point."""
    parser = argparse.ArgumentParser(
        description="Bulk payroll adjustment demonstration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--live", action="store_true", help="Use the HTTP backend")
    parser.add_argument(
        "--kind", default="increment", choices=[k.value for k in AdjustmentKind]
    )
    parser.add_argument("--direction", default="Increment", choices=[d.value for d in Direction])
    parser.add_argument("--method", default="Percentage", choices=[m.value for m in Method])
    parser.add_argument("--value", default="10")
    parser.add_argument("--rule-type", default=None, help="Catalog entry id")
    parser.add_argument("--department", default="all")
    parser.add_argument(
        "--months", nargs="+", default=["2024-01", "2024-02", "2024-03"], help="YYYY-MM"
    )
    parser.add_argument(
        "--reject-month", action="append", default=[],
        help="Make the in-memory backend reject this month",
    )

    args = parser.parse_args()
    configure_logging()

    try:
        return asyncio.run(run(args))
    except Exception as e:
        print(f"\nERROR: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
