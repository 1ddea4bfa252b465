"""Session state for one adjustment creation workflow."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any, Sequence

from payroll_adjustments.calculators.baseline_resolver import BaselineResolver, BaselineState
from payroll_adjustments.calculators.batch_expander import BatchExpander, ExpansionResult
from payroll_adjustments.calculators.types import (
    AdjustmentKind,
    AdjustmentRule,
    AdjustmentValidationError,
    AuxiliaryFields,
    Period,
)
from payroll_adjustments.schemas import EmployeeOption, RuleTypeEntry, SubDepartment
from payroll_adjustments.services.selection import ALL, diff_selection, filter_employees
from payroll_adjustments.services.staging import StagingList
from payroll_adjustments.services.submission import AggregateResult, SubmissionCoordinator

if TYPE_CHECKING:
    from payroll_adjustments.gateway.base import PayrollGateway

logger = logging.getLogger(__name__)


class AdjustmentSession:
    """Selection, baseline cache and staging list of one workflow.

    The staging list itself is immutable; the session only swaps references,
    so handlers never share a partially mutated list.

    Usage:
        session = AdjustmentSession(gateway, AdjustmentKind.ALLOWANCE)
        await session.select_employees(["emp-1", "emp-2"])
        result = session.generate(rule, ["2024-01", "2024-02"])
        session.edit_item(result.items[0].id, amount="1500")
        outcome = await session.submit()
    """

    def __init__(
        self,
        gateway: PayrollGateway,
        kind: AdjustmentKind,
        today: date | None = None,
    ):
        self.gateway = gateway
        self.kind = kind
        self.today = today
        self.resolver = BaselineResolver(gateway)
        self.coordinator = SubmissionCoordinator(gateway, kind)
        self.staging = StagingList()
        self.selected_ids: tuple[str, ...] = ()

    async def employee_options(
        self, department_id: str | None = ALL, sub_department_id: str | None = ALL
    ) -> list[EmployeeOption]:
        options = await self.gateway.get_employees_for_dropdown()
        return filter_employees(options, department_id, sub_department_id)

    async def sub_departments(self, department_id: str | None) -> list[SubDepartment]:
        if department_id is None or department_id in ("", ALL):
            return []
        return await self.gateway.get_sub_departments_by_department(department_id)

    async def catalog(self) -> list[RuleTypeEntry]:
        return await self.gateway.get_rule_types(self.kind)

    async def select_employees(self, employee_ids: Sequence[str]) -> dict[str, BaselineState]:
        """Replace the selection.

        Items and cached baselines of deselected employees are dropped; newly
        selected employees are resolved concurrently.
        """
        added, removed = diff_selection(self.selected_ids, employee_ids)
        self.selected_ids = tuple(dict.fromkeys(employee_ids))
        if removed:
            self.staging = self.staging.retain_employees(self.selected_ids)
            self.resolver.discard(removed)

        states = await self.resolver.resolve_many(added)
        # Lookups that finished after another selection change are stale
        self.resolver.discard(emp_id for emp_id in states if emp_id not in self.selected_ids)
        self.staging = self.staging.refresh_unresolved(self.resolver.snapshot())
        return self.resolver.snapshot(self.selected_ids)

    def generate(
        self,
        rule: AdjustmentRule,
        periods: Sequence[Period | str] = (),
        auxiliary: AuxiliaryFields | None = None,
    ) -> ExpansionResult:
        """Expand rule for the current selection and stage the new items.

        Employees whose baseline is still pending get items flagged unresolved.

        Raises:
            AdjustmentValidationError: Invalid rule, empty selection, or a
                rule of another adjustment kind.
        """
        if rule.kind is not self.kind:
            raise AdjustmentValidationError(
                f"Rule kind {rule.kind.value} does not match session kind {self.kind.value}"
            )
        result = BatchExpander.expand(
            rule,
            self.selected_ids,
            periods,
            existing_keys=self.staging.keys(),
            baselines=self.resolver.snapshot(self.selected_ids),
            auxiliary=auxiliary,
            disambiguator=self.staging.generation,
            today=self.today,
        )
        if result.items:
            self.staging = self.staging.add(result.items)
        logger.info("%s", result.summary())
        return result

    def edit_item(self, item_id: str, **changes: Any) -> None:
        self.staging = self.staging.update(item_id, **changes)

    def remove_item(self, item_id: str) -> None:
        self.staging = self.staging.remove(item_id)

    async def refresh(self) -> int:
        """Retry failed lookups and compute amounts of unresolved items.

        Returns the number of items still unresolved.
        """
        await self.resolver.retry_failed()
        await self.resolver.resolve_many(self.selected_ids)
        self.staging = self.staging.refresh_unresolved(self.resolver.snapshot())
        return len(self.staging.unresolved())

    async def submit(self) -> AggregateResult:
        """Submit the staging list; cleared only when every group succeeded."""
        result = await self.coordinator.submit(self.staging)
        if result.success:
            self.staging = StagingList(generation=self.staging.generation)
        return result
