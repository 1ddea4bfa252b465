"""Staging list of generated line items awaiting submission."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable, Iterator, Mapping

from payroll_adjustments.calculators.baseline_resolver import BaselineState
from payroll_adjustments.calculators.calculator import Calculator
from payroll_adjustments.calculators.types import (
    AdjustmentLineItem,
    AdjustmentValidationError,
    LineItemFlag,
    LineItemKey,
    as_decimal,
)

_UNSET: Any = object()


@dataclass(frozen=True)
class StagingList:
    """Immutable collection of staged line items.

    Every mutation returns a new StagingList. Items are snapshots: editing one
    never recomputes its siblings or re-derives it from the originating rule.
    """

    items: tuple[AdjustmentLineItem, ...] = ()
    # Number of expansions applied so far; used to disambiguate item ids
    generation: int = 0

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[AdjustmentLineItem]:
        return iter(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)

    def keys(self) -> set[LineItemKey]:
        return {item.key for item in self.items}

    def get(self, item_id: str) -> AdjustmentLineItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def add(self, new_items: Iterable[AdjustmentLineItem]) -> StagingList:
        """Append items produced by one expansion."""
        new_items = list(new_items)
        keys = self.keys()
        for item in new_items:
            if item.key in keys:
                raise AdjustmentValidationError(
                    f"Employee {item.employee_id} already has this adjustment for {item.period}"
                )
            keys.add(item.key)
        return replace(self, items=self.items + tuple(new_items), generation=self.generation + 1)

    def update(
        self,
        item_id: str,
        amount: Any = _UNSET,
        rule_type_id: Any = _UNSET,
        **auxiliary_changes: Any,
    ) -> StagingList:
        """Edit one item.

        Args:
            item_id: Item to edit.
            amount: Manual amount override; clears unresolved/manual review.
            rule_type_id: Switch the catalog entry the item references.
            **auxiliary_changes: Fields of AuxiliaryFields to replace.

        Raises:
            KeyError: Unknown item id.
            AdjustmentValidationError: Invalid value or key collision.
        """
        item = self.get(item_id)
        changes: dict[str, Any] = {}

        if amount is not _UNSET:
            new_amount = Calculator.round_to_cents(as_decimal(amount))
            flags = set(item.flags) - {
                LineItemFlag.UNRESOLVED,
                LineItemFlag.MANUAL_REVIEW,
                LineItemFlag.NEGATIVE_RESULT,
            }
            if new_amount < 0:
                flags.add(LineItemFlag.NEGATIVE_RESULT)
            changes["computed_amount"] = new_amount
            changes["flags"] = frozenset(flags)

        if rule_type_id is not _UNSET:
            new_rule = replace(item.rule, rule_type_id=rule_type_id)
            new_key = LineItemKey(item.employee_id, item.period.key, new_rule.kind_key)
            if any(other.key == new_key for other in self.items if other.id != item_id):
                raise AdjustmentValidationError(
                    f"Employee {item.employee_id} already has this adjustment for {item.period}"
                )
            changes["rule"] = new_rule

        if auxiliary_changes:
            auxiliary = replace(item.auxiliary, **auxiliary_changes)
            errors = auxiliary.validation_errors()
            if errors:
                raise AdjustmentValidationError(errors)
            changes["auxiliary"] = auxiliary

        if not changes:
            return self
        updated = replace(item, **changes)
        return replace(
            self,
            items=tuple(updated if i.id == item_id else i for i in self.items),
        )

    def remove(self, item_id: str) -> StagingList:
        """Delete a single item by id."""
        self.get(item_id)
        return replace(self, items=tuple(i for i in self.items if i.id != item_id))

    def retain_employees(self, employee_ids: Iterable[str]) -> StagingList:
        """Drop items of employees no longer selected."""
        keep = set(employee_ids)
        return replace(self, items=tuple(i for i in self.items if i.employee_id in keep))

    def refresh_unresolved(self, baselines: Mapping[str, BaselineState]) -> StagingList:
        """Compute amounts for items whose baseline has since resolved.

        Only items still flagged unresolved are touched.
        """
        refreshed: list[AdjustmentLineItem] = []
        for item in self.items:
            state = baselines.get(item.employee_id)
            if (
                LineItemFlag.UNRESOLVED in item.flags
                and state is not None
                and state.is_resolved
            ):
                outcome = Calculator.line_amount(state.value, item.rule)
                item = replace(
                    item,
                    baseline=state.value,
                    computed_amount=outcome.amount,
                    flags=(item.flags - {LineItemFlag.UNRESOLVED}) | outcome.flags,
                    employee_name=item.employee_name or state.display_name,
                    employee_code=item.employee_code or state.code,
                )
            refreshed.append(item)
        return replace(self, items=tuple(refreshed))

    def unresolved(self) -> list[AdjustmentLineItem]:
        return [i for i in self.items if not i.is_resolved]

    def total(self) -> Decimal:
        """Sum of resolved amounts."""
        return sum(
            (i.computed_amount for i in self.items if i.computed_amount is not None),
            Decimal("0"),
        )

    def submission_errors(self) -> list[str]:
        """Return list of messages blocking submission (empty if ready)."""
        if not self.items:
            return ["Please search and add at least one employee adjustment"]

        errors: list[str] = []
        for item in self.items:
            label = item.employee_name or item.employee_id
            if item.computed_amount is None:
                errors.append(f"{label} ({item.period}): amount is unresolved")
            elif item.computed_amount < 0:
                errors.append(
                    f"{label} ({item.period}): amount {item.computed_amount} is negative"
                )
            errors.extend(
                f"{label} ({item.period}): {msg}"
                for msg in item.auxiliary.validation_errors()
            )
        return errors
