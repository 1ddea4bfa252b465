"""Editing of previously created adjustment records."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any

from payroll_adjustments.calculators.batch_expander import BatchExpander
from payroll_adjustments.calculators.calculator import Calculator
from payroll_adjustments.calculators.types import (
    AdjustmentLineItem,
    AdjustmentRule,
    AmountBasis,
    AuxiliaryFields,
    LineItemKey,
    Period,
    as_decimal,
)


class LineItemEditor:
    """Edit session over one stored record.

    The stored amount of an increment is the post-adjustment salary, so the
    prior baseline is reverse-derived from it. Changing the rule afterwards
    recomputes from that derived baseline, never from the stored amount.
    """

    def __init__(self, item: AdjustmentLineItem):
        self.item = item

    @classmethod
    def from_record(
        cls,
        record_id: str,
        employee_id: str,
        period: Period | str,
        stored_amount: Any,
        rule: AdjustmentRule,
        auxiliary: AuxiliaryFields | None = None,
        employee_name: str = "",
    ) -> LineItemEditor:
        """Load a stored record and derive its baseline.

        Raises:
            AdjustmentValidationError: Invalid rule, including a 100%
                percentage decrement which has no inverse.
        """
        rule.validate()
        amount = as_decimal(stored_amount)
        basis = rule.kind.amount_basis
        if basis is AmountBasis.RESULTING:
            baseline: Decimal | None = Calculator.reverse_baseline(amount, rule)
        elif basis is AmountBasis.ADJUSTMENT:
            baseline = Calculator.reverse_baseline_from_adjustment(amount, rule)
        else:
            raise AssertionError(f"Unhandled amount basis: {basis!r}")

        item = AdjustmentLineItem(
            id=record_id,
            employee_id=employee_id,
            period=Period.parse(period),
            rule=rule,
            baseline=baseline,
            computed_amount=Calculator.round_to_cents(amount),
            auxiliary=auxiliary or AuxiliaryFields(),
            employee_name=employee_name,
        )
        return cls(item)

    @property
    def baseline(self) -> Decimal | None:
        return self.item.baseline

    @property
    def amount(self) -> Decimal | None:
        return self.item.computed_amount

    @property
    def key(self) -> LineItemKey:
        return self.item.key

    def with_rule(self, rule: AdjustmentRule) -> LineItemEditor:
        """Recompute the amount for a new rule from the derived baseline."""
        rule.validate()
        outcome = Calculator.line_amount(self.item.baseline, rule)
        return LineItemEditor(
            replace(self.item, rule=rule, computed_amount=outcome.amount, flags=outcome.flags)
        )

    def with_value(self, value: Any) -> LineItemEditor:
        """Recompute after the user changes the rule value."""
        return self.with_rule(self.item.rule.with_value(value))

    def with_amount(self, amount: Any) -> LineItemEditor:
        """Manual override; the rule and baseline are left as they are."""
        return LineItemEditor(
            replace(
                self.item,
                computed_amount=Calculator.round_to_cents(as_decimal(amount)),
                flags=frozenset(),
            )
        )

    def to_line_item(self, disambiguator: int = 0) -> AdjustmentLineItem:
        """Snapshot for re-staging under a fresh deterministic id."""
        return replace(
            self.item, id=BatchExpander.compute_item_id(self.item.key, disambiguator)
        )
