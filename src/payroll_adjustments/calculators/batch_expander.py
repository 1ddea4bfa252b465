"""Expansion of a rule over employees and periods into line items."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from payroll_adjustments.calculators.baseline_resolver import BaselineState
from payroll_adjustments.calculators.calculator import Calculator
from payroll_adjustments.calculators.types import (
    AdjustmentLineItem,
    AdjustmentRule,
    AdjustmentValidationError,
    AuxiliaryFields,
    Category,
    LineItemKey,
    Period,
)


@dataclass
class ExpansionResult:
    """Items added by one expansion and the number of staged duplicates skipped."""

    items: list[AdjustmentLineItem] = field(default_factory=list)
    skipped: int = 0

    @property
    def added(self) -> int:
        return len(self.items)

    def summary(self) -> str:
        if not self.items:
            return "All selected employees already have this adjustment added"
        message = f"Added {self.added} line item(s)"
        if self.skipped:
            message += f", {self.skipped} already present"
        return message


class BatchExpander:
    """Builds line items for the cross product of employees and periods.

    Identity of an item is (employee, period, rule kind). Keys already staged
    are skipped, never recomputed.
    """

    @staticmethod
    def compute_item_id(key: LineItemKey, disambiguator: int = 0) -> str:
        """Deterministic item id from identity key plus disambiguator."""
        canonical = {
            "employee_id": key.employee_id,
            "period": key.period_key,
            "rule_kind": key.rule_kind,
            "n": disambiguator,
        }
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def target_periods(
        rule: AdjustmentRule,
        periods: Sequence[Period | str],
        today: date | None = None,
    ) -> list[Period]:
        """Periods a rule expands against.

        Recurring rules ignore the selection and use one synthetic period.
        """
        category = rule.category
        if category is Category.RECURRING:
            return [Period.current(today)]
        if category is Category.ONE_TIME:
            return list(dict.fromkeys(Period.parse(p) for p in periods))
        raise AssertionError(f"Unhandled category: {category!r}")

    @staticmethod
    def validate_request(
        rule: AdjustmentRule,
        employee_ids: Sequence[str],
        periods: Sequence[Period | str],
    ) -> None:
        """Raise AdjustmentValidationError before any expansion is attempted."""
        errors = rule.validation_errors()
        if not employee_ids:
            errors.append("Please select at least one employee")
        if rule.category is Category.ONE_TIME and not periods:
            errors.append("Please select at least one month")
        if errors:
            raise AdjustmentValidationError(errors)

    @staticmethod
    def expand(
        rule: AdjustmentRule,
        employee_ids: Sequence[str],
        periods: Sequence[Period | str],
        existing_keys: Iterable[LineItemKey] = (),
        baselines: Mapping[str, BaselineState] | None = None,
        auxiliary: AuxiliaryFields | None = None,
        disambiguator: int = 0,
        today: date | None = None,
    ) -> ExpansionResult:
        """Expand rule over employee_ids x periods.

        Args:
            rule: Validated adjustment rule; snapshotted into every item.
            employee_ids: Selected employees, in display order.
            periods: Chosen periods (ignored for recurring rules).
            existing_keys: Keys already staged in this session.
            baselines: Resolver states by employee id; missing means pending.
            auxiliary: Fields copied onto every new item.
            disambiguator: Mixed into item ids so repeated expansions differ.
            today: Clock override for the synthetic recurring period.

        Raises:
            AdjustmentValidationError: Invalid rule or empty selection.
        """
        BatchExpander.validate_request(rule, employee_ids, periods)
        auxiliary = auxiliary or AuxiliaryFields()
        aux_errors = auxiliary.validation_errors()
        if aux_errors:
            raise AdjustmentValidationError(aux_errors)

        baselines = baselines or {}
        seen = set(existing_keys)
        result = ExpansionResult()

        for employee_id in dict.fromkeys(employee_ids):
            state = baselines.get(employee_id, BaselineState.pending())
            baseline: Decimal | None = state.value if state.is_resolved else None

            for period in BatchExpander.target_periods(rule, periods, today):
                key = LineItemKey(employee_id, period.key, rule.kind_key)
                if key in seen:
                    result.skipped += 1
                    continue
                seen.add(key)

                outcome = Calculator.line_amount(baseline, rule)
                result.items.append(
                    AdjustmentLineItem(
                        id=BatchExpander.compute_item_id(key, disambiguator),
                        employee_id=employee_id,
                        period=period,
                        rule=rule,
                        baseline=baseline,
                        computed_amount=outcome.amount,
                        flags=outcome.flags,
                        auxiliary=auxiliary,
                        employee_name=state.display_name,
                        employee_code=state.code,
                    )
                )

        return result
