"""Tests for batch expansion."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from payroll_adjustments.calculators.baseline_resolver import (
    BaselineState,
    BaselineStatus,
)
from payroll_adjustments.calculators.batch_expander import BatchExpander
from payroll_adjustments.calculators.types import (
    AdjustmentValidationError,
    AuxiliaryFields,
    Category,
    LineItemFlag,
    Period,
)

PERIODS = ["2024-01", "2024-02", "2024-03"]


def resolved(value):
    return BaselineState(BaselineStatus.RESOLVED, value=Decimal(value))


@pytest.fixture
def baselines():
    return {
        "emp-1": resolved("50000"),
        "emp-2": resolved("80000"),
        "emp-3": resolved("30000"),
    }


class TestBatchExpander:
    """Test cross-product expansion and duplicate skipping."""

    def test_cross_product_size_and_distinct_keys(self, increment_rule, baselines):
        employees = ["emp-1", "emp-2", "emp-3"]

        result = BatchExpander.expand(increment_rule, employees, PERIODS, baselines=baselines)

        assert result.added == 9
        assert result.skipped == 0
        assert len({item.key for item in result.items}) == 9
        assert len({item.id for item in result.items}) == 9

    def test_iteration_order_is_employees_then_periods(self, increment_rule, baselines):
        result = BatchExpander.expand(
            increment_rule, ["emp-2", "emp-1"], ["2024-01", "2024-02"], baselines=baselines
        )
        assert [(i.employee_id, i.period.key) for i in result.items] == [
            ("emp-2", "2024-01"),
            ("emp-2", "2024-02"),
            ("emp-1", "2024-01"),
            ("emp-1", "2024-02"),
        ]

    def test_amounts_computed_from_baseline(self, increment_rule, baselines):
        result = BatchExpander.expand(increment_rule, ["emp-1"], ["2024-01"], baselines=baselines)

        item = result.items[0]
        assert item.baseline == Decimal("50000")
        assert item.computed_amount == Decimal("55000.00")
        assert item.rule == increment_rule

    def test_overlap_is_skipped(self, increment_rule, baselines):
        first = BatchExpander.expand(
            increment_rule, ["emp-1", "emp-2"], ["2024-01"], baselines=baselines
        )
        existing = {item.key for item in first.items}

        second = BatchExpander.expand(
            increment_rule,
            ["emp-1", "emp-2", "emp-3"],
            ["2024-01", "2024-02"],
            existing_keys=existing,
            baselines=baselines,
            disambiguator=1,
        )

        assert second.skipped == 2
        assert second.added == 4
        assert {(i.employee_id, i.period.key) for i in second.items} == {
            ("emp-1", "2024-02"),
            ("emp-2", "2024-02"),
            ("emp-3", "2024-01"),
            ("emp-3", "2024-02"),
        }

    def test_full_overlap_adds_nothing(self, deduction_rule, baselines):
        first = BatchExpander.expand(deduction_rule, ["emp-1"], ["2024-01"], baselines=baselines)

        second = BatchExpander.expand(
            deduction_rule,
            ["emp-1"],
            ["2024-01"],
            existing_keys={i.key for i in first.items},
            baselines=baselines,
        )

        assert second.items == []
        assert second.skipped == 1
        assert "already" in second.summary()

    def test_different_catalog_entry_is_not_a_duplicate(self, deduction_rule, baselines):
        first = BatchExpander.expand(deduction_rule, ["emp-1"], ["2024-01"], baselines=baselines)
        other = replace(deduction_rule, rule_type_id="ded-advance")

        second = BatchExpander.expand(
            other, ["emp-1"], ["2024-01"], existing_keys={i.key for i in first.items}
        )
        assert second.added == 1

    def test_no_employees_is_validation_error(self, increment_rule):
        with pytest.raises(AdjustmentValidationError, match="at least one employee"):
            BatchExpander.expand(increment_rule, [], PERIODS)

    def test_one_time_without_periods_is_validation_error(self, increment_rule):
        with pytest.raises(AdjustmentValidationError, match="at least one month"):
            BatchExpander.expand(increment_rule, ["emp-1"], [])

    def test_invalid_rule_is_validation_error(self, increment_rule):
        bad = increment_rule.with_value("150")
        with pytest.raises(AdjustmentValidationError):
            BatchExpander.expand(bad, ["emp-1"], PERIODS)

    def test_recurring_uses_one_synthetic_period(self, recurring_allowance_rule):
        result = BatchExpander.expand(
            recurring_allowance_rule,
            ["emp-1", "emp-2"],
            PERIODS,
            today=date(2024, 6, 10),
        )

        assert result.added == 2
        assert all(item.period.key == "2024-06" for item in result.items)
        assert all(item.period.synthetic for item in result.items)
        # Fixed allowances need no baseline
        assert all(item.computed_amount == Decimal("5000.00") for item in result.items)

    def test_recurring_and_one_time_same_month_are_distinct(self, recurring_allowance_rule):
        one_time = replace(recurring_allowance_rule, category=Category.ONE_TIME)
        first = BatchExpander.expand(one_time, ["emp-1"], ["2024-06"])

        second = BatchExpander.expand(
            recurring_allowance_rule,
            ["emp-1"],
            [],
            existing_keys={i.key for i in first.items},
            disambiguator=1,
            today=date(2024, 6, 10),
        )

        assert second.added == 1
        assert second.skipped == 0
        assert second.items[0].period == first.items[0].period
        assert second.items[0].key != first.items[0].key

    def test_recurring_repeat_is_skipped(self, recurring_allowance_rule):
        first = BatchExpander.expand(
            recurring_allowance_rule, ["emp-1"], [], today=date(2024, 6, 10)
        )
        second = BatchExpander.expand(
            recurring_allowance_rule,
            ["emp-1"],
            [],
            existing_keys={i.key for i in first.items},
            today=date(2024, 6, 10),
        )
        assert second.skipped == 1

    def test_recurring_without_period_selection(self, recurring_allowance_rule):
        result = BatchExpander.expand(recurring_allowance_rule, ["emp-1"], [])
        assert result.added == 1

    def test_pending_baseline_marks_item_unresolved(self, increment_rule):
        result = BatchExpander.expand(increment_rule, ["emp-1"], ["2024-01"])

        item = result.items[0]
        assert item.computed_amount is None
        assert item.baseline is None
        assert LineItemFlag.UNRESOLVED in item.flags

    def test_failed_baseline_marks_item_unresolved(self, increment_rule):
        failed = {"emp-1": BaselineState(BaselineStatus.FAILED, error="boom")}
        result = BatchExpander.expand(increment_rule, ["emp-1"], ["2024-01"], baselines=failed)
        assert result.items[0].flags == {LineItemFlag.UNRESOLVED}

    def test_item_ids_are_deterministic(self, increment_rule, baselines):
        a = BatchExpander.expand(increment_rule, ["emp-1"], ["2024-01"], baselines=baselines)
        b = BatchExpander.expand(increment_rule, ["emp-1"], ["2024-01"], baselines=baselines)
        c = BatchExpander.expand(
            increment_rule, ["emp-1"], ["2024-01"], baselines=baselines, disambiguator=1
        )

        assert a.items[0].id == b.items[0].id
        assert a.items[0].id != c.items[0].id

    def test_auxiliary_fields_copied(self, deduction_rule):
        aux = AuxiliaryFields(is_taxable=True, tax_percentage="5", notes="Loan installment")
        result = BatchExpander.expand(deduction_rule, ["emp-1"], [Period(2024, 1)], auxiliary=aux)
        assert result.items[0].auxiliary == aux

    def test_invalid_auxiliary_rejected(self, deduction_rule):
        aux = AuxiliaryFields(is_taxable=True, tax_percentage="101")
        with pytest.raises(AdjustmentValidationError):
            BatchExpander.expand(deduction_rule, ["emp-1"], PERIODS, auxiliary=aux)
