"""Tests for editing stored adjustment records."""

from decimal import Decimal

import pytest

from payroll_adjustments.calculators.batch_expander import BatchExpander
from payroll_adjustments.calculators.types import (
    AdjustmentKind,
    AdjustmentRule,
    AdjustmentValidationError,
    Direction,
    LineItemKey,
    Method,
)
from payroll_adjustments.services.edit_service import LineItemEditor


class TestLineItemEditor:
    """Test reverse derivation and recompute on edit."""

    def test_increment_record_reverse_derives_baseline(self, increment_rule):
        """A stored 55000 under a 10% increment implies a 50000 baseline."""
        editor = LineItemEditor.from_record(
            "rec-1", "emp-1", "2024-01", "55000", increment_rule, employee_name="Alice Khan"
        )

        assert editor.baseline == Decimal("50000")
        assert editor.amount == Decimal("55000.00")
        assert editor.key == LineItemKey("emp-1", "2024-01", "increment:grade-a")

    def test_changing_value_recomputes_from_derived_baseline(self, increment_rule):
        editor = LineItemEditor.from_record("rec-1", "emp-1", "2024-01", "55000", increment_rule)

        edited = editor.with_value("20")

        assert edited.amount == Decimal("60000.00")
        assert edited.baseline == Decimal("50000")
        # The original editor is unchanged
        assert editor.amount == Decimal("55000.00")

    def test_changing_method(self, increment_rule):
        editor = LineItemEditor.from_record("rec-1", "emp-1", "2024-01", "55000", increment_rule)

        flat = AdjustmentRule(
            Direction.INCREMENT, Method.AMOUNT, Decimal("2500"), rule_type_id="grade-a"
        )
        assert editor.with_rule(flat).amount == Decimal("52500.00")

    def test_amount_record_reverse_derives_baseline(self):
        rule = AdjustmentRule(Direction.DECREMENT, Method.AMOUNT, Decimal("2000"))
        editor = LineItemEditor.from_record("rec-2", "emp-2", "2024-02", "78000", rule)
        assert editor.baseline == Decimal("80000")

    def test_bonus_percentage_record(self):
        bonus = AdjustmentRule(
            Direction.INCREMENT, Method.PERCENTAGE, Decimal("10"), kind=AdjustmentKind.BONUS
        )
        editor = LineItemEditor.from_record("rec-3", "emp-1", "2024-03", "5000", bonus)

        assert editor.baseline == Decimal("50000")
        assert editor.with_value("20").amount == Decimal("10000.00")

    def test_fixed_allowance_record_has_no_baseline(self):
        allowance = AdjustmentRule(
            Direction.INCREMENT, Method.AMOUNT, Decimal("5000"), kind=AdjustmentKind.ALLOWANCE
        )
        editor = LineItemEditor.from_record("rec-4", "emp-1", "2024-03", "5000", allowance)

        assert editor.baseline is None
        assert editor.with_value("6000").amount == Decimal("6000.00")

    def test_full_percentage_decrement_rejected(self):
        rule = AdjustmentRule(Direction.DECREMENT, Method.PERCENTAGE, Decimal("100"))
        with pytest.raises(AdjustmentValidationError):
            LineItemEditor.from_record("rec-5", "emp-1", "2024-01", "0", rule)

    def test_manual_amount_override(self, increment_rule):
        editor = LineItemEditor.from_record("rec-1", "emp-1", "2024-01", "55000", increment_rule)

        edited = editor.with_amount("54321.005")

        assert edited.amount == Decimal("54321.01")
        assert edited.item.rule == increment_rule

    def test_to_line_item_uses_deterministic_id(self, increment_rule):
        editor = LineItemEditor.from_record("rec-1", "emp-1", "2024-01", "55000", increment_rule)

        item = editor.to_line_item(disambiguator=3)

        assert item.id == BatchExpander.compute_item_id(editor.key, 3)
        assert item.computed_amount == Decimal("55000.00")
