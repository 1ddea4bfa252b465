"""Forward and reverse adjustment arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from payroll_adjustments.calculators.types import (
    AdjustmentRule,
    AdjustmentValidationError,
    AmountBasis,
    Direction,
    LineItemFlag,
    Method,
)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CalculationOutcome:
    """Amount for a line item plus any flags raised while computing it."""

    amount: Decimal | None
    flags: frozenset[LineItemFlag] = frozenset()


class Calculator:
    """Pure adjustment arithmetic.

    Forward:
    - Amount:     b + v (increment) / b - v (decrement)
    - Percentage: b * (1 + v/100) / b * (1 - v/100)

    Reverse (edit flow, stored amount is post-adjustment):
    - Amount:     c - v / c + v
    - Percentage: c / (1 + v/100) / c / (1 - v/100)

    Rounding:
    - Internal compute at 4 decimals
    - Line amounts rounded to cents, half-up
    """

    PRECISION = Decimal("0.0001")
    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places."""
        return amount.quantize(Calculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def _factor(rule: AdjustmentRule) -> Decimal:
        ratio = rule.value / HUNDRED
        direction = rule.effective_direction
        if direction is Direction.INCREMENT:
            return 1 + ratio
        if direction is Direction.DECREMENT:
            return 1 - ratio
        raise AssertionError(f"Unhandled direction: {direction!r}")

    @staticmethod
    def compute(baseline: Decimal, rule: AdjustmentRule) -> Decimal:
        """Resulting amount after applying rule to baseline."""
        method = rule.method
        if method is Method.AMOUNT:
            if rule.effective_direction is Direction.INCREMENT:
                return baseline + rule.value
            return baseline - rule.value
        if method is Method.PERCENTAGE:
            return baseline * Calculator._factor(rule)
        raise AssertionError(f"Unhandled method: {method!r}")

    @staticmethod
    def compute_adjustment(baseline: Decimal | None, rule: AdjustmentRule) -> Decimal:
        """Magnitude of the change alone (always non-negative)."""
        method = rule.method
        if method is Method.AMOUNT:
            return rule.value
        if method is Method.PERCENTAGE:
            if baseline is None:
                raise AdjustmentValidationError(
                    "A percentage adjustment needs a resolved baseline"
                )
            return baseline * rule.value / HUNDRED
        raise AssertionError(f"Unhandled method: {method!r}")

    @staticmethod
    def reverse_baseline(current_amount: Decimal, rule: AdjustmentRule) -> Decimal:
        """Reconstruct the pre-adjustment baseline from a stored amount.

        Raises:
            AdjustmentValidationError: For a 100% percentage decrement, which
                has no inverse.
        """
        method = rule.method
        if method is Method.AMOUNT:
            if rule.effective_direction is Direction.INCREMENT:
                return current_amount - rule.value
            return current_amount + rule.value
        if method is Method.PERCENTAGE:
            factor = Calculator._factor(rule)
            if factor == 0:
                raise AdjustmentValidationError(
                    "A 100% decrement cannot be reversed to a baseline"
                )
            return (current_amount / factor).quantize(
                Calculator.PRECISION, rounding=ROUND_HALF_UP
            )
        raise AssertionError(f"Unhandled method: {method!r}")

    @staticmethod
    def reverse_baseline_from_adjustment(
        adjustment: Decimal, rule: AdjustmentRule
    ) -> Decimal | None:
        """Baseline implied by a stored adjustment amount.

        Only percentage rules carry baseline information; returns None for
        fixed amounts.
        """
        if rule.method is Method.AMOUNT:
            return None
        if rule.value == 0:
            raise AdjustmentValidationError("Percentage must be positive")
        return (adjustment * HUNDRED / rule.value).quantize(
            Calculator.PRECISION, rounding=ROUND_HALF_UP
        )

    @staticmethod
    def needs_baseline(rule: AdjustmentRule) -> bool:
        """Whether the line amount depends on the employee's baseline."""
        if rule.kind.amount_basis is AmountBasis.RESULTING:
            return True
        return rule.method is Method.PERCENTAGE

    @staticmethod
    def line_amount(baseline: Decimal | None, rule: AdjustmentRule) -> CalculationOutcome:
        """Compute a line item amount, applying the fallback rules.

        - Baseline needed but unknown: no amount, flagged unresolved
        - Percentage rule with baseline <= 0: raw baseline (no-op), flagged
          for manual review
        - Result below zero: kept as is, flagged negative_result
        """
        if Calculator.needs_baseline(rule) and baseline is None:
            return CalculationOutcome(None, frozenset({LineItemFlag.UNRESOLVED}))

        if rule.method is Method.PERCENTAGE and baseline is not None and baseline <= 0:
            if rule.kind.amount_basis is AmountBasis.RESULTING:
                fallback = baseline
            else:
                fallback = Decimal("0")
            return CalculationOutcome(
                Calculator.round_to_cents(fallback),
                frozenset({LineItemFlag.MANUAL_REVIEW}),
            )

        basis = rule.kind.amount_basis
        if basis is AmountBasis.RESULTING:
            amount = Calculator.compute(baseline, rule)  # type: ignore[arg-type]
        elif basis is AmountBasis.ADJUSTMENT:
            amount = Calculator.compute_adjustment(baseline, rule)
        else:
            raise AssertionError(f"Unhandled amount basis: {basis!r}")

        amount = Calculator.round_to_cents(amount)
        if amount < 0:
            return CalculationOutcome(amount, frozenset({LineItemFlag.NEGATIVE_RESULT}))
        return CalculationOutcome(amount)
