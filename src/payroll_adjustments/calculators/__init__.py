"""Adjustment calculation engine."""

from payroll_adjustments.calculators.baseline_resolver import (
    BaselineResolver,
    BaselineState,
    BaselineStatus,
    ResolutionError,
)
from payroll_adjustments.calculators.batch_expander import BatchExpander, ExpansionResult
from payroll_adjustments.calculators.calculator import CalculationOutcome, Calculator

__all__ = [
    "BaselineResolver",
    "BaselineState",
    "BaselineStatus",
    "ResolutionError",
    "BatchExpander",
    "ExpansionResult",
    "CalculationOutcome",
    "Calculator",
]
