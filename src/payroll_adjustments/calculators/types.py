"""Type definitions for the adjustment calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

if TYPE_CHECKING:
    from payroll_adjustments.schemas import RuleTypeEntry


class AdjustmentValidationError(ValueError):
    """Raised when a rule, selection or staged item fails validation.

    Always raised before any gateway call is made.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class Direction(str, Enum):
    """Whether a rule raises or lowers the baseline."""

    INCREMENT = "Increment"
    DECREMENT = "Decrement"


class Method(str, Enum):
    """How the rule value is interpreted."""

    AMOUNT = "Amount"
    PERCENTAGE = "Percentage"


class Category(str, Enum):
    """One-off rules bind to chosen periods, recurring rules do not."""

    ONE_TIME = "one_time"
    RECURRING = "recurring"


class AmountBasis(str, Enum):
    """What a line item's amount represents."""

    RESULTING = "resulting"  # baseline after the adjustment (e.g. new salary)
    ADJUSTMENT = "adjustment"  # the adjustment itself (e.g. bonus amount)


class AdjustmentKind(str, Enum):
    """Adjustment workflows sharing the engine."""

    INCREMENT = "increment"
    ALLOWANCE = "allowance"
    DEDUCTION = "deduction"
    BONUS = "bonus"

    @property
    def implied_direction(self) -> Direction | None:
        """Direction fixed by the kind, or None when the rule chooses."""
        if self is AdjustmentKind.INCREMENT:
            return None
        if self is AdjustmentKind.DEDUCTION:
            return Direction.DECREMENT
        if self in (AdjustmentKind.ALLOWANCE, AdjustmentKind.BONUS):
            return Direction.INCREMENT
        raise AssertionError(f"Unhandled adjustment kind: {self!r}")

    @property
    def amount_basis(self) -> AmountBasis:
        if self is AdjustmentKind.INCREMENT:
            return AmountBasis.RESULTING
        return AmountBasis.ADJUSTMENT


class LineItemFlag(str, Enum):
    """Markers shown next to staged items that need attention."""

    UNRESOLVED = "unresolved"  # baseline lookup pending or failed
    MANUAL_REVIEW = "manual_review"  # percentage rule without usable baseline
    NEGATIVE_RESULT = "negative_result"  # decrement drove the amount below zero


class PaymentMethod(str, Enum):
    WITH_SALARY = "with_salary"
    SEPARATELY = "separately"


class AdjustmentMethod(str, Enum):
    DISTRIBUTED_REMAINING_MONTHS = "distributed-remaining-months"
    DEDUCT_CURRENT_MONTH = "deduct-current-month"


def as_decimal(value: Any) -> Decimal:
    """Convert user input to Decimal, going through str to avoid float noise."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise AdjustmentValidationError(f"Invalid number: {value!r}") from e
    if not result.is_finite():
        raise AdjustmentValidationError(f"Invalid number: {value!r}")
    return result


@dataclass(frozen=True)
class Period:
    """A year-month key (YYYY-MM)."""

    year: int
    month: int
    # Placeholder period standing in for "now" on recurring rules
    synthetic: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise AdjustmentValidationError(f"Invalid month {self.month}")
        if not 1900 <= self.year <= 9999:
            raise AdjustmentValidationError(f"Invalid year {self.year}")

    @classmethod
    def parse(cls, key: str | Period) -> Period:
        """Parse a YYYY-MM key."""
        if isinstance(key, Period):
            return key
        parts = str(key).strip().split("-")
        if len(parts) != 2 or len(parts[0]) != 4 or len(parts[1]) != 2:
            raise AdjustmentValidationError(
                f"Invalid month-year format {key!r} (expected YYYY-MM)"
            )
        try:
            return cls(year=int(parts[0]), month=int(parts[1]))
        except ValueError as e:
            raise AdjustmentValidationError(f"Invalid month-year {key!r}") from e

    @classmethod
    def current(cls, today: date | None = None) -> Period:
        """The synthetic current-period placeholder."""
        today = today or date.today()
        return cls(year=today.year, month=today.month, synthetic=True)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def to_payload(self) -> dict[str, str]:
        """Return the {month, year} shape the batch endpoints expect."""
        return {"month": f"{self.month:02d}", "year": f"{self.year:04d}"}

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class AdjustmentRule:
    """Declarative description of a compensation change.

    Rules are plain values; construction does not validate so that partially
    filled forms can be represented. Call validate() before using one.
    """

    direction: Direction
    method: Method
    value: Decimal
    category: Category = Category.ONE_TIME
    kind: AdjustmentKind = AdjustmentKind.INCREMENT
    rule_type_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", as_decimal(self.value))

    @classmethod
    def from_catalog_entry(
        cls,
        entry: RuleTypeEntry,
        kind: AdjustmentKind,
        direction: Direction = Direction.INCREMENT,
        category: Category = Category.ONE_TIME,
        value: Decimal | None = None,
    ) -> AdjustmentRule:
        """Build a rule pre-filled from a catalog entry.

        An explicit value overrides the entry's fixed amount or percentage.
        """
        method = Method(entry.calculation_method)
        if value is None:
            if method is Method.AMOUNT:
                value = entry.fixed_amount
            else:
                value = entry.fixed_percentage
        if value is None:
            raise AdjustmentValidationError(
                f"{method.value} is required for {entry.name}"
            )
        return cls(
            direction=kind.implied_direction or direction,
            method=method,
            value=as_decimal(value),
            category=category,
            kind=kind,
            rule_type_id=entry.id,
        )

    @property
    def effective_direction(self) -> Direction:
        """Direction after applying the kind's implied direction."""
        return self.kind.implied_direction or self.direction

    @property
    def kind_key(self) -> str:
        """Rule kind part of a line item's identity."""
        key = f"{self.kind.value}:{self.rule_type_id or '*'}"
        # A recurring entry never collides with a one-time entry of the same head
        if self.category is Category.RECURRING:
            key += ":recurring"
        return key

    def with_value(self, value: Any) -> AdjustmentRule:
        return replace(self, value=as_decimal(value))

    def validation_errors(self) -> list[str]:
        """Return list of validation messages (empty if valid)."""
        errors: list[str] = []
        if not isinstance(self.direction, Direction):
            errors.append(f"Unknown direction {self.direction!r}")
        if not isinstance(self.method, Method):
            errors.append(f"Unknown calculation method {self.method!r}")
        if not isinstance(self.category, Category):
            errors.append(f"Unknown category {self.category!r}")
        if errors:
            return errors

        if self.value <= 0:
            errors.append(f"Value must be positive, got {self.value}")
        elif self.method is Method.PERCENTAGE:
            if self.value > 100:
                errors.append(f"Percentage must be between 0 and 100, got {self.value}")
            elif self.value == 100 and self.effective_direction is Direction.DECREMENT:
                errors.append("A 100% decrement cannot be reversed to a baseline")
        return errors

    def validate(self) -> None:
        """Raise AdjustmentValidationError if the rule is not usable."""
        errors = self.validation_errors()
        if errors:
            raise AdjustmentValidationError(errors)

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "method": self.method.value,
            "value": str(self.value),
            "category": self.category.value,
            "kind": self.kind.value,
            "rule_type_id": self.rule_type_id,
        }


@dataclass(frozen=True)
class AuxiliaryFields:
    """Per-item fields carried through to the batch endpoint untouched."""

    # Keys owned by the line item and the named fields; extra may not set them
    RESERVED_KEYS: ClassVar[frozenset[str]] = frozenset({
        "employeeId",
        "ruleTypeId",
        "amount",
        "percentage",
        "isTaxable",
        "taxPercentage",
        "paymentMethod",
        "adjustmentMethod",
        "notes",
    })

    is_taxable: bool = False
    tax_percentage: Decimal = Decimal("0")
    notes: str = ""
    payment_method: PaymentMethod = PaymentMethod.WITH_SALARY
    adjustment_method: AdjustmentMethod = AdjustmentMethod.DISTRIBUTED_REMAINING_MONTHS
    # Kind-specific fields (grade, designation, promotion date, ...)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tax_percentage", as_decimal(self.tax_percentage))
        object.__setattr__(self, "payment_method", PaymentMethod(self.payment_method))
        object.__setattr__(
            self, "adjustment_method", AdjustmentMethod(self.adjustment_method)
        )
        if not self.is_taxable:
            object.__setattr__(self, "tax_percentage", Decimal("0"))

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if not Decimal("0") <= self.tax_percentage <= Decimal("100"):
            errors.append(
                f"Tax percentage must be between 0 and 100, got {self.tax_percentage}"
            )
        if len(self.notes) > 1000:
            errors.append("Notes must not exceed 1000 characters")
        reserved = sorted(self.RESERVED_KEYS.intersection(self.extra))
        if reserved:
            errors.append(f"Extra fields may not override {', '.join(reserved)}")
        return errors

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            k: v for k, v in self.extra.items() if k not in self.RESERVED_KEYS
        }
        payload.update({
            "isTaxable": self.is_taxable,
            "paymentMethod": self.payment_method.value,
            "adjustmentMethod": self.adjustment_method.value,
        })
        if self.tax_percentage > 0:
            payload["taxPercentage"] = self.tax_percentage
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class LineItemKey:
    """Identity of a staged line item."""

    employee_id: str
    period_key: str
    rule_kind: str


@dataclass(frozen=True)
class AdjustmentLineItem:
    """One computed adjustment for one employee and period.

    A snapshot: editing the originating rule never changes it.
    """

    id: str
    employee_id: str
    period: Period
    rule: AdjustmentRule
    baseline: Decimal | None
    computed_amount: Decimal | None
    flags: frozenset[LineItemFlag] = frozenset()
    auxiliary: AuxiliaryFields = field(default_factory=AuxiliaryFields)
    employee_name: str = ""
    employee_code: str = ""

    @property
    def key(self) -> LineItemKey:
        return LineItemKey(self.employee_id, self.period.key, self.rule.kind_key)

    @property
    def rule_type_id(self) -> str | None:
        return self.rule.rule_type_id

    @property
    def is_resolved(self) -> bool:
        return self.computed_amount is not None

    @property
    def needs_attention(self) -> bool:
        return bool(self.flags)

    def to_payload(self) -> dict[str, Any]:
        """Item shape accepted by the batch endpoints."""
        payload = self.auxiliary.to_payload()
        payload.update({
            "employeeId": self.employee_id,
            "ruleTypeId": self.rule_type_id,
            "amount": self.computed_amount,
        })
        if self.rule.method is Method.PERCENTAGE:
            payload["percentage"] = self.rule.value
        return payload
