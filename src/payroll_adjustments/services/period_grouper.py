"""Partitioning of staged line items by target period."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from payroll_adjustments.calculators.types import AdjustmentKind, AdjustmentLineItem, Period


@dataclass(frozen=True)
class PeriodGroup:
    """Line items submitted together for one period."""

    period: Period
    items: tuple[AdjustmentLineItem, ...]

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total(self) -> Decimal:
        return sum(
            (i.computed_amount for i in self.items if i.computed_amount is not None),
            Decimal("0"),
        )

    def idempotency_key(self, kind: AdjustmentKind) -> str:
        """Deterministic key for this group's content.

        Identical groups produce identical keys, so a resubmitted group can be
        deduplicated by the backend.
        """
        canonical = {
            "kind": kind.value,
            "period": self.period.key,
            "items": [
                [i.id, i.employee_id, i.rule.kind_key, str(i.computed_amount)]
                for i in self.items
            ],
        }
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]


class PeriodGrouper:
    """Groups line items by period key.

    Groups appear in first-seen period order; items keep their staging order.
    """

    @staticmethod
    def group(items: Iterable[AdjustmentLineItem]) -> dict[str, PeriodGroup]:
        buckets: dict[str, list[AdjustmentLineItem]] = {}
        periods: dict[str, Period] = {}
        for item in items:
            key = item.period.key
            if key not in buckets:
                buckets[key] = []
                periods[key] = item.period
            buckets[key].append(item)

        return {
            key: PeriodGroup(period=periods[key], items=tuple(group_items))
            for key, group_items in buckets.items()
        }
