"""
Quote totals.

Two strategies share one interface:

* ``LegacyTotalsStrategy`` - subtotal, discount and total only. Kept for quotes
  priced before category tracking existed.
* ``CategoryTotalsStrategy`` - the same figures plus a per-category breakdown
  (every category present, zero if unused) and a price-per-thousand figure.

Which one runs is decided by a ``RolloutDecision`` for the category system
flag, never by the shape of the arguments.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from django.conf import settings

from core.money import HUNDRED, THOUSAND, ZERO, d
from core.rollout import RolloutDecision, RolloutEvaluator
from ..dataclasses import CalcLine, Totals
from ..models import Category

logger = logging.getLogger(__name__)


class TotalsStrategy:
    mode = ""

    def calculate(self, lines: Sequence[CalcLine], quantity: int, discount_percentage) -> Totals:
        raise NotImplementedError

    @staticmethod
    def _discount(subtotal: Decimal, discount_percentage: Decimal) -> Decimal:
        return subtotal * discount_percentage / HUNDRED


class LegacyTotalsStrategy(TotalsStrategy):
    mode = "legacy"

    def calculate(self, lines: Sequence[CalcLine], quantity: int, discount_percentage) -> Totals:
        pct = d(discount_percentage)
        subtotal = sum((d(line.line_total) for line in lines), ZERO)
        discount = self._discount(subtotal, pct)
        return Totals(
            mode=self.mode,
            subtotal=subtotal,
            discount_percentage=pct,
            discount=discount,
            total=subtotal - discount,
        )


class CategoryTotalsStrategy(TotalsStrategy):
    mode = "categorised"

    def calculate(self, lines: Sequence[CalcLine], quantity: int, discount_percentage) -> Totals:
        pct = d(discount_percentage)
        buckets: Dict[str, Decimal] = {category.value: ZERO for category in Category}
        for line in lines:
            key = line.category if line.category in buckets else Category.PRINT.value
            buckets[key] += d(line.line_total)

        subtotal = sum(buckets.values(), ZERO)
        discount = self._discount(subtotal, pct)
        total = subtotal - discount
        price_per_thousand = (total / Decimal(quantity)) * THOUSAND if quantity > 0 else ZERO

        return Totals(
            mode=self.mode,
            subtotal=subtotal,
            discount_percentage=pct,
            discount=discount,
            total=total,
            categories=buckets,
            price_per_thousand=price_per_thousand,
        )


LEGACY = LegacyTotalsStrategy()
CATEGORISED = CategoryTotalsStrategy()


def strategy_for(decision: RolloutDecision) -> TotalsStrategy:
    return CATEGORISED if decision.enabled else LEGACY


def decide_totals_strategy(
    user_id: Optional[str],
    evaluator: Optional[RolloutEvaluator] = None,
) -> Tuple[RolloutDecision, TotalsStrategy]:
    """Evaluate the category rollout flag for a user and pick the matching strategy."""
    evaluator = evaluator or RolloutEvaluator()
    flag = getattr(settings, "CATEGORY_ROLLOUT_FLAG", "CATEGORY_SYSTEM")
    decision = evaluator.evaluate(flag, user_id)
    strategy = strategy_for(decision)
    logger.debug(f"Totals mode for user {user_id!r}: {strategy.mode} ({decision.reason})")
    return decision, strategy
