"""
Quote storage. Every ORM write for quotes, lines and history goes through here.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from django.db import transaction
from django.utils import timezone

from core.exceptions import NotFoundError
from core.money import q4
from pricing.dataclasses import CalcLine
from ..models import Quote, QuoteHistory, QuoteLine
from .history import HistoryPayload
from .numbering import QuoteNumber

logger = logging.getLogger(__name__)


def _line_models(quote: Quote, lines: Sequence[CalcLine]) -> List[QuoteLine]:
    return [
        QuoteLine(
            quote=quote,
            rate_card_id=None if line.is_manual_item else line.rate_card_id,
            rate_card_code=line.rate_card_code,
            position=position,
            description=line.description,
            unit_price_per_thousand=q4(line.unit_price_per_thousand),
            make_ready_fixed=q4(line.make_ready_fixed),
            units_in_thousands=q4(line.units_in_thousands),
            line_total=q4(line.line_total),
            category=line.category,
            quantity=line.quantity,
            quantity_override=line.quantity_override,
            is_manual_item=line.is_manual_item,
            custom_pricing_unit=line.pricing_unit if line.is_manual_item else None,
        )
        for position, line in enumerate(lines)
    ]


@transaction.atomic
def create_quote(number: QuoteNumber, fields: Dict[str, Any], lines: Sequence[CalcLine]) -> Quote:
    quote = Quote.objects.create(
        base_reference=number.base_reference,
        revision_number=number.revision_number,
        reference=number.reference,
        **fields,
    )
    QuoteLine.objects.bulk_create(_line_models(quote, lines))
    return quote


@transaction.atomic
def replace_quote_lines(quote: Quote, lines: Sequence[CalcLine]) -> None:
    """Swap the whole line set. Either every new line is written or the old set stays."""
    QuoteLine.objects.filter(quote=quote).delete()
    QuoteLine.objects.bulk_create(_line_models(quote, lines))


def append_history(quote_id: int, payload: HistoryPayload) -> QuoteHistory:
    return QuoteHistory.objects.create(quote_id=quote_id, action=payload.action, payload=payload.to_dict())


def update_status(quote_id: int, status: str) -> int:
    updated = Quote.objects.filter(pk=quote_id).update(status=status, updated_at=timezone.now())
    if not updated:
        raise NotFoundError("Quote", quote_id)
    return updated
