"""
Rate catalogue reads and writes.

Pricing only ever sees ``RateCardSnapshot`` objects; everything that touches
the ORM for rate cards lives here.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Sequence

from django.db import IntegrityError, transaction

from core.exceptions import NotFoundError, ValidationError
from core.money import ZERO, d
from ..dataclasses import RateCardSnapshot
from ..models import Band, Category, RateCard, RateCardUnit

logger = logging.getLogger(__name__)

MIN_BAND_QTY = 1
MAX_BAND_QTY = 10_000_000
MAX_BAND_PRICE = Decimal("999999.99")
MAX_BANDS = 50


def _base_queryset():
    return RateCard.objects.prefetch_related("bands")


def list_rate_cards() -> List[RateCardSnapshot]:
    return [RateCardSnapshot.from_model(card) for card in _base_queryset().order_by("name")]


def get_rate_card(rate_card_id: int) -> RateCardSnapshot:
    try:
        card = _base_queryset().get(pk=rate_card_id)
    except RateCard.DoesNotExist:
        raise NotFoundError("Rate card", rate_card_id)
    return RateCardSnapshot.from_model(card)


def find_rate_card_id(code: Optional[str]) -> Optional[int]:
    """Id of the current card carrying ``code``, if one exists."""
    if not code:
        return None
    return RateCard.objects.filter(code=code).values_list("pk", flat=True).first()


def get_rate_cards_by_ids(ids: Iterable[int]) -> List[RateCardSnapshot]:
    """Snapshots for the given ids. Unknown ids are simply absent from the result."""
    wanted = {i for i in ids if i is not None}
    if not wanted:
        return []
    return [RateCardSnapshot.from_model(card) for card in _base_queryset().filter(pk__in=wanted)]


def validate_bands(bands: Sequence[Dict[str, Any]]) -> List[str]:
    """
    Check a band list for a rate card. Returns human readable problems; an
    empty list means the bands can be saved.

    Bands must be 1..50 in number, each within 1..10,000,000 with
    from_qty <= to_qty, prices within 0..999,999.99, and once sorted by
    from_qty they must run on without gaps or overlaps.
    """
    problems: List[str] = []

    if not bands:
        return ["a rate card needs at least one band"]
    if len(bands) > MAX_BANDS:
        problems.append(f"a rate card can have at most {MAX_BANDS} bands")

    parsed = []
    for idx, band in enumerate(bands, 1):
        try:
            from_qty = int(band["from_qty"])
            to_qty = int(band["to_qty"])
            price = d(band["price_per_thousand"])
            make_ready = d(band.get("make_ready_fixed", 0))
        except (KeyError, TypeError, ValueError, InvalidOperation):
            problems.append(f"band {idx}: from_qty, to_qty and price_per_thousand are required numbers")
            continue

        if not MIN_BAND_QTY <= from_qty <= MAX_BAND_QTY or not MIN_BAND_QTY <= to_qty <= MAX_BAND_QTY:
            problems.append(f"band {idx}: quantities must be between {MIN_BAND_QTY} and {MAX_BAND_QTY:,}")
        if from_qty > to_qty:
            problems.append(f"band {idx}: from_qty {from_qty} is greater than to_qty {to_qty}")
        for label, value in (("price_per_thousand", price), ("make_ready_fixed", make_ready)):
            if not ZERO <= value <= MAX_BAND_PRICE:
                problems.append(f"band {idx}: {label} must be between 0 and {MAX_BAND_PRICE:,}")
        parsed.append((from_qty, to_qty))

    ordered = sorted(parsed)
    for (prev_from, prev_to), (cur_from, cur_to) in zip(ordered, ordered[1:]):
        if cur_from <= prev_to:
            problems.append(f"bands {prev_from}-{prev_to} and {cur_from}-{cur_to} overlap")
        elif cur_from != prev_to + 1:
            problems.append(f"gap between {prev_to} and {cur_from}")

    return problems


def validate_rate_card(rate_card: RateCard) -> List[str]:
    """Validate the stored bands of a saved rate card."""
    return validate_bands(
        [
            {
                "from_qty": b.from_qty,
                "to_qty": b.to_qty,
                "price_per_thousand": b.price_per_thousand,
                "make_ready_fixed": b.make_ready_fixed,
            }
            for b in rate_card.bands.all()
        ]
    )


def _check_fields(data: Dict[str, Any], partial: bool = False) -> List[str]:
    problems = []
    if not partial or "code" in data:
        if not (data.get("code") or "").strip():
            problems.append("code is required")
    if not partial or "name" in data:
        if not (data.get("name") or "").strip():
            problems.append("name is required")
    if "unit" in data and data["unit"] not in RateCardUnit.values:
        problems.append(f"unit must be one of {', '.join(RateCardUnit.values)}")
    if data.get("category") and data["category"] not in Category.values:
        problems.append(f"category must be one of {', '.join(Category.values)}")
    return problems


def _write_bands(card: RateCard, bands: Sequence[Dict[str, Any]]) -> None:
    card.bands.all().delete()
    Band.objects.bulk_create(
        [
            Band(
                rate_card=card,
                from_qty=int(b["from_qty"]),
                to_qty=int(b["to_qty"]),
                price_per_thousand=d(b["price_per_thousand"]),
                make_ready_fixed=d(b.get("make_ready_fixed", 0)),
            )
            for b in sorted(bands, key=lambda b: int(b["from_qty"]))
        ]
    )


def create_rate_card(data: Dict[str, Any]) -> RateCardSnapshot:
    bands = data.get("bands") or []
    problems = _check_fields(data) + validate_bands(bands)
    if problems:
        raise ValidationError(problems)

    try:
        with transaction.atomic():
            card = RateCard.objects.create(
                code=data["code"].strip(),
                name=data["name"].strip(),
                unit=data.get("unit") or RateCardUnit.PER_THOUSAND,
                category=data.get("category") or Category.PRINT,
                notes=data.get("notes"),
            )
            _write_bands(card, bands)
    except IntegrityError:
        raise ValidationError(f"rate card code '{data['code']}' is already in use")

    logger.info(f"Created rate card {card.code} with {len(bands)} bands")
    return get_rate_card(card.pk)


def update_rate_card(rate_card_id: int, data: Dict[str, Any]) -> RateCardSnapshot:
    """Update card fields; a ``bands`` key replaces the whole band list."""
    problems = _check_fields(data, partial=True)
    if "bands" in data:
        problems += validate_bands(data["bands"] or [])
    if problems:
        raise ValidationError(problems)

    try:
        with transaction.atomic():
            try:
                card = RateCard.objects.select_for_update().get(pk=rate_card_id)
            except RateCard.DoesNotExist:
                raise NotFoundError("Rate card", rate_card_id)
            for field in ("code", "name", "unit", "category", "notes"):
                if field in data:
                    value = data[field]
                    setattr(card, field, value.strip() if isinstance(value, str) and field != "notes" else value)
            card.save()
            if "bands" in data:
                _write_bands(card, data["bands"])
    except IntegrityError:
        raise ValidationError(f"rate card code '{data.get('code')}' is already in use")

    logger.info(f"Updated rate card {card.code}")
    return get_rate_card(card.pk)


def delete_rate_card(rate_card_id: int) -> None:
    """Quote lines keep their priced figures; their rate card link is cleared."""
    deleted, _ = RateCard.objects.filter(pk=rate_card_id).delete()
    if not deleted:
        raise NotFoundError("Rate card", rate_card_id)
    logger.info(f"Deleted rate card {rate_card_id}")
