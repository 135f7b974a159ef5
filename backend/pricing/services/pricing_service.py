from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from core.exceptions import NoPricingBandError, NotFoundError, ValidationError
from core.money import HUNDRED, THOUSAND, ZERO, d, q4
from ..dataclasses import (
    BandSnapshot,
    CalcLine,
    CustomPricingUnit,
    LineSelection,
    RateCardSnapshot,
)
from ..models import Category, RateCardUnit

logger = logging.getLogger(__name__)

MAX_QUANTITY = 10_000_000


class EnclosingSemantics(str, Enum):
    """How PER_INSERT (enclosing) lines turn a quantity into units."""
    # units = quantity x inserts_count / 1000
    INSERT_MULTIPLIER = "enclose-v1"
    # units = quantity / 1000
    PLAIN_QUANTITY = "enclose-v2"


def default_enclosing_semantics() -> EnclosingSemantics:
    raw = getattr(settings, "PRICING_ENCLOSING_SEMANTICS", EnclosingSemantics.PLAIN_QUANTITY.value)
    try:
        return EnclosingSemantics(raw)
    except ValueError:
        raise ImproperlyConfigured(
            f"PRICING_ENCLOSING_SEMANTICS must be one of "
            f"{', '.join(s.value for s in EnclosingSemantics)}, got '{raw}'"
        )


# --------------------- Core engine functions ---------------------

def select_band(bands: Sequence[BandSnapshot], quantity: int) -> Optional[BandSnapshot]:
    """First band (ascending from_qty) whose inclusive range holds the quantity."""
    for band in bands:
        if band.contains(quantity):
            return band
    return None


def calculate_units(
    unit: str,
    quantity: int,
    inserts_count: int = 1,
    semantics: EnclosingSemantics = EnclosingSemantics.PLAIN_QUANTITY,
) -> Decimal:
    qty = Decimal(quantity)
    if unit == RateCardUnit.PER_JOB:
        return ZERO
    if unit == RateCardUnit.PER_INSERT and semantics == EnclosingSemantics.INSERT_MULTIPLIER:
        return qty * Decimal(inserts_count) / THOUSAND
    return qty / THOUSAND


def calculate_line(
    rate_card: RateCardSnapshot,
    band: BandSnapshot,
    quantity: int,
    inserts_count: int = 1,
    semantics: EnclosingSemantics = EnclosingSemantics.PLAIN_QUANTITY,
    description: Optional[str] = None,
) -> CalcLine:
    units = calculate_units(rate_card.unit, quantity, inserts_count, semantics)
    unit_price = d(band.price_per_thousand)
    make_ready = d(band.make_ready_fixed)

    return CalcLine(
        rate_card_id=rate_card.id,
        rate_card_code=rate_card.code,
        description=description or rate_card.name,
        unit_price_per_thousand=unit_price,
        make_ready_fixed=make_ready,
        units_in_thousands=units,
        line_total=q4(make_ready + units * unit_price),
        category=rate_card.category or Category.PRINT,
        quantity=quantity,
        pricing_unit=rate_card.unit,
    )


def calculate_custom_line(selection: LineSelection, quantity: int) -> CalcLine:
    """Price a bespoke item: setup charge plus price per item or per thousand."""
    qty = Decimal(quantity)
    setup = d(selection.custom_setup_charge)
    price = d(selection.custom_price)

    if selection.custom_pricing_unit == CustomPricingUnit.PER_ITEM:
        line_total = setup + price * qty
        unit_price = price * THOUSAND
    else:
        line_total = setup + price * qty / THOUSAND
        unit_price = price

    return CalcLine(
        rate_card_id=None,
        description=(selection.custom_description or "").strip(),
        unit_price_per_thousand=unit_price,
        make_ready_fixed=setup,
        units_in_thousands=qty / THOUSAND,
        line_total=q4(line_total),
        category=Category.PRINT,
        quantity=quantity,
        is_manual_item=True,
        pricing_unit=selection.custom_pricing_unit,
    )


def price_selection(
    selection: LineSelection,
    quote_quantity: int,
    cards_by_id: Dict[int, RateCardSnapshot],
    inserts_count: int = 1,
    semantics: EnclosingSemantics = EnclosingSemantics.PLAIN_QUANTITY,
) -> CalcLine:
    quantity = selection.quantity or quote_quantity

    if selection.is_custom:
        line = calculate_custom_line(selection, quantity)
    else:
        rate_card = cards_by_id.get(selection.rate_card_id)
        if rate_card is None:
            raise NotFoundError("Rate card", selection.rate_card_id)
        band = select_band(rate_card.bands, quantity)
        if band is None:
            raise NoPricingBandError(rate_card.code, quantity)
        line = calculate_line(rate_card, band, quantity, inserts_count, semantics, selection.description)

    line.quantity_override = selection.quantity is not None
    return line


def calculate_quote_lines(
    quantity: int,
    selections: Sequence[LineSelection],
    rate_cards: Iterable[RateCardSnapshot],
    inserts_count: int = 1,
    semantics: Optional[EnclosingSemantics] = None,
) -> List[CalcLine]:
    """
    Price every selection in order. One unpriceable line aborts the whole
    calculation; a quote is never partially priced.
    """
    semantics = semantics or default_enclosing_semantics()
    cards_by_id = {card.id: card for card in rate_cards}
    return [
        price_selection(selection, quantity, cards_by_id, inserts_count, semantics)
        for selection in selections
    ]


def validate_pricing_input(
    quantity,
    discount_percentage,
    selections: Sequence[LineSelection],
    inserts_count=1,
) -> None:
    errors: List[str] = []

    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        errors.append("quantity must be a positive whole number")
    elif quantity > MAX_QUANTITY:
        errors.append(f"quantity must not exceed {MAX_QUANTITY}")

    try:
        pct = d(discount_percentage)
        if not ZERO <= pct <= HUNDRED:
            errors.append("discount_percentage must be between 0 and 100")
    except (InvalidOperation, TypeError, ValueError):
        errors.append("discount_percentage must be a number")

    if not isinstance(inserts_count, int) or isinstance(inserts_count, bool) or inserts_count < 0:
        errors.append("inserts_count must be a whole number of at least 0")

    if not selections:
        errors.append("at least one line is required")

    for idx, selection in enumerate(selections, 1):
        if selection.quantity is not None and (
            not isinstance(selection.quantity, int) or selection.quantity <= 0
        ):
            errors.append(f"line {idx}: quantity override must be a positive whole number")
        if selection.is_custom:
            if not (selection.custom_description or "").strip():
                errors.append(f"line {idx}: custom items need a description")
            if d(selection.custom_price) < ZERO or d(selection.custom_setup_charge) < ZERO:
                errors.append(f"line {idx}: custom prices cannot be negative")
            if selection.custom_pricing_unit not in (CustomPricingUnit.PER_THOUSAND, CustomPricingUnit.PER_ITEM):
                errors.append(f"line {idx}: unknown custom pricing unit '{selection.custom_pricing_unit}'")

    if errors:
        logger.info(f"Rejected pricing input: {errors}")
        raise ValidationError(errors)
