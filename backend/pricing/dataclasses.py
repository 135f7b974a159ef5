from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from core.money import ZERO, d

CUSTOM_LINE_REF = "custom"


class CustomPricingUnit:
    PER_THOUSAND = "per_1k"
    PER_ITEM = "per_item"

    choices = (
        (PER_THOUSAND, "Per 1,000"),
        (PER_ITEM, "Per item"),
    )


@dataclass(frozen=True)
class BandSnapshot:
    from_qty: int
    to_qty: int
    price_per_thousand: Decimal
    make_ready_fixed: Decimal
    id: Optional[int] = None

    def contains(self, quantity: int) -> bool:
        return self.from_qty <= quantity <= self.to_qty


@dataclass(frozen=True)
class RateCardSnapshot:
    """Read-only view of a rate card and its bands, sorted by from_qty."""
    id: int
    code: str
    name: str
    unit: str
    category: str
    bands: Tuple[BandSnapshot, ...] = ()
    notes: Optional[str] = None

    @classmethod
    def from_model(cls, rate_card) -> "RateCardSnapshot":
        bands = sorted(rate_card.bands.all(), key=lambda b: b.from_qty)
        return cls(
            id=rate_card.id,
            code=rate_card.code,
            name=rate_card.name,
            unit=rate_card.unit,
            category=rate_card.category or "PRINT",
            notes=rate_card.notes,
            bands=tuple(
                BandSnapshot(
                    id=b.id,
                    from_qty=b.from_qty,
                    to_qty=b.to_qty,
                    price_per_thousand=b.price_per_thousand,
                    make_ready_fixed=b.make_ready_fixed,
                )
                for b in bands
            ),
        )


@dataclass
class LineSelection:
    """One requested quote line: a rate card, or a bespoke item priced by hand."""
    rate_card_id: Optional[int] = None
    quantity: Optional[int] = None  # overrides the quote quantity for this line
    description: Optional[str] = None
    custom_description: Optional[str] = None
    custom_setup_charge: Decimal = ZERO
    custom_price: Decimal = ZERO
    custom_pricing_unit: str = CustomPricingUnit.PER_THOUSAND

    @property
    def is_custom(self) -> bool:
        return self.rate_card_id is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineSelection":
        rate_card_id = data.get("rate_card_id")
        if rate_card_id == CUSTOM_LINE_REF:
            rate_card_id = None
        return cls(
            rate_card_id=int(rate_card_id) if rate_card_id is not None else None,
            quantity=data.get("quantity"),
            description=data.get("description"),
            custom_description=data.get("custom_description"),
            custom_setup_charge=d(data.get("custom_setup_charge") or 0),
            custom_price=d(data.get("custom_price") or 0),
            custom_pricing_unit=data.get("custom_pricing_unit") or CustomPricingUnit.PER_THOUSAND,
        )


@dataclass
class CalcLine:
    rate_card_id: Optional[int]
    description: str
    unit_price_per_thousand: Decimal
    make_ready_fixed: Decimal
    units_in_thousands: Decimal
    line_total: Decimal
    category: str
    quantity: int
    is_manual_item: bool = False
    rate_card_code: Optional[str] = None
    pricing_unit: Optional[str] = None
    quantity_override: bool = False

    @property
    def rate_card_ref(self):
        return self.rate_card_id if not self.is_manual_item else CUSTOM_LINE_REF

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rate_card_id": self.rate_card_ref,
            "rate_card_code": self.rate_card_code,
            "description": self.description,
            "unit_price_per_thousand": str(self.unit_price_per_thousand),
            "make_ready_fixed": str(self.make_ready_fixed),
            "units_in_thousands": str(self.units_in_thousands),
            "line_total": str(self.line_total),
            "category": self.category,
            "quantity": self.quantity,
            "is_manual_item": self.is_manual_item,
        }


@dataclass
class Totals:
    mode: str
    subtotal: Decimal
    discount_percentage: Decimal
    discount: Decimal
    total: Decimal
    categories: Optional[Dict[str, Decimal]] = None
    price_per_thousand: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "mode": self.mode,
            "subtotal": str(self.subtotal),
            "discount_percentage": str(self.discount_percentage),
            "discount": str(self.discount),
            "total": str(self.total),
        }
        if self.categories is not None:
            data["categories"] = {k: str(v) for k, v in self.categories.items()}
        if self.price_per_thousand is not None:
            data["price_per_thousand"] = str(self.price_per_thousand)
        return data


@dataclass
class PricedQuote:
    lines: List[CalcLine] = field(default_factory=list)
    totals: Optional[Totals] = None
    pricing_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "totals": self.totals.to_dict() if self.totals else None,
            "pricing_version": self.pricing_version,
        }
