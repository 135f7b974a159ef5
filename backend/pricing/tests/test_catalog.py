from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command

from core.exceptions import NotFoundError, ValidationError
from pricing.models import Band, RateCard
from pricing.services import catalog

pytestmark = pytest.mark.django_db


def bands(*ranges, price="10", make_ready="5"):
    return [
        {"from_qty": lo, "to_qty": hi, "price_per_thousand": price, "make_ready_fixed": make_ready}
        for lo, hi in ranges
    ]


class TestBandValidation:
    def test_contiguous_bands_pass(self):
        assert catalog.validate_bands(bands((1, 10000), (10001, 50000))) == []

    def test_unsorted_input_is_checked_in_order(self):
        assert catalog.validate_bands(bands((10001, 50000), (1, 10000))) == []

    def test_gap(self):
        problems = catalog.validate_bands(bands((1, 10000), (10002, 50000)))
        assert problems == ["gap between 10000 and 10002"]

    def test_overlap(self):
        problems = catalog.validate_bands(bands((1, 10000), (9000, 50000)))
        assert any("overlap" in p for p in problems)

    def test_inverted_range(self):
        assert any("greater than" in p for p in catalog.validate_bands(bands((500, 100))))

    def test_quantity_limits(self):
        assert catalog.validate_bands(bands((0, 100)))
        assert catalog.validate_bands(bands((1, 10_000_001)))

    def test_price_limits(self):
        assert catalog.validate_bands(bands((1, 100), price="-1"))
        assert catalog.validate_bands(bands((1, 100), price="1000000"))
        assert catalog.validate_bands(bands((1, 100), price="999999.99")) == []

    def test_band_count(self):
        assert catalog.validate_bands([]) == ["a rate card needs at least one band"]
        many = bands(*[(i * 10 + 1, i * 10 + 10) for i in range(51)])
        assert any("at most 50" in p for p in catalog.validate_bands(many))

    def test_missing_values(self):
        assert catalog.validate_bands([{"from_qty": 1}])


class TestCatalogWrites:
    def payload(self, **overrides):
        data = {
            "code": "FOLD-A4-A5",
            "name": "Fold A4 to A5",
            "unit": "per_1k",
            "category": "FINISHING",
            "bands": bands((1, 10000), (10001, 50000)),
        }
        data.update(overrides)
        return data

    def test_create(self):
        snapshot = catalog.create_rate_card(self.payload())
        assert snapshot.code == "FOLD-A4-A5"
        assert [b.from_qty for b in snapshot.bands] == [1, 10001]
        assert snapshot.category == "FINISHING"

    def test_create_rejects_bad_bands_without_writing(self):
        with pytest.raises(ValidationError):
            catalog.create_rate_card(self.payload(bands=bands((1, 100), (200, 300))))
        assert not RateCard.objects.exists()

    def test_duplicate_code(self):
        catalog.create_rate_card(self.payload())
        with pytest.raises(ValidationError):
            catalog.create_rate_card(self.payload())

    def test_update_replaces_band_set(self):
        snapshot = catalog.create_rate_card(self.payload())
        updated = catalog.update_rate_card(snapshot.id, {"name": "Fold", "bands": bands((1, 999999), price="12")})
        assert updated.name == "Fold"
        assert len(updated.bands) == 1
        assert updated.bands[0].price_per_thousand == Decimal("12")
        assert Band.objects.filter(rate_card_id=snapshot.id).count() == 1

    def test_update_keeps_bands_when_not_given(self):
        snapshot = catalog.create_rate_card(self.payload())
        updated = catalog.update_rate_card(snapshot.id, {"notes": "Machine fold"})
        assert len(updated.bands) == 2
        assert updated.notes == "Machine fold"

    def test_update_unknown(self):
        with pytest.raises(NotFoundError):
            catalog.update_rate_card(404, {"name": "x"})

    def test_delete(self):
        snapshot = catalog.create_rate_card(self.payload())
        catalog.delete_rate_card(snapshot.id)
        with pytest.raises(NotFoundError):
            catalog.get_rate_card(snapshot.id)
        with pytest.raises(NotFoundError):
            catalog.delete_rate_card(snapshot.id)

    def test_reads(self, print_card, enclose_card):
        assert [c.code for c in catalog.list_rate_cards()] == ["ENCLOSE", "PRINT-A4"]
        found = catalog.get_rate_cards_by_ids([print_card.id, 9999, None])
        assert [c.code for c in found] == ["PRINT-A4"]
        assert catalog.get_rate_cards_by_ids([]) == []


class TestCommands:
    def test_seed_rate_cards(self):
        out = StringIO()
        call_command("seed_rate_cards", stdout=out)
        assert RateCard.objects.count() == 6
        envelope = RateCard.objects.get(code="ENV-C5")
        assert envelope.unit == "job"
        assert envelope.category == "ENVELOPES"
        assert "Seeded 6 rate cards" in out.getvalue()

    def test_seed_is_repeatable(self):
        call_command("seed_rate_cards", stdout=StringIO())
        call_command("seed_rate_cards", stdout=StringIO())
        assert RateCard.objects.count() == 6
        assert Band.objects.filter(rate_card__code="DATA-IN").count() == 3

    def test_seeded_cards_validate(self):
        call_command("seed_rate_cards", stdout=StringIO())
        out = StringIO()
        call_command("validate_rate_card_bands", stdout=out)
        assert "All 6 rate cards look good" in out.getvalue()

    def test_validate_reports_legacy_gaps(self, make_rate_card):
        make_rate_card("GAPPY", bands=[(1, 100, "1", "1"), (150, 300, "1", "1")])
        out = StringIO()
        call_command("validate_rate_card_bands", stdout=out)
        assert "GAPPY" in out.getvalue()
        assert "gap between 100 and 150" in out.getvalue()

    def test_validate_with_empty_catalogue(self):
        out = StringIO()
        call_command("validate_rate_card_bands", stdout=out)
        assert "No rate cards found" in out.getvalue()
