# backend/pricing/management/commands/seed_rate_cards.py

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from pricing.models import Band, Category, RateCard, RateCardUnit


def band(from_qty, to_qty, per_thousand, make_ready):
    return {
        "from_qty": from_qty,
        "to_qty": to_qty,
        "price_per_thousand": Decimal(per_thousand),
        "make_ready_fixed": Decimal(make_ready),
    }


STANDARD_RANGES = ((1, 10000), (10001, 50000), (50001, 200000))

RATE_CARDS = [
    {
        "code": "DATA-IN",
        "name": "Data Ingestion",
        "unit": RateCardUnit.PER_THOUSAND,
        "category": Category.DATA_PROCESSING,
        "notes": "Standard data preparation and validation.",
        "prices": (("35", "45"), ("28", "45"), ("22", "35")),
    },
    {
        "code": "A4-SIMPLEX",
        "name": "Personalise A4 Simplex",
        "unit": RateCardUnit.PER_THOUSAND,
        "category": Category.PERSONALISATION,
        "notes": "Digital print simplex.",
        "prices": (("70", "65"), ("55", "65"), ("48", "55")),
    },
    {
        "code": "FOLD-A4-A5",
        "name": "Fold A4 to A5",
        "unit": RateCardUnit.PER_THOUSAND,
        "category": Category.FINISHING,
        "prices": (("25", "30"), ("19", "28"), ("16", "26")),
    },
    {
        "code": "ENCLOSE",
        "name": "Enclose Items",
        "unit": RateCardUnit.PER_INSERT,
        "category": Category.ENCLOSING,
        "notes": "Insert-aware enclosing line.",
        "prices": (("40", "60"), ("32", "60"), ("27", "55")),
    },
    {
        "code": "POST-C5-STANDARD",
        "name": "Postage C5 Standard",
        "unit": RateCardUnit.PER_THOUSAND,
        "category": Category.POSTAGE,
        "notes": "Royal Mail standard class.",
        "prices": (("295", "0"), ("285", "0"), ("275", "0")),
    },
]

JOB_CARDS = [
    {
        "code": "ENV-C5",
        "name": "Envelope Supply C5",
        "unit": RateCardUnit.PER_JOB,
        "category": Category.ENVELOPES,
        "bands": [band(1, 999999, "0", "135")],
    },
]


def card_bands(entry):
    if "bands" in entry:
        return entry["bands"]
    return [band(lo, hi, per_k, mr) for (lo, hi), (per_k, mr) in zip(STANDARD_RANGES, entry["prices"])]


class Command(BaseCommand):
    help = "Seeds the standard print and mailing rate cards. Existing cards with the same code are replaced."

    def add_arguments(self, parser):
        parser.add_argument(
            "--clear",
            action="store_true",
            help="Delete every rate card before seeding.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options["clear"]:
            deleted, _ = RateCard.objects.all().delete()
            self.stdout.write(self.style.WARNING(f"Cleared {deleted} rate card rows."))

        for entry in RATE_CARDS + JOB_CARDS:
            card, created = RateCard.objects.update_or_create(
                code=entry["code"],
                defaults={
                    "name": entry["name"],
                    "unit": entry["unit"],
                    "category": entry["category"],
                    "notes": entry.get("notes"),
                },
            )
            card.bands.all().delete()
            Band.objects.bulk_create([Band(rate_card=card, **b) for b in card_bands(entry)])
            verb = "Created" if created else "Updated"
            self.stdout.write(f"  {verb} {card.code} ({card.bands.count()} bands)")

        self.stdout.write(self.style.SUCCESS(f"Seeded {len(RATE_CARDS) + len(JOB_CARDS)} rate cards."))
