from django.core.management.base import BaseCommand

from pricing.models import RateCard
from pricing.services.catalog import validate_rate_card


class Command(BaseCommand):
    help = "Validates that every rate card has contiguous, non-overlapping, in-range bands."

    def handle(self, *args, **kwargs):
        self.stdout.write("Starting validation of all rate card bands...")
        cards_with_warnings = 0

        all_cards = RateCard.objects.all().prefetch_related('bands')
        total_cards = all_cards.count()

        if total_cards == 0:
            self.stdout.write(self.style.WARNING("No rate cards found in the database to validate."))
            return

        for card in all_cards:
            warnings = validate_rate_card(card)
            if warnings:
                cards_with_warnings += 1
                self.stdout.write(self.style.WARNING(f"--- Rate card {card.code} ('{card.name}') ---"))
                for warning in warnings:
                    self.stdout.write(f"  - {warning}")

        self.stdout.write("-" * 20)
        if cards_with_warnings > 0:
            self.stdout.write(self.style.ERROR(f"\nValidation complete. Found issues in {cards_with_warnings} out of {total_cards} rate cards."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nValidation complete. All {total_cards} rate cards look good."))
