from django.core.management.base import BaseCommand
from django.db import transaction

from quotes.models import Quote, QuoteCounter


class Command(BaseCommand):
    help = "Dev-only: Delete every quote (lines and history included) and restart numbering at Q00001."

    def add_arguments(self, parser):
        parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    def handle(self, *args, **options):
        if not options["yes"]:
            answer = input("This deletes ALL quotes and their history. Type 'yes' to continue: ")
            if answer.strip().lower() != "yes":
                self.stdout.write(self.style.WARNING("Aborted."))
                return

        with transaction.atomic():
            deleted, _ = Quote.objects.all().delete()
            QuoteCounter.objects.all().delete()

        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} rows and reset the quote counter."))
