# backend/core/management/commands/bootstrap_dev.py
import os

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import BaseCommand
from rest_framework.authtoken.models import Token


class Command(BaseCommand):
    help = "Idempotently ensure a dev manager account + DRF token exists, optionally seeding the rate catalogue."

    def add_arguments(self, parser):
        parser.add_argument("--seed", action="store_true", help="Also run seed_rate_cards.")

    def handle(self, *args, **opts):
        User = get_user_model()
        username = os.getenv("DEV_ADMIN_USER", "admin")
        email = os.getenv("DEV_ADMIN_EMAIL", "admin@example.com")
        password = os.getenv("DEV_ADMIN_PASS", "ChangeMe123!")

        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": email, "is_staff": True, "is_superuser": True, "role": "manager"},
        )
        if created:
            user.set_password(password)
            user.save()
            self.stdout.write(self.style.SUCCESS(f"Created manager '{username}'"))
        else:
            self.stdout.write(f"User '{username}' already exists")

        token, _ = Token.objects.get_or_create(user=user)
        self.stdout.write(self.style.SUCCESS(f"TOKEN: {token.key}"))

        if opts["seed"]:
            call_command("seed_rate_cards", stdout=self.stdout)
