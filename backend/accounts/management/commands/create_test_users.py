from django.core.management.base import BaseCommand
from rest_framework.authtoken.models import Token

from accounts.models import CustomUser

TEST_USERS = [
    ("estimator_user", "estimator@example.com", "estimator"),
    ("manager_user", "manager@example.com", "manager"),
]


class Command(BaseCommand):
    help = 'Create one local estimator and one manager, each with an API token'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='ChangeMe123!', help='Password given to newly created users.')

    def handle(self, *args, **options):
        for username, email, role in TEST_USERS:
            user, created = CustomUser.objects.get_or_create(
                username=username, defaults={'email': email, 'role': role}
            )
            if created:
                user.set_password(options['password'])
                user.save()
                self.stdout.write(self.style.SUCCESS(f"Created {role} user: {username}"))
            else:
                self.stdout.write(self.style.WARNING(f"User {username} already exists"))

            token, _ = Token.objects.get_or_create(user=user)
            self.stdout.write(f"  token: {token.key}")

        self.stdout.write(self.style.SUCCESS("Test users ready."))
