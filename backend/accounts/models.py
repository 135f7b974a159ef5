# backend/accounts/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models

class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ('estimator', 'Estimator'),
        ('manager', 'Manager'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='estimator')

    @property
    def is_manager(self) -> bool:
        return self.role == 'manager' or self.is_superuser

    @property
    def rollout_id(self) -> str:
        """Identifier used to bucket this user for progressive rollouts."""
        return self.email or self.username

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
