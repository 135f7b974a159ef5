import threading
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from core.rollout import MappingFlagSource, RolloutEvaluator


class InMemorySequenceStore:
    """Lock-guarded counter for exercising numbering from many threads without a database."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def increment_and_get(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


@pytest.fixture(autouse=True)
def _clear_rollout_env(monkeypatch):
    monkeypatch.delenv("ENABLE_CATEGORY_SYSTEM", raising=False)


@pytest.fixture
def memory_store():
    return InMemorySequenceStore()


@pytest.fixture
def flags():
    """Build an evaluator from a dict of flag values: ``flags({"CATEGORY_SYSTEM": "on"})``."""
    def _make(values=None):
        return RolloutEvaluator(MappingFlagSource(values or {}))
    return _make


@pytest.fixture
def estimator(db):
    return get_user_model().objects.create_user(
        username="estimator", email="estimator@example.com", password="pass", role="estimator"
    )


@pytest.fixture
def other_estimator(db):
    return get_user_model().objects.create_user(
        username="other", email="other@example.com", password="pass", role="estimator"
    )


@pytest.fixture
def manager(db):
    return get_user_model().objects.create_user(
        username="manager", email="manager@example.com", password="pass", role="manager"
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def estimator_client(estimator):
    client = APIClient()
    client.force_authenticate(user=estimator)
    return client


@pytest.fixture
def manager_client(manager):
    client = APIClient()
    client.force_authenticate(user=manager)
    return client


@pytest.fixture
def make_rate_card(db):
    from pricing.models import Band, Category, RateCard

    def _make(code, unit="per_1k", category=Category.PRINT, bands=None, name=None):
        card = RateCard.objects.create(code=code, name=name or code.title(), unit=unit, category=category)
        for from_qty, to_qty, per_k, make_ready in bands or [(1, 1_000_000, "50", "30")]:
            Band.objects.create(
                rate_card=card,
                from_qty=from_qty,
                to_qty=to_qty,
                price_per_thousand=Decimal(per_k),
                make_ready_fixed=Decimal(make_ready),
            )
        return card
    return _make


@pytest.fixture
def print_card(make_rate_card):
    return make_rate_card("PRINT-A4", bands=[(1, 1_000_000, "50", "30")], name="Print A4")


@pytest.fixture
def enclose_card(make_rate_card):
    return make_rate_card(
        "ENCLOSE", unit="enclose", category="ENCLOSING",
        bands=[(1, 1_000_000, "25", "50")], name="Enclose Items",
    )


@pytest.fixture
def envelope_card(make_rate_card):
    return make_rate_card(
        "ENV-C5", unit="job", category="ENVELOPES",
        bands=[(1, 999_999, "0", "135")], name="Envelope Supply C5",
    )
