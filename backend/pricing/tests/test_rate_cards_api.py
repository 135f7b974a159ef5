import pytest

from pricing.models import RateCard

pytestmark = pytest.mark.django_db

URL = "/api/rate-cards/"


def card_payload(**overrides):
    data = {
        "code": "DATA-IN",
        "name": "Data Ingestion",
        "unit": "per_1k",
        "category": "DATA_PROCESSING",
        "bands": [
            {"from_qty": 1, "to_qty": 10000, "price_per_thousand": "35", "make_ready_fixed": "45"},
            {"from_qty": 10001, "to_qty": 50000, "price_per_thousand": "28", "make_ready_fixed": "45"},
        ],
    }
    data.update(overrides)
    return data


def test_estimator_can_list(estimator_client, print_card):
    res = estimator_client.get(URL)
    assert res.status_code == 200
    assert res.data[0]["code"] == "PRINT-A4"
    assert len(res.data[0]["bands"]) == 1


def test_estimator_cannot_create(estimator_client):
    res = estimator_client.post(URL, card_payload(), format="json")
    assert res.status_code == 403


def test_manager_creates_card(manager_client):
    res = manager_client.post(URL, card_payload(), format="json")
    assert res.status_code == 201, res.data
    assert res.data["code"] == "DATA-IN"
    assert [b["from_qty"] for b in res.data["bands"]] == [1, 10001]


def test_invalid_bands_are_rejected(manager_client):
    payload = card_payload(bands=[{"from_qty": 1, "to_qty": 100, "price_per_thousand": "1"},
                                  {"from_qty": 90, "to_qty": 200, "price_per_thousand": "1"}])
    res = manager_client.post(URL, payload, format="json")
    assert res.status_code == 400
    assert res.data["code"] == "invalid"
    assert any("overlap" in e for e in res.data["errors"])
    assert not RateCard.objects.exists()


def test_manager_updates_and_deletes(manager_client, print_card):
    res = manager_client.put(
        f"{URL}{print_card.id}/",
        card_payload(code="PRINT-A4", name="Print A4 Colour"),
        format="json",
    )
    assert res.status_code == 200, res.data
    assert res.data["name"] == "Print A4 Colour"
    assert len(res.data["bands"]) == 2

    assert manager_client.delete(f"{URL}{print_card.id}/").status_code == 204
    assert manager_client.get(f"{URL}{print_card.id}/").status_code == 404


def test_unknown_card_is_404(estimator_client):
    res = estimator_client.get(f"{URL}9999/")
    assert res.status_code == 404
    assert res.data["code"] == "not_found"
