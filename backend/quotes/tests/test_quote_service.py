from decimal import Decimal

import pytest
from django.db import DatabaseError

from accounts.policies import OwnerAccessPolicy, TeamAccessPolicy
from core.exceptions import NoPricingBandError, NotFoundError, ValidationError
from pricing.dataclasses import CustomPricingUnit, LineSelection
from quotes.models import HistoryAction, Quote, QuoteHistory, QuoteLine, QuoteStatus
from quotes.services import quote_service, repository

pytestmark = pytest.mark.django_db


@pytest.fixture
def new_quote(estimator, print_card, enclose_card, flags):
    def _make(**overrides):
        kwargs = dict(
            user=estimator,
            client_name="Acme Utilities",
            project_name="Annual statements",
            quantity=20000,
            selections=[LineSelection(rate_card_id=print_card.id), LineSelection(rate_card_id=enclose_card.id)],
            evaluator=flags(),
        )
        kwargs.update(overrides)
        return quote_service.create_quote(**kwargs)
    return _make


class TestPreview:
    def test_preview_does_not_persist(self, print_card, enclose_card, flags):
        priced = quote_service.preview_quote(
            20000, 0, [LineSelection(rate_card_id=print_card.id), LineSelection(rate_card_id=enclose_card.id)],
            evaluator=flags(),
        )
        assert [line.line_total for line in priced.lines] == [Decimal("1030"), Decimal("550")]
        assert priced.totals.total == Decimal("1580")
        assert priced.totals.mode == "legacy"
        assert priced.pricing_version == "enclose-v2"
        assert not Quote.objects.exists()

    def test_preview_for_enabled_user_is_categorised(self, estimator, print_card, enclose_card, flags):
        priced = quote_service.preview_quote(
            20000, 0, [LineSelection(rate_card_id=print_card.id), LineSelection(rate_card_id=enclose_card.id)],
            user=estimator, evaluator=flags({"CATEGORY_SYSTEM": "estimator@example.com"}),
        )
        assert priced.totals.categories["PRINT"] == Decimal("1030")
        assert priced.totals.categories["ENCLOSING"] == Decimal("550")
        assert priced.totals.price_per_thousand == Decimal("79")

    def test_preview_rejects_empty_lines(self, flags):
        with pytest.raises(ValidationError):
            quote_service.preview_quote(1000, 0, [], evaluator=flags())


class TestCreate:
    def test_end_to_end(self, new_quote, estimator):
        detail = new_quote()
        quote = detail.quote
        assert quote.reference == "Q00001-0"
        assert quote.owner == estimator
        assert quote.status == QuoteStatus.DRAFT
        assert [line.line_total for line in detail.lines] == [Decimal("1030"), Decimal("550")]
        assert detail.totals.subtotal == Decimal("1580")
        assert detail.totals.total == Decimal("1580")

        history = list(quote.history.all())
        assert [h.action for h in history] == [HistoryAction.CREATED]
        assert Decimal(history[0].payload["totals"]["total"]) == Decimal("1580")

    def test_history_snapshot_matches_stored_lines(self, new_quote, make_rate_card):
        odd = make_rate_card("ODD", bands=[(1, 1_000_000, "12.3456", "0")])
        detail = new_quote(quantity=1001, selections=[LineSelection(rate_card_id=odd.id)])
        payload = detail.quote.history.get().payload

        stored = QuoteLine.objects.get(quote=detail.quote)
        assert stored.line_total == Decimal("12.3579")
        assert Decimal(payload["lines"][0]["line_total"]) == stored.line_total
        assert Decimal(payload["totals"]["total"]) == detail.totals.total

    def test_references_increase(self, new_quote):
        assert new_quote().quote.reference == "Q00001-0"
        assert new_quote().quote.reference == "Q00002-0"

    def test_unpriceable_line_creates_nothing(self, new_quote, make_rate_card):
        small = make_rate_card("SMALL", bands=[(1, 100, "1", "1")])
        with pytest.raises(NoPricingBandError):
            new_quote(selections=[LineSelection(rate_card_id=small.id)])
        assert not Quote.objects.exists()

    def test_numbering_failure_is_fatal(self, new_quote):
        class BrokenStore:
            def increment_and_get(self):
                raise DatabaseError("counter unavailable")

        with pytest.raises(DatabaseError):
            new_quote(store=BrokenStore())
        assert not Quote.objects.exists()

    def test_missing_client_name(self, new_quote):
        with pytest.raises(ValidationError):
            new_quote(client_name=" ")

    def test_custom_line_persists_as_manual_item(self, new_quote):
        detail = new_quote(selections=[
            LineSelection(
                custom_description="Hand insert",
                custom_setup_charge=Decimal("20"),
                custom_price=Decimal("0.05"),
                custom_pricing_unit=CustomPricingUnit.PER_ITEM,
            )
        ])
        stored = QuoteLine.objects.get(quote=detail.quote)
        assert stored.is_manual_item
        assert stored.rate_card_id is None
        assert stored.line_total == Decimal("1020")
        assert detail.lines[0].to_dict()["rate_card_id"] == "custom"


class TestRead:
    def test_totals_recomputed_from_lines(self, new_quote, estimator, flags):
        detail = new_quote()
        Quote.objects.filter(pk=detail.quote.pk).update(discount_percentage=Decimal("10"))
        fresh = quote_service.get_quote(detail.quote.pk, estimator, evaluator=flags())
        assert fresh.totals.discount == Decimal("158")
        assert fresh.totals.total == Decimal("1422")

    def test_totals_mode_follows_reader(self, new_quote, estimator, flags):
        detail = new_quote()
        fresh = quote_service.get_quote(detail.quote.pk, estimator, evaluator=flags({"CATEGORY_SYSTEM": "on"}))
        assert fresh.totals.mode == "categorised"
        assert len(fresh.totals.categories) == 7

    def test_other_estimator_cannot_see_quote(self, new_quote, other_estimator):
        detail = new_quote()
        with pytest.raises(NotFoundError):
            quote_service.get_quote(detail.quote.pk, other_estimator, policy=OwnerAccessPolicy())

    def test_manager_and_team_policy(self, new_quote, manager, other_estimator):
        detail = new_quote()
        assert quote_service.get_quote(detail.quote.pk, manager, policy=OwnerAccessPolicy()).quote == detail.quote
        assert quote_service.get_quote(detail.quote.pk, other_estimator, policy=TeamAccessPolicy()).quote == detail.quote

    def test_list_search(self, new_quote, estimator, flags):
        new_quote(client_name="Acme Utilities")
        new_quote(client_name="Borough Council")
        found = quote_service.list_quotes(estimator, search="borough", evaluator=flags())
        assert [d.quote.client_name for d in found] == ["Borough Council"]
        by_ref = quote_service.list_quotes(estimator, search="q00001", evaluator=flags())
        assert [d.quote.reference for d in by_ref] == ["Q00001-0"]

    def test_unknown_quote(self, estimator):
        with pytest.raises(NotFoundError):
            quote_service.get_quote(12345, estimator)


class TestUpdate:
    def test_update_replaces_lines_and_appends_history(self, new_quote, estimator, print_card, flags):
        detail = new_quote()
        created = QuoteHistory.objects.get(quote=detail.quote)
        created_payload = dict(created.payload)

        updated = quote_service.update_quote(
            detail.quote.pk,
            user=estimator,
            selections=[LineSelection(rate_card_id=print_card.id)],
            client_name="Acme Utilities plc",
            evaluator=flags(),
        )

        assert [line.description for line in updated.lines] == ["Print A4"]
        assert QuoteLine.objects.filter(quote=detail.quote).count() == 1
        assert updated.totals.total == Decimal("1030")

        history = list(QuoteHistory.objects.filter(quote=detail.quote))
        assert [h.action for h in history] == [HistoryAction.UPDATED, HistoryAction.CREATED]
        changes = history[0].payload["changes"]
        assert "Client name changed from Acme Utilities to Acme Utilities plc" in changes
        assert "Removed Enclose Items" in changes
        created.refresh_from_db()
        assert created.payload == created_payload

    def test_update_without_selections_reprices_existing_lines(self, new_quote, estimator, flags):
        detail = new_quote()
        updated = quote_service.update_quote(detail.quote.pk, user=estimator, quantity=10000, evaluator=flags())
        assert [line.line_total for line in updated.lines] == [Decimal("530"), Decimal("300")]
        assert "Quantity changed from 20000 to 10000" in updated.history[0].payload["changes"]

    def test_failed_update_keeps_previous_lines(self, new_quote, estimator, monkeypatch, flags):
        detail = new_quote()
        before = list(QuoteLine.objects.filter(quote=detail.quote).values_list("id", "line_total"))

        def boom(*args, **kwargs):
            raise DatabaseError("history table locked")

        monkeypatch.setattr(repository, "append_history", boom)
        with pytest.raises(DatabaseError):
            quote_service.update_quote(detail.quote.pk, user=estimator, quantity=5000, evaluator=flags())

        after = list(QuoteLine.objects.filter(quote=detail.quote).values_list("id", "line_total"))
        assert after == before
        assert Quote.objects.get(pk=detail.quote.pk).quantity == 20000

    def test_update_with_unpriceable_quantity(self, new_quote, estimator, make_rate_card, flags):
        small = make_rate_card("SMALL", bands=[(1, 100, "1", "1")])
        detail = new_quote()
        with pytest.raises(NoPricingBandError):
            quote_service.update_quote(
                detail.quote.pk, user=estimator, selections=[LineSelection(rate_card_id=small.id)], evaluator=flags()
            )
        assert QuoteLine.objects.filter(quote=detail.quote).count() == 2

    def test_custom_item_survives_repricing(self, new_quote, estimator, flags):
        detail = new_quote(selections=[
            LineSelection(
                custom_description="Badge",
                custom_setup_charge=Decimal("15"),
                custom_price=Decimal("0.25"),
                custom_pricing_unit=CustomPricingUnit.PER_ITEM,
                quantity=400,
            )
        ])
        updated = quote_service.update_quote(detail.quote.pk, user=estimator, project_name="Badges", evaluator=flags())
        assert updated.lines[0].line_total == Decimal("115")
        assert updated.lines[0].quantity == 400

    def test_pricing_version_is_kept(self, new_quote, estimator, settings, flags):
        settings.PRICING_ENCLOSING_SEMANTICS = "enclose-v1"
        detail = new_quote(inserts_count=2)
        assert detail.quote.pricing_version == "enclose-v1"
        assert detail.lines[1].line_total == Decimal("1050")

        settings.PRICING_ENCLOSING_SEMANTICS = "enclose-v2"
        updated = quote_service.update_quote(detail.quote.pk, user=estimator, evaluator=flags())
        assert updated.quote.pricing_version == "enclose-v1"
        assert updated.lines[1].line_total == Decimal("1050")

    def test_deleted_rate_card_blocks_repricing_with_clear_error(self, new_quote, estimator, enclose_card, flags):
        detail = new_quote()
        enclose_card.delete()
        with pytest.raises(ValidationError) as exc:
            quote_service.update_quote(detail.quote.pk, user=estimator, client_name="Acme Ltd", evaluator=flags())
        assert "ENCLOSE" in str(exc.value)
        assert Quote.objects.get(pk=detail.quote.pk).client_name == "Acme Utilities"

    def test_recreated_rate_card_is_found_by_code(self, new_quote, estimator, enclose_card, make_rate_card, flags):
        detail = new_quote()
        enclose_card.delete()
        make_rate_card(
            "ENCLOSE", unit="enclose", category="ENCLOSING",
            bands=[(1, 1_000_000, "25", "50")], name="Enclose Items",
        )
        updated = quote_service.update_quote(detail.quote.pk, user=estimator, client_name="Acme Ltd", evaluator=flags())
        assert [line.rate_card_code for line in updated.lines] == ["PRINT-A4", "ENCLOSE"]
        assert updated.history[0].payload["changes"] == ["Client name changed from Acme Utilities to Acme Ltd"]

    def test_line_from_deleted_rate_card_is_not_reported_as_custom(
        self, new_quote, estimator, print_card, enclose_card, flags
    ):
        detail = new_quote()
        enclose_card.delete()
        updated = quote_service.update_quote(
            detail.quote.pk, user=estimator, selections=[LineSelection(rate_card_id=print_card.id)], evaluator=flags()
        )
        assert updated.history[0].payload["changes"] == ["Removed Enclose Items"]

    def test_unknown_field(self, new_quote, estimator):
        detail = new_quote()
        with pytest.raises(ValidationError):
            quote_service.update_quote(detail.quote.pk, user=estimator, colour="blue")


class TestRevise:
    def test_revision_shares_base_reference(self, new_quote, estimator, flags):
        original = new_quote()
        revision = quote_service.revise_quote(original.quote.pk, user=estimator, quantity=10000, evaluator=flags())
        assert revision.quote.reference == "Q00001-1"
        assert revision.quote.base_reference == "Q00001"
        assert revision.quote.quantity == 10000
        assert revision.history[0].payload["revised_from"] == "Q00001-0"

        again = quote_service.revise_quote(original.quote.pk, user=estimator, evaluator=flags())
        assert again.quote.reference == "Q00001-2"
        assert Quote.objects.get(pk=original.quote.pk).quantity == 20000


class TestStatus:
    def test_any_transition_allowed(self, new_quote, estimator):
        quote = new_quote().quote
        for status in (QuoteStatus.WON, QuoteStatus.DRAFT, QuoteStatus.LOST, QuoteStatus.SENT):
            quote = quote_service.set_status(quote.pk, status, user=estimator)
            assert quote.status == status

        entries = QuoteHistory.objects.filter(quote=quote, action=HistoryAction.STATUS_CHANGED)
        assert entries.count() == 4
        assert entries.first().payload["status"] == "SENT"
        assert entries.first().payload["previous_status"] == "LOST"

    def test_invalid_status(self, new_quote, estimator):
        quote = new_quote().quote
        with pytest.raises(ValidationError):
            quote_service.set_status(quote.pk, "ARCHIVED", user=estimator)

    def test_history_failure_does_not_block_status(
        self, new_quote, estimator, monkeypatch, django_capture_on_commit_callbacks
    ):
        quote = new_quote().quote
        real_append = repository.append_history
        calls = {"n": 0}

        def flaky(quote_id, payload):
            calls["n"] += 1
            if calls["n"] == 1:
                raise DatabaseError("transient")
            return real_append(quote_id, payload)

        monkeypatch.setattr(repository, "append_history", flaky)
        with django_capture_on_commit_callbacks(execute=True):
            quote_service.set_status(quote.pk, QuoteStatus.SENT, user=estimator)

        assert Quote.objects.get(pk=quote.pk).status == QuoteStatus.SENT
        assert QuoteHistory.objects.filter(quote=quote, action=HistoryAction.STATUS_CHANGED).count() == 1
        assert calls["n"] == 2


class TestCollaboratorHooks:
    def test_pdf_generated(self, new_quote, estimator):
        quote = new_quote().quote
        quote_service.record_pdf_generated(quote.pk, "https://files.example.com/q1.pdf", user=estimator)
        quote.refresh_from_db()
        assert quote.pdf_url == "https://files.example.com/q1.pdf"
        entry = QuoteHistory.objects.filter(quote=quote).first()
        assert entry.action == HistoryAction.PDF_GENERATED
        assert Decimal(entry.payload["totals"]["total"]) == Decimal("1580")

    def test_email_sent_uses_stored_pdf(self, new_quote, estimator):
        quote = new_quote().quote
        quote_service.record_pdf_generated(quote.pk, "https://files.example.com/q1.pdf", user=estimator)
        quote_service.record_email_sent(quote.pk, "buyer@acme.example", email_id="msg-1", user=estimator)
        entry = QuoteHistory.objects.filter(quote=quote).first()
        assert entry.action == HistoryAction.EMAIL_SENT
        assert entry.payload == {"to": "buyer@acme.example", "email_id": "msg-1", "pdf_url": "https://files.example.com/q1.pdf"}

    def test_history_rows_cannot_be_edited(self, new_quote):
        entry = QuoteHistory.objects.filter(quote=new_quote().quote).first()
        entry.payload = {}
        with pytest.raises(ValueError):
            entry.save()
