"""
Quote engine entry points.

Pricing is a pure function of the request and a rate card snapshot; the
functions here add numbering, persistence, history and access scoping around
it. Totals are never stored: every read re-derives them from the persisted
lines, the quote's current discount and the totals strategy chosen for the
reading user.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.policies import QuoteAccessPolicy, get_access_policy
from core.exceptions import NotFoundError, ValidationError
from core.money import THOUSAND, d
from core.rollout import RolloutDecision, RolloutEvaluator
from pricing.dataclasses import CalcLine, CustomPricingUnit, LineSelection, PricedQuote, Totals
from pricing.services import catalog
from pricing.services.pricing_service import (
    EnclosingSemantics,
    calculate_quote_lines,
    default_enclosing_semantics,
    validate_pricing_input,
)
from pricing.services.totals import TotalsStrategy, decide_totals_strategy
from .. import models as m
from . import repository
from .history import (
    CreatedPayload,
    EmailSentPayload,
    HistoryPayload,
    PdfGeneratedPayload,
    StatusChangedPayload,
    UpdatedPayload,
    describe_changes,
    line_snapshot,
)
from .numbering import QuoteNumber, SequenceStore, get_next_quote_number, get_next_revision_number

logger = logging.getLogger(__name__)


@dataclass
class QuoteDetail:
    quote: m.Quote
    lines: List[CalcLine]
    totals: Totals
    decision: RolloutDecision
    history: List[m.QuoteHistory] = field(default_factory=list)


def _user_id(user) -> Optional[str]:
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "rollout_id", None) or str(user.pk)


def _strategy(user, evaluator: Optional[RolloutEvaluator]):
    return decide_totals_strategy(_user_id(user), evaluator)


def _price(
    quantity: int,
    discount_percentage,
    selections: Sequence[LineSelection],
    inserts_count: int,
    semantics: EnclosingSemantics,
    strategy: TotalsStrategy,
) -> PricedQuote:
    validate_pricing_input(quantity, discount_percentage, selections, inserts_count)
    rate_cards = catalog.get_rate_cards_by_ids(s.rate_card_id for s in selections)
    lines = calculate_quote_lines(quantity, selections, rate_cards, inserts_count, semantics)
    totals = strategy.calculate(lines, quantity, discount_percentage)
    return PricedQuote(lines=lines, totals=totals, pricing_version=semantics.value)


# --------------------- Reading persisted quotes ---------------------

def calc_line_from_model(line: m.QuoteLine) -> CalcLine:
    return CalcLine(
        rate_card_id=line.rate_card_id,
        rate_card_code=line.rate_card_code,
        description=line.description,
        unit_price_per_thousand=line.unit_price_per_thousand,
        make_ready_fixed=line.make_ready_fixed,
        units_in_thousands=line.units_in_thousands,
        line_total=line.line_total,
        category=line.category,
        quantity=line.quantity,
        is_manual_item=line.is_manual_item,
        pricing_unit=line.custom_pricing_unit,
        quantity_override=line.quantity_override,
    )


def selection_from_line(line: m.QuoteLine) -> LineSelection:
    """Rebuild the selection a stored line was priced from, so it can be priced again."""
    override = line.quantity if line.quantity_override else None
    if line.is_manual_item:
        price = d(line.unit_price_per_thousand)
        if line.custom_pricing_unit == CustomPricingUnit.PER_ITEM:
            price = price / THOUSAND
        return LineSelection(
            quantity=override,
            custom_description=line.description,
            custom_setup_charge=d(line.make_ready_fixed),
            custom_price=price,
            custom_pricing_unit=line.custom_pricing_unit or CustomPricingUnit.PER_THOUSAND,
        )
    rate_card_id = line.rate_card_id or catalog.find_rate_card_id(line.rate_card_code)
    if rate_card_id is None:
        raise ValidationError(
            f"Rate card {line.rate_card_code or '(unknown)'} used by line '{line.description}' no longer exists; "
            "send new line selections to re-price this quote"
        )
    return LineSelection(rate_card_id=rate_card_id, quantity=override, description=line.description)


def _totals_for(quote: m.Quote, lines: List[CalcLine], strategy: TotalsStrategy) -> Totals:
    return strategy.calculate(lines, quote.quantity, quote.discount_percentage)


def _detail(quote: m.Quote, user, evaluator=None, with_history: bool = False) -> QuoteDetail:
    decision, strategy = _strategy(user, evaluator)
    lines = [calc_line_from_model(line) for line in quote.lines.all()]
    history = list(quote.history.all()) if with_history else []
    return QuoteDetail(
        quote=quote,
        lines=lines,
        totals=_totals_for(quote, lines, strategy),
        decision=decision,
        history=history,
    )


def _scoped(user, policy: Optional[QuoteAccessPolicy]):
    qs = m.Quote.objects.all()
    if user is None:
        return qs
    return (policy or get_access_policy()).scope(qs, user)


def _load(quote_id, user, policy, for_update: bool = False) -> m.Quote:
    qs = _scoped(user, policy)
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=quote_id)
    except (m.Quote.DoesNotExist, ValueError):
        raise NotFoundError("Quote", quote_id)


def get_quote(quote_id, user=None, policy: Optional[QuoteAccessPolicy] = None, evaluator=None) -> QuoteDetail:
    quote = _load(quote_id, user, policy)
    return _detail(quote, user, evaluator, with_history=True)


def list_quotes(user=None, search: Optional[str] = None, policy=None, evaluator=None) -> List[QuoteDetail]:
    qs = _scoped(user, policy).select_related("owner").prefetch_related("lines").order_by("-updated_at")
    term = (search or "").strip()
    if term:
        qs = qs.filter(Q(client_name__icontains=term) | Q(reference__icontains=term))
    decision, strategy = _strategy(user, evaluator)
    details = []
    for quote in qs:
        lines = [calc_line_from_model(line) for line in quote.lines.all()]
        details.append(QuoteDetail(quote=quote, lines=lines, totals=_totals_for(quote, lines, strategy), decision=decision))
    return details


# --------------------- Pricing without persistence ---------------------

def preview_quote(
    quantity: int,
    discount_percentage,
    selections: Sequence[LineSelection],
    user=None,
    inserts_count: int = 1,
    evaluator: Optional[RolloutEvaluator] = None,
) -> PricedQuote:
    _, strategy = _strategy(user, evaluator)
    return _price(quantity, discount_percentage, selections, inserts_count, default_enclosing_semantics(), strategy)


# --------------------- Mutations ---------------------

def _quote_fields(client_name, project_name, quantity, discount_percentage, inserts_count) -> Dict[str, Any]:
    problems = []
    if not (client_name or "").strip():
        problems.append("client_name is required")
    if not (project_name or "").strip():
        problems.append("project_name is required")
    if problems:
        raise ValidationError(problems)
    return {
        "client_name": client_name.strip(),
        "project_name": project_name.strip(),
        "quantity": quantity,
        "discount_percentage": d(discount_percentage),
        "inserts_count": inserts_count,
    }


def create_quote(
    *,
    user=None,
    client_name: str,
    project_name: str,
    quantity: int,
    selections: Sequence[LineSelection],
    discount_percentage=Decimal("0"),
    inserts_count: int = 1,
    store: Optional[SequenceStore] = None,
    evaluator: Optional[RolloutEvaluator] = None,
) -> QuoteDetail:
    fields = _quote_fields(client_name, project_name, quantity, discount_percentage, inserts_count)
    _, strategy = _strategy(user, evaluator)
    semantics = default_enclosing_semantics()
    priced = _price(quantity, discount_percentage, selections, inserts_count, semantics, strategy)

    with transaction.atomic():
        number = get_next_quote_number(store)
        quote = repository.create_quote(
            number,
            {**fields, "owner": user if _user_id(user) else None, "pricing_version": priced.pricing_version},
            priced.lines,
        )
        repository.append_history(quote.pk, CreatedPayload.build(priced.lines, priced.totals))

    logger.info(f"Created quote {quote.reference} for {quote.client_name} ({len(priced.lines)} lines)")
    return _detail(quote, user, evaluator, with_history=True)


def update_quote(
    quote_id,
    *,
    user=None,
    selections: Optional[Sequence[LineSelection]] = None,
    policy: Optional[QuoteAccessPolicy] = None,
    evaluator: Optional[RolloutEvaluator] = None,
    **changes,
) -> QuoteDetail:
    """
    Re-price a quote and replace its line set.

    ``changes`` may hold client_name, project_name, quantity,
    discount_percentage and inserts_count; anything omitted keeps its stored
    value. Without ``selections`` the existing lines are priced again. The
    stored pricing_version is kept so a quote never silently changes
    enclosing semantics.
    """
    unknown = set(changes) - {"client_name", "project_name", "quantity", "discount_percentage", "inserts_count"}
    if unknown:
        raise ValidationError([f"unknown field '{name}'" for name in sorted(unknown)])

    _, strategy = _strategy(user, evaluator)

    with transaction.atomic():
        quote = _load(quote_id, user, policy, for_update=True)
        old_lines = list(quote.lines.all())
        before = {
            "client_name": quote.client_name,
            "project_name": quote.project_name,
            "quantity": quote.quantity,
            "discount_percentage": quote.discount_percentage,
            "inserts_count": quote.inserts_count,
        }
        merged = {**before, **{k: v for k, v in changes.items() if v is not None}}
        fields = _quote_fields(**merged)

        if selections is None:
            selections = [selection_from_line(line) for line in old_lines]
        semantics = EnclosingSemantics(quote.pricing_version)
        priced = _price(
            fields["quantity"], fields["discount_percentage"], selections, fields["inserts_count"], semantics, strategy
        )

        diff = describe_changes(
            before,
            fields,
            [calc_line_from_model(line) for line in old_lines],
            priced.lines,
        )

        for name, value in fields.items():
            setattr(quote, name, value)
        quote.save()
        repository.replace_quote_lines(quote, priced.lines)
        repository.append_history(
            quote.pk,
            UpdatedPayload(changes=diff, lines=line_snapshot(priced.lines), totals=priced.totals.to_dict()),
        )

    logger.info(f"Updated quote {quote.reference}: {'; '.join(diff) or 'no visible changes'}")
    return _detail(quote, user, evaluator, with_history=True)


def revise_quote(
    quote_id,
    *,
    user=None,
    selections: Optional[Sequence[LineSelection]] = None,
    policy: Optional[QuoteAccessPolicy] = None,
    evaluator: Optional[RolloutEvaluator] = None,
    **changes,
) -> QuoteDetail:
    """New quote under the same base reference with the next revision number."""
    _, strategy = _strategy(user, evaluator)
    semantics = default_enclosing_semantics()

    with transaction.atomic():
        source = _load(quote_id, user, policy)
        # Serialise concurrent revisions of one base reference
        list(m.Quote.objects.select_for_update().filter(base_reference=source.base_reference).values_list("pk"))

        fields = _quote_fields(
            changes.get("client_name") or source.client_name,
            changes.get("project_name") or source.project_name,
            changes.get("quantity") or source.quantity,
            changes["discount_percentage"] if changes.get("discount_percentage") is not None else source.discount_percentage,
            changes["inserts_count"] if changes.get("inserts_count") is not None else source.inserts_count,
        )
        if selections is None:
            selections = [selection_from_line(line) for line in source.lines.all()]
        priced = _price(
            fields["quantity"], fields["discount_percentage"], selections, fields["inserts_count"], semantics, strategy
        )

        number = QuoteNumber(
            base_reference=source.base_reference,
            revision_number=get_next_revision_number(source.base_reference),
        )
        owner = user if _user_id(user) else source.owner
        quote = repository.create_quote(
            number, {**fields, "owner": owner, "pricing_version": priced.pricing_version}, priced.lines
        )
        repository.append_history(
            quote.pk, CreatedPayload.build(priced.lines, priced.totals, revised_from=source.reference)
        )

    logger.info(f"Revised quote {source.reference} as {quote.reference}")
    return _detail(quote, user, evaluator, with_history=True)


def _retry_history(quote_id: int, payload: HistoryPayload) -> None:
    try:
        repository.append_history(quote_id, payload)
        logger.info(f"History {payload.action} for quote {quote_id} recorded on retry")
    except DatabaseError:
        logger.exception(f"History {payload.action} for quote {quote_id} could not be recorded")


def record_history(quote_id: int, payload: HistoryPayload) -> Optional[m.QuoteHistory]:
    """
    Append a history entry without putting the caller's change at risk.

    The insert runs in a savepoint. If it fails the failure is logged and the
    append is tried once more after the surrounding transaction commits.
    """
    try:
        with transaction.atomic():
            return repository.append_history(quote_id, payload)
    except DatabaseError:
        logger.exception(f"Failed to append {payload.action} history for quote {quote_id}; retrying after commit")
        transaction.on_commit(lambda: _retry_history(quote_id, payload))
        return None


def set_status(quote_id, status: str, user=None, policy: Optional[QuoteAccessPolicy] = None) -> m.Quote:
    """Move a quote to any status. No transition is forbidden."""
    if status not in m.QuoteStatus.values:
        raise ValidationError(f"status must be one of {', '.join(m.QuoteStatus.values)}")

    with transaction.atomic():
        quote = _load(quote_id, user, policy, for_update=True)
        previous = quote.status
        repository.update_status(quote.pk, status)
        record_history(
            quote.pk,
            StatusChangedPayload(status=status, previous_status=previous, changed_at=timezone.now().isoformat()),
        )

    quote.refresh_from_db()
    logger.info(f"Quote {quote.reference} status {previous} -> {status}")
    return quote


def record_pdf_generated(quote_id, pdf_url: str, user=None, policy=None, evaluator=None) -> m.Quote:
    if not (pdf_url or "").strip():
        raise ValidationError("pdf_url is required")
    with transaction.atomic():
        quote = _load(quote_id, user, policy, for_update=True)
        quote.pdf_url = pdf_url
        quote.save(update_fields=["pdf_url", "updated_at"])
        totals = _detail(quote, user, evaluator).totals
        record_history(quote.pk, PdfGeneratedPayload(pdf_url=pdf_url, totals=totals.to_dict()))
    logger.info(f"PDF generated for quote {quote.reference}")
    return quote


def record_email_sent(quote_id, to: str, email_id: Optional[str] = None, pdf_url: Optional[str] = None,
                      user=None, policy=None) -> m.Quote:
    if not (to or "").strip():
        raise ValidationError("recipient address is required")
    with transaction.atomic():
        quote = _load(quote_id, user, policy)
        record_history(quote.pk, EmailSentPayload(to=to, email_id=email_id, pdf_url=pdf_url or quote.pdf_url))
    logger.info(f"Email for quote {quote.reference} sent to {to}")
    return quote
