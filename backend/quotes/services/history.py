"""
History entry payloads, one shape per action.

Entries are stored as ``(action, payload JSON)``; ``payload_for`` turns a
stored row back into its typed payload.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Type

from pricing.dataclasses import CalcLine, Totals
from ..models import HistoryAction


def line_snapshot(lines: List[CalcLine]) -> List[Dict[str, Any]]:
    return [
        {
            "rate_card_id": line.rate_card_ref,
            "description": line.description,
            "line_total": str(line.line_total),
        }
        for line in lines
    ]


@dataclass(frozen=True)
class HistoryPayload:
    action = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryPayload":
        names = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in (data or {}).items() if k in names})


@dataclass(frozen=True)
class CreatedPayload(HistoryPayload):
    action = HistoryAction.CREATED
    lines: List[Dict[str, Any]] = field(default_factory=list)
    totals: Dict[str, Any] = field(default_factory=dict)
    revised_from: Optional[str] = None

    @classmethod
    def build(cls, lines: List[CalcLine], totals: Totals, revised_from: Optional[str] = None) -> "CreatedPayload":
        return cls(lines=line_snapshot(lines), totals=totals.to_dict(), revised_from=revised_from)


@dataclass(frozen=True)
class UpdatedPayload(HistoryPayload):
    action = HistoryAction.UPDATED
    changes: List[str] = field(default_factory=list)
    lines: List[Dict[str, Any]] = field(default_factory=list)
    totals: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StatusChangedPayload(HistoryPayload):
    action = HistoryAction.STATUS_CHANGED
    status: str = ""
    previous_status: Optional[str] = None
    changed_at: Optional[str] = None


@dataclass(frozen=True)
class PdfGeneratedPayload(HistoryPayload):
    action = HistoryAction.PDF_GENERATED
    pdf_url: str = ""
    totals: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmailSentPayload(HistoryPayload):
    action = HistoryAction.EMAIL_SENT
    to: str = ""
    email_id: Optional[str] = None
    pdf_url: Optional[str] = None


PAYLOAD_TYPES: Dict[str, Type[HistoryPayload]] = {
    cls.action: cls
    for cls in (CreatedPayload, UpdatedPayload, StatusChangedPayload, PdfGeneratedPayload, EmailSentPayload)
}


def payload_for(action: str, data: Dict[str, Any]) -> HistoryPayload:
    try:
        payload_cls = PAYLOAD_TYPES[action]
    except KeyError:
        raise ValueError(f"Unknown history action '{action}'")
    return payload_cls.from_dict(data)


FIELD_LABELS = {
    "client_name": "Client name",
    "project_name": "Project name",
    "quantity": "Quantity",
    "discount_percentage": "Discount",
    "inserts_count": "Inserts",
}


def _card_key(line: CalcLine):
    return line.rate_card_code or line.rate_card_id


def describe_changes(
    before: Dict[str, Any],
    after: Dict[str, Any],
    old_lines: List[CalcLine],
    new_lines: List[CalcLine],
) -> List[str]:
    """
    Human readable differences between two versions of a quote.

    Rate card lines are matched on their rate card code, which survives the
    card itself being deleted; bespoke items are matched by description.
    """
    changes: List[str] = []
    for name, label in FIELD_LABELS.items():
        if name in after and before.get(name) != after[name]:
            changes.append(f"{label} changed from {before.get(name)} to {after[name]}")

    old_cards = {_card_key(l): l.description for l in old_lines if not l.is_manual_item}
    new_cards = {_card_key(l): l.description for l in new_lines if not l.is_manual_item}
    for key in sorted(new_cards.keys() - old_cards.keys(), key=str):
        changes.append(f"Added {new_cards[key]}")
    for key in sorted(old_cards.keys() - new_cards.keys(), key=str):
        changes.append(f"Removed {old_cards[key]}")

    old_custom = {l.description for l in old_lines if l.is_manual_item}
    new_custom = {l.description for l in new_lines if l.is_manual_item}
    for desc in sorted(new_custom - old_custom):
        changes.append(f"Added custom item {desc}")
    for desc in sorted(old_custom - new_custom):
        changes.append(f"Removed custom item {desc}")

    return changes
