"""
Quote references.

A quote is numbered once, from a single counter row, as ``Q00001``; each
revision of it gets a ``-<n>`` suffix starting at ``-0``. The counter is
bumped with one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING`` statement
so concurrent creators (threads or separate processes) never read the same
value. SQLite 3.35+ and PostgreSQL both support the statement.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import connection
from django.db.models import Max

from ..models import Quote, QuoteCounter

logger = logging.getLogger(__name__)

COUNTER_ID = "singleton"
REFERENCE_PREFIX = "Q"
REFERENCE_DIGITS = 5


class SequenceStore:
    def increment_and_get(self) -> int:
        raise NotImplementedError


class DatabaseSequenceStore(SequenceStore):
    """Atomic increment of the ``quote_counter`` row."""

    def __init__(self, counter_id: str = COUNTER_ID):
        self.counter_id = counter_id

    def increment_and_get(self) -> int:
        table = connection.ops.quote_name(QuoteCounter._meta.db_table)
        with connection.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {table} (id, last_number) VALUES (%s, 1)
                ON CONFLICT (id) DO UPDATE SET last_number = {table}.last_number + 1
                RETURNING last_number
                """,
                [self.counter_id],
            )
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Quote counter update returned no row")
        return int(row[0])


@dataclass(frozen=True)
class QuoteNumber:
    base_reference: str
    revision_number: int = 0

    @property
    def reference(self) -> str:
        return format_reference(self.base_reference, self.revision_number)


def format_base_reference(number: int) -> str:
    return f"{REFERENCE_PREFIX}{number:0{REFERENCE_DIGITS}d}"


def format_reference(base_reference: str, revision_number: int) -> str:
    return f"{base_reference}-{revision_number}"


def get_next_quote_number(store: Optional[SequenceStore] = None) -> QuoteNumber:
    """Issue a fresh base reference at revision 0, e.g. Q00001 / Q00001-0."""
    store = store or DatabaseSequenceStore()
    number = store.increment_and_get()
    issued = QuoteNumber(base_reference=format_base_reference(number))
    logger.debug(f"Issued quote number {issued.reference}")
    return issued


def get_next_revision_number(base_reference: str) -> int:
    """Highest revision already stored for the base, plus one; 0 if there is none."""
    current = Quote.objects.filter(base_reference=base_reference).aggregate(m=Max("revision_number"))["m"]
    return 0 if current is None else current + 1
