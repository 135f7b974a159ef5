from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List

from core.money import HUNDRED, ZERO
from ..models import QuoteStatus
from .quote_service import QuoteDetail, list_quotes

RECENT_ACTIVITY_LIMIT = 10


def dashboard_stats(user=None, policy=None, evaluator=None) -> Dict[str, Any]:
    """Status counts, conversion rate, won and pipeline values and a per-user leaderboard."""
    details = list_quotes(user, policy=policy, evaluator=evaluator)

    counts = {status: 0 for status in QuoteStatus.values}
    won_value = ZERO
    pipeline_value = ZERO
    board: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"won_count": 0, "won_value": ZERO, "quote_count": 0})

    for detail in details:
        quote = detail.quote
        counts[quote.status] += 1
        owner = quote.owner.get_username() if quote.owner else "unassigned"
        board[owner]["quote_count"] += 1
        if quote.status == QuoteStatus.WON:
            won_value += detail.totals.total
            board[owner]["won_count"] += 1
            board[owner]["won_value"] += detail.totals.total
        elif quote.status == QuoteStatus.SENT:
            pipeline_value += detail.totals.total

    decided = counts[QuoteStatus.WON] + counts[QuoteStatus.LOST]
    conversion_rate = Decimal(counts[QuoteStatus.WON]) / Decimal(decided) * HUNDRED if decided else ZERO

    leaderboard: List[Dict[str, Any]] = [
        {"user": name, **stats} for name, stats in board.items()
    ]
    leaderboard.sort(key=lambda row: (row["won_value"], row["won_count"]), reverse=True)

    return {
        "total_quotes": len(details),
        "by_status": counts,
        "conversion_rate": conversion_rate,
        "won_value": won_value,
        "pipeline_value": pipeline_value,
        "leaderboard": leaderboard,
    }


def recent_activity(user=None, limit: int = RECENT_ACTIVITY_LIMIT, policy=None, evaluator=None) -> List[QuoteDetail]:
    return list_quotes(user, policy=policy, evaluator=evaluator)[:limit]
