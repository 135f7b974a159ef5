"""
Who may see which quotes.

The quote engine never decides this itself: it is handed a policy and scopes
every read through it. ``QUOTE_ACCESS_POLICY`` picks the default.
"""
from __future__ import annotations

from typing import Optional

from django.conf import settings


class QuoteAccessPolicy:
    name = ""

    def scope(self, queryset, user):
        raise NotImplementedError

    def can_access(self, user, quote) -> bool:
        raise NotImplementedError


class OwnerAccessPolicy(QuoteAccessPolicy):
    """Estimators see their own quotes; managers see every quote."""

    name = "owner"

    def scope(self, queryset, user):
        if user is None:
            return queryset.none()
        if getattr(user, "is_manager", False):
            return queryset
        return queryset.filter(owner=user)

    def can_access(self, user, quote) -> bool:
        if user is None:
            return False
        if getattr(user, "is_manager", False):
            return True
        return quote.owner_id == user.pk


class TeamAccessPolicy(QuoteAccessPolicy):
    """One shared pool of quotes for the whole team."""

    name = "team"

    def scope(self, queryset, user):
        return queryset if user is not None else queryset.none()

    def can_access(self, user, quote) -> bool:
        return user is not None


POLICIES = {
    OwnerAccessPolicy.name: OwnerAccessPolicy,
    TeamAccessPolicy.name: TeamAccessPolicy,
}


def get_access_policy(name: Optional[str] = None) -> QuoteAccessPolicy:
    key = (name or getattr(settings, "QUOTE_ACCESS_POLICY", "owner") or "owner").strip().lower()
    try:
        return POLICIES[key]()
    except KeyError:
        raise ValueError(f"Unknown QUOTE_ACCESS_POLICY '{key}'. Expected one of: {', '.join(sorted(POLICIES))}")
