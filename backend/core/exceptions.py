"""
Error taxonomy for the quote engine.

Pricing and lifecycle code raises these; the HTTP layer turns them into JSON
responses through ``api_exception_handler``.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class QuoteEngineError(Exception):
    """Base exception for quote engine errors"""

    code = "quote_engine_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def payload(self) -> dict:
        return {"detail": str(self), "code": self.code}


class NotFoundError(QuoteEngineError):
    """Raised when a rate card or quote identifier is unknown"""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, kind: str, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class NoPricingBandError(QuoteEngineError):
    """Raised when a quantity falls outside every band of a rate card"""

    code = "no_pricing_band"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, rate_card_code: str, quantity: int):
        self.rate_card_code = rate_card_code
        self.quantity = quantity
        super().__init__(f"No pricing band found for rate card {rate_card_code} at quantity {quantity}")

    def payload(self) -> dict:
        data = super().payload()
        data.update({"rate_card_code": self.rate_card_code, "quantity": self.quantity})
        return data


class ValidationError(QuoteEngineError):
    """Raised when engine input is malformed"""

    code = "invalid"

    def __init__(self, messages: Iterable[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages))

    def payload(self) -> dict:
        data = super().payload()
        data["errors"] = self.messages
        return data


class ConfigurationError(QuoteEngineError):
    """Raised when a rollout flag holds a value in an unrecognised format"""

    code = "configuration_error"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, flag_name: Optional[str] = None, raw_value: Optional[str] = None):
        self.flag_name = flag_name
        self.raw_value = raw_value
        super().__init__(message)


def api_exception_handler(exc, context):
    if isinstance(exc, QuoteEngineError):
        if exc.http_status >= 500:
            logger.error(f"Quote engine failure in {context.get('view')}: {exc}")
        return Response(exc.payload(), status=exc.http_status)
    return exception_handler(exc, context)
