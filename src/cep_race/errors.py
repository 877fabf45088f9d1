"""Fetch failure taxonomy and the shared logging helpers for failed outcomes."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from cep_race.models import Outcome

logger = logging.getLogger(__name__)


class FetchErrorKind(str, Enum):
    REQUEST_CONSTRUCTION = "request_construction"
    TRANSPORT = "transport"
    CANCELLED = "cancelled"
    BODY_READ = "body_read"
    PARSE = "parse"
    HTTP_STATUS = "http_status"
    NOT_FOUND = "not_found"


_USER_MESSAGES: dict[FetchErrorKind, str] = {
    FetchErrorKind.REQUEST_CONSTRUCTION: "could not build a request",
    FetchErrorKind.TRANSPORT: "provider unreachable",
    FetchErrorKind.CANCELLED: "no answer before the deadline",
    FetchErrorKind.BODY_READ: "response was cut off",
    FetchErrorKind.PARSE: "response was not a JSON object",
    FetchErrorKind.HTTP_STATUS: "provider returned an error status",
    FetchErrorKind.NOT_FOUND: "postal code not found",
}


def classify_exception(exc: BaseException, *, reading_body: bool = False) -> FetchErrorKind:
    """Map an exception raised during a fetch onto the failure taxonomy.

    ``reading_body`` marks exceptions raised after the response headers
    arrived, while the body was being streamed.
    """
    # httpx timeouts are derived from the shared race deadline.
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return FetchErrorKind.CANCELLED
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return FetchErrorKind.REQUEST_CONSTRUCTION
    if isinstance(exc, (json.JSONDecodeError, UnicodeDecodeError)):
        return FetchErrorKind.PARSE
    if isinstance(exc, httpx.DecodingError):
        return FetchErrorKind.BODY_READ
    if reading_body and isinstance(exc, httpx.HTTPError):
        return FetchErrorKind.BODY_READ
    return FetchErrorKind.TRANSPORT


def describe_failure(outcome: Outcome) -> str:
    """Short, user-safe line for a failed outcome."""
    if outcome.error is None:
        return f"{outcome.provider}: ok"
    return f"{outcome.provider}: {_USER_MESSAGES[outcome.error]} ({outcome.error.value})"


def log_failure(outcome: Outcome) -> str:
    """Log full failure details while returning the user-facing description."""
    logger.warning(
        "Provider '%s' failed with %s after %.1f ms: %s",
        outcome.provider,
        outcome.error.value if outcome.error else "unknown",
        outcome.latency_ms,
        outcome.message,
    )
    return describe_failure(outcome)
