from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import httpx

from cep_race.errors import FetchErrorKind, classify_exception
from cep_race.fetcher import Deadline
from cep_race.models import Outcome, ProviderSpec
from cep_race.provider import build_url

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "User-Agent": "cep-race/0.1",
}


class HTTPFetcher:
    """One ``GET`` per fetch through a client owned by that fetch alone.

    The client is opened and closed inside :meth:`fetch`, so a fetch the
    coordinator has stopped listening to still releases its connection
    once the shared deadline fires.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
        follow_redirects: bool = True,
    ) -> None:
        self.transport = transport
        self.headers = dict(DEFAULT_HEADERS) if headers is None else dict(headers)
        self.follow_redirects = follow_redirects

    def _client(self, deadline: Deadline) -> httpx.AsyncClient:
        # Never let httpx wait longer than the race itself.
        budget = max(deadline.remaining(), 0.001)
        return httpx.AsyncClient(
            transport=self.transport,
            headers=self.headers,
            timeout=httpx.Timeout(budget),
            follow_redirects=self.follow_redirects,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.monotonic() - start) * 1000

    def _failure(
        self, provider: ProviderSpec, kind: FetchErrorKind, detail: str, start: float
    ) -> Outcome:
        return Outcome.failure(provider.name, kind, detail, self._elapsed_ms(start))

    async def fetch(
        self,
        query: str,
        provider: ProviderSpec,
        deadline: Deadline,
    ) -> Outcome:
        start = time.monotonic()
        try:
            url = build_url(provider, query)
        except (ValueError, httpx.InvalidURL) as exc:
            return self._failure(provider, FetchErrorKind.REQUEST_CONSTRUCTION, str(exc), start)

        if deadline.expired():
            return self._failure(
                provider, FetchErrorKind.CANCELLED, "deadline expired before request", start
            )

        logger.debug("GET %s (provider=%s)", url, provider.name)
        reading_body = False
        try:
            async with asyncio.timeout_at(deadline.at):
                async with self._client(deadline) as client:
                    async with client.stream("GET", url) as response:
                        reading_body = True
                        body = await response.aread()
        except TimeoutError:
            return self._failure(
                provider, FetchErrorKind.CANCELLED, "deadline reached during request", start
            )
        except httpx.HTTPError as exc:
            kind = classify_exception(exc, reading_body=reading_body)
            detail = str(exc) or type(exc).__name__
            return self._failure(provider, kind, detail, start)

        return self._interpret(provider, response.status_code, body, start)

    def _interpret(
        self, provider: ProviderSpec, status_code: int, body: bytes, start: float
    ) -> Outcome:
        try:
            payload: Any = json.loads(body)
        # ValueError covers JSONDecodeError, UnicodeDecodeError and the int digit limit.
        except (ValueError, RecursionError) as exc:
            return self._failure(
                provider,
                FetchErrorKind.PARSE,
                f"HTTP {status_code}: invalid JSON body ({exc})",
                start,
            )
        if not isinstance(payload, dict):
            return self._failure(
                provider,
                FetchErrorKind.PARSE,
                f"HTTP {status_code}: expected a JSON object, got {type(payload).__name__}",
                start,
            )
        if not 200 <= status_code < 300:
            return self._failure(
                provider, FetchErrorKind.HTTP_STATUS, f"HTTP {status_code}", start
            )
        if provider.error_marker and payload.get(provider.error_marker):
            return self._failure(
                provider,
                FetchErrorKind.NOT_FOUND,
                f"provider flagged '{provider.error_marker}' in response",
                start,
            )
        return Outcome.success(provider.name, payload, self._elapsed_ms(start))
