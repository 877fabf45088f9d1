from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass

from cep_race.errors import FetchErrorKind
from cep_race.fetcher import Deadline
from cep_race.models import FieldValue, Outcome, ProviderSpec


@dataclass(frozen=True)
class ScriptedReply:
    """What a mocked provider answers, and how long it takes.

    With neither ``fields`` nor ``error`` set the reply echoes the query
    back as ``{"cep": query, "provider": name}``.
    """

    delay_s: float = 0.0
    fields: Mapping[str, FieldValue] | None = None
    error: FetchErrorKind | None = None
    message: str = ""


class MockFetcher:
    def __init__(
        self,
        script: Mapping[str, ScriptedReply] | None = None,
        default: ScriptedReply | None = None,
    ) -> None:
        self.script = dict(script or {})
        self.default = default or ScriptedReply()
        self.calls: list[tuple[str, str]] = []
        self.finished: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch(
        self,
        query: str,
        provider: ProviderSpec,
        deadline: Deadline,
    ) -> Outcome:
        self.calls.append((provider.name, query))
        reply = self.script.get(provider.name, self.default)
        start = time.monotonic()
        try:
            if deadline.expired():
                return Outcome.failure(
                    provider.name, FetchErrorKind.CANCELLED, "deadline expired before request"
                )
            try:
                async with asyncio.timeout_at(deadline.at):
                    await asyncio.sleep(reply.delay_s)
            except TimeoutError:
                return Outcome.failure(
                    provider.name,
                    FetchErrorKind.CANCELLED,
                    "deadline reached during request",
                    (time.monotonic() - start) * 1000,
                )

            latency_ms = (time.monotonic() - start) * 1000
            if reply.error is not None:
                return Outcome.failure(provider.name, reply.error, reply.message, latency_ms)
            fields = reply.fields if reply.fields is not None else {
                "cep": query,
                "provider": provider.name,
            }
            return Outcome.success(provider.name, fields, latency_ms)
        finally:
            self.finished.append(provider.name)
