"""Race telemetry: one typed event per race milestone, routed to a sink.

A race emits ``race.started`` once, ``race.fetch.completed`` for every
outcome the coordinator consumed, ``race.fetch.late`` for every outcome it
never consumed, and ``race.settled`` once.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cep_race.models import Outcome, RaceResult


class RaceEventKind(str, Enum):
    STARTED = "race.started"
    FETCH_COMPLETED = "race.fetch.completed"
    FETCH_LATE = "race.fetch.late"
    SETTLED = "race.settled"


@dataclass(frozen=True)
class RaceEvent:
    """A race milestone.

    ``status`` is ``"ok"`` or the error kind for fetch events, and the race
    status for ``race.settled``.  ``provider`` is the fetching provider for
    fetch events and the winner (if any) for ``race.settled``.
    """

    kind: RaceEventKind
    query: str
    provider: str | None = None
    status: str | None = None
    latency_ms: float | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    timestamp_ms: float = field(default_factory=lambda: time.time() * 1000)

    @property
    def name(self) -> str:
        return self.kind.value

    @classmethod
    def started(
        cls, query: str, providers: list[str], timeout_s: float, policy: str
    ) -> RaceEvent:
        return cls(
            kind=RaceEventKind.STARTED,
            query=query,
            attributes={"providers": providers, "timeout_s": timeout_s, "policy": policy},
        )

    @classmethod
    def fetched(cls, query: str, outcome: Outcome, *, late: bool = False) -> RaceEvent:
        return cls(
            kind=RaceEventKind.FETCH_LATE if late else RaceEventKind.FETCH_COMPLETED,
            query=query,
            provider=outcome.provider,
            status="ok" if outcome.error is None else outcome.error.value,
            latency_ms=outcome.latency_ms,
        )

    @classmethod
    def settled(cls, result: RaceResult) -> RaceEvent:
        return cls(
            kind=RaceEventKind.SETTLED,
            query=result.query,
            provider=result.source,
            status=result.status.value,
            latency_ms=result.elapsed_ms,
            attributes={"failures": [f.provider for f in result.failures]},
        )


@runtime_checkable
class TelemetrySink(Protocol):
    def emit(self, event: RaceEvent) -> None:
        """Emit a race event."""
        raise NotImplementedError


class NoOpTelemetrySink:
    def emit(self, event: RaceEvent) -> None:
        _ = event


class InMemoryTelemetrySink:
    """Keeps every event; handy for asserting on race lifecycles in tests."""

    def __init__(self) -> None:
        self.events: list[RaceEvent] = []

    def emit(self, event: RaceEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: RaceEventKind) -> list[RaceEvent]:
        return [e for e in self.events if e.kind is kind]

    def for_query(self, query: str) -> list[RaceEvent]:
        return [e for e in self.events if e.query == query]

    def arrival_order(self, query: str) -> list[str]:
        """Providers in the order their outcomes reached the coordinator."""
        return [
            e.provider
            for e in self.for_query(query)
            if e.kind is RaceEventKind.FETCH_COMPLETED and e.provider
        ]


class LoggerTelemetrySink:
    """One log line per event; late outcomes go to DEBUG, the rest to INFO."""

    def __init__(self, logger_name: str = "cep_race.telemetry") -> None:
        self.logger = logging.getLogger(logger_name)

    def emit(self, event: RaceEvent) -> None:
        level = logging.DEBUG if event.kind is RaceEventKind.FETCH_LATE else logging.INFO
        self.logger.log(
            level,
            "%s query=%r provider=%s status=%s latency_ms=%s",
            event.name,
            event.query,
            event.provider or "-",
            event.status or "-",
            "-" if event.latency_ms is None else f"{event.latency_ms:.1f}",
            extra={
                "race_event": event.name,
                "race_query": event.query,
                "race_attributes": event.attributes,
            },
        )
