"""Fetcher protocol -- one provider lookup per call, bounded by a shared deadline.

Defines the contract every fetcher (HTTP, mock) satisfies, the
:class:`Deadline` shared by all fetches of one race, and a factory for
instantiation by name.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from cep_race.models import Outcome, ProviderSpec


@dataclass(frozen=True)
class Deadline:
    """Absolute event-loop time after which a race is abandoned.

    One instance is created per race and handed to every fetch, so the
    whole race shares a single cancellation signal.
    """

    at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(at=asyncio.get_running_loop().time() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.at - asyncio.get_running_loop().time())

    def expired(self) -> bool:
        return self.remaining() <= 0.0


@runtime_checkable
class Fetcher(Protocol):
    """Abstract interface for a single provider lookup.

    Implementations must return exactly one :class:`Outcome` per call and
    must not raise for network, read, or parse failures; those become
    failure outcomes.  They must stop promptly once *deadline* passes and
    must not retry.
    """

    async def fetch(
        self,
        query: str,
        provider: ProviderSpec,
        deadline: Deadline,
    ) -> Outcome: ...


def create_fetcher(fetcher_name: str) -> Fetcher:
    """Factory function to create a fetcher by name.

    Args:
        fetcher_name: "http" or "mock".

    Returns:
        A Fetcher instance.

    Raises:
        ValueError: If *fetcher_name* is not recognised.
    """
    if fetcher_name == "http":
        from cep_race.fetchers.http import HTTPFetcher

        return HTTPFetcher()
    elif fetcher_name == "mock":
        from cep_race.fetchers.mock import MockFetcher

        return MockFetcher()
    else:
        raise ValueError(f"Unknown fetcher: {fetcher_name}")
