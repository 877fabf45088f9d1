"""Test fixtures for cep_race tests."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import httpx

from cep_race.models import ProviderSpec


@dataclass
class Route:
    """Canned HTTP reply for one provider host."""

    delay_s: float = 0.0
    status: int = 200
    body: Any = None
    raw: bytes | None = None
    raise_exc: Exception | None = None
    stream: httpx.AsyncByteStream | None = None


def make_test_provider(
    name: str = "fast",
    error_marker: str | None = None,
) -> ProviderSpec:
    """Provider whose host is ``<name>.test`` so transports can route on it."""
    return ProviderSpec(
        name=name,
        url_template=f"https://{name}.test/cep/{{query}}/json",
        error_marker=error_marker,
    )


def make_transport(routes: dict[str, Route], seen: list[httpx.Request] | None = None):
    """MockTransport that answers per host after an asyncio delay."""

    async def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        name = request.url.host.removesuffix(".test")
        route = routes[name]
        if route.delay_s:
            await asyncio.sleep(route.delay_s)
        if route.raise_exc is not None:
            raise route.raise_exc
        if route.stream is not None:
            return httpx.Response(route.status, stream=route.stream)
        if route.raw is not None:
            return httpx.Response(route.status, content=route.raw)
        return httpx.Response(route.status, content=json.dumps(route.body).encode())

    return httpx.MockTransport(handler)


class BrokenStream(httpx.AsyncByteStream):
    """Body stream that dies part-way through."""

    async def __aiter__(self):
        yield b'{"cep": "011'
        raise httpx.ReadError("connection reset by peer")

    async def aclose(self) -> None:
        pass
