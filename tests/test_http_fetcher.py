"""Tests for HTTPFetcher against an in-process mock transport."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest
from conftest import BrokenStream, Route, make_test_provider, make_transport

from cep_race.errors import FetchErrorKind
from cep_race.fetcher import Deadline, Fetcher
from cep_race.fetchers.http import HTTPFetcher
from cep_race.models import ProviderSpec

ADDRESS = {"cep": "01153000", "street": "Rua Vitorino Carmilo", "city": "São Paulo"}


async def _fetch(route: Route, *, query: str = "01153000", timeout: float = 1.0, provider=None):
    seen: list[httpx.Request] = []
    fetcher = HTTPFetcher(transport=make_transport({"fast": route}, seen))
    outcome = await fetcher.fetch(
        query, provider or make_test_provider("fast"), Deadline.after(timeout)
    )
    return outcome, seen


class TestSuccess:
    @pytest.mark.asyncio
    async def test_parses_object_body(self):
        outcome, _ = await _fetch(Route(body=ADDRESS))
        assert outcome.ok
        assert outcome.provider == "fast"
        assert dict(outcome.fields) == ADDRESS
        assert outcome.latency_ms >= 0.0

    @pytest.mark.asyncio
    async def test_preserves_field_order(self):
        body = {"z": 1, "a": {"nested": True}, "m": None}
        outcome, _ = await _fetch(Route(body=body))
        assert list(outcome.fields) == ["z", "a", "m"]
        assert outcome.fields["a"] == {"nested": True}

    @pytest.mark.asyncio
    async def test_query_substituted_unmodified(self):
        _, seen = await _fetch(Route(body=ADDRESS), query="01153-000")
        assert len(seen) == 1
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/cep/01153-000/json"

    @pytest.mark.asyncio
    async def test_error_marker_false_is_success(self):
        provider = make_test_provider("fast", error_marker="erro")
        outcome, _ = await _fetch(Route(body={**ADDRESS, "erro": False}), provider=provider)
        assert outcome.ok

    def test_satisfies_protocol(self):
        assert isinstance(HTTPFetcher(), Fetcher)


class TestFailureClassification:
    @pytest.mark.asyncio
    async def test_malformed_json_is_parse_error(self):
        outcome, _ = await _fetch(Route(raw=b"<html>oops</html>"))
        assert not outcome.ok
        assert outcome.error is FetchErrorKind.PARSE
        assert outcome.fields is None

    @pytest.mark.asyncio
    async def test_deeply_nested_body_is_parse_error(self):
        outcome, _ = await _fetch(Route(raw=b"[" * 200_000 + b"]" * 200_000))
        assert outcome.error is FetchErrorKind.PARSE

    @pytest.mark.asyncio
    async def test_oversized_integer_is_parse_error(self):
        outcome, _ = await _fetch(Route(raw=b'{"n": ' + b"9" * 5000 + b"}"))
        assert outcome.error is FetchErrorKind.PARSE

    @pytest.mark.asyncio
    async def test_json_array_is_parse_error(self):
        outcome, _ = await _fetch(Route(body=[1, 2, 3]))
        assert outcome.error is FetchErrorKind.PARSE
        assert "list" in outcome.message

    @pytest.mark.asyncio
    async def test_server_error_with_invalid_body_is_parse_error(self):
        outcome, _ = await _fetch(Route(status=500, raw=b"Internal Server Error"))
        assert outcome.error is FetchErrorKind.PARSE
        assert "500" in outcome.message

    @pytest.mark.asyncio
    async def test_error_status_with_json_body(self):
        outcome, _ = await _fetch(Route(status=404, body={"message": "CEP não encontrado"}))
        assert outcome.error is FetchErrorKind.HTTP_STATUS
        assert outcome.message == "HTTP 404"

    @pytest.mark.asyncio
    async def test_error_marker_is_not_found(self):
        provider = make_test_provider("fast", error_marker="erro")
        outcome, _ = await _fetch(Route(body={"erro": True}), provider=provider)
        assert outcome.error is FetchErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_connection_refused_is_transport_error(self):
        outcome, _ = await _fetch(Route(raise_exc=httpx.ConnectError("connection refused")))
        assert outcome.error is FetchErrorKind.TRANSPORT
        assert "refused" in outcome.message

    @pytest.mark.asyncio
    async def test_truncated_body_is_body_read_error(self):
        outcome, _ = await _fetch(Route(stream=BrokenStream()))
        assert outcome.error is FetchErrorKind.BODY_READ

    @pytest.mark.asyncio
    async def test_httpx_timeout_is_cancelled(self):
        outcome, _ = await _fetch(Route(raise_exc=httpx.ReadTimeout("read timed out")))
        assert outcome.error is FetchErrorKind.CANCELLED

    @pytest.mark.asyncio
    async def test_non_http_template_is_request_construction_error(self):
        provider = ProviderSpec(name="fast", url_template="ftp://fast.test/{query}")
        outcome, seen = await _fetch(Route(body=ADDRESS), provider=provider)
        assert outcome.error is FetchErrorKind.REQUEST_CONSTRUCTION
        assert seen == []

    @pytest.mark.asyncio
    async def test_control_character_in_query_is_request_construction_error(self):
        outcome, seen = await _fetch(Route(body=ADDRESS), query="0115\n3000")
        assert outcome.error is FetchErrorKind.REQUEST_CONSTRUCTION
        assert seen == []


class TestDeadline:
    @pytest.mark.asyncio
    async def test_slow_provider_is_cancelled_at_deadline(self):
        start = time.monotonic()
        outcome, _ = await _fetch(Route(delay_s=5.0, body=ADDRESS), timeout=0.2)
        elapsed = time.monotonic() - start
        assert outcome.error is FetchErrorKind.CANCELLED
        assert elapsed < 1.0

    @pytest.mark.asyncio
    async def test_expired_deadline_skips_request(self):
        seen: list[httpx.Request] = []
        fetcher = HTTPFetcher(transport=make_transport({"fast": Route(body=ADDRESS)}, seen))
        expired = Deadline(at=asyncio.get_running_loop().time() - 1.0)
        outcome = await fetcher.fetch("01153000", make_test_provider("fast"), expired)
        assert outcome.error is FetchErrorKind.CANCELLED
        assert seen == []

    @pytest.mark.asyncio
    async def test_deadline_remaining_counts_down(self):
        deadline = Deadline.after(10.0)
        assert 9.0 < deadline.remaining() <= 10.0
        assert not deadline.expired()
