"""Race coordinator -- fan a query out to every provider, keep the first success.

One race:

1. Creates a :class:`~cep_race.fetcher.Deadline` and a bounded outcome
   channel, both private to that race.
2. Starts one fetch task per provider before waiting on anything.
3. Consumes outcomes as they arrive until a success shows up, every
   provider has failed, or the deadline passes.

Fetches still running when the race settles are not cancelled.  They are
bounded by the same deadline, deliver into a channel sized to never
block, and their outcome is reported as ``race.fetch.late`` and dropped.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable, Sequence

from cep_race.errors import classify_exception, log_failure
from cep_race.fetcher import Deadline, Fetcher
from cep_race.models import Outcome, ProviderSpec, RaceResult, RaceStatus, SettlePolicy
from cep_race.provider import default_providers
from cep_race.telemetry import NoOpTelemetrySink, RaceEvent, TelemetrySink

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 1.0


def check_timeout(timeout: float) -> float:
    if not math.isfinite(timeout) or timeout <= 0:
        raise ValueError(f"timeout must be a positive finite number, got {timeout!r}")
    return float(timeout)


def check_providers(providers: Sequence[ProviderSpec]) -> tuple[ProviderSpec, ...]:
    resolved = tuple(providers)
    if not resolved:
        raise ValueError("At least one provider is required.")
    names = [p.name for p in resolved]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate provider names: {', '.join(duplicates)}.")
    return resolved


class _OutcomeChannel:
    """Per-race queue with one slot per fetch.

    Fetch tasks only get :meth:`send`; the coordinator alone receives.
    """

    def __init__(self, capacity: int) -> None:
        self._queue: asyncio.Queue[Outcome] = asyncio.Queue(maxsize=capacity)
        self.closed = False

    def send(self, outcome: Outcome) -> bool:
        """Deliver without blocking.  Returns False if nobody is listening anymore."""
        if self.closed:
            return False
        self._queue.put_nowait(outcome)
        return True

    async def receive(self) -> Outcome:
        return await self._queue.get()

    def close(self) -> list[Outcome]:
        """Stop accepting outcomes and hand back the ones never received."""
        self.closed = True
        leftover: list[Outcome] = []
        while not self._queue.empty():
            leftover.append(self._queue.get_nowait())
        return leftover


class RaceCoordinator:
    """Races a fixed set of providers against a shared deadline.

    Parameters
    ----------
    providers:
        Providers to race.  Defaults to the built-in BrasilAPI + ViaCEP.
    fetcher:
        Performs each lookup.  Defaults to :class:`~cep_race.fetchers.HTTPFetcher`.
    timeout:
        Default race timeout in seconds; :meth:`race` can override it.
    policy:
        :attr:`SettlePolicy.FIRST_SUCCESS` waits past individual failures.
        :attr:`SettlePolicy.FIRST_OUTCOME` settles on whatever arrives first.
    """

    def __init__(
        self,
        providers: Sequence[ProviderSpec] | None = None,
        *,
        fetcher: Fetcher | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        policy: SettlePolicy = SettlePolicy.FIRST_SUCCESS,
        telemetry_sink: TelemetrySink | None = None,
    ) -> None:
        resolved = check_providers(providers if providers is not None else default_providers())

        if fetcher is None:
            from cep_race.fetchers.http import HTTPFetcher

            fetcher = HTTPFetcher()

        self._providers = resolved
        self.fetcher = fetcher
        self.timeout = check_timeout(timeout)
        self.policy = SettlePolicy(policy)
        self.telemetry = telemetry_sink or NoOpTelemetrySink()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def providers(self) -> tuple[ProviderSpec, ...]:
        return self._providers

    @property
    def pending(self) -> int:
        """Fetch tasks (from any race) that have not finished yet."""
        return len(self._inflight)

    def _discard_late(self, query: str, outcome: Outcome) -> None:
        logger.debug("Discarding late outcome from '%s'", outcome.provider)
        self.telemetry.emit(RaceEvent.fetched(query, outcome, late=True))

    async def _run_one(
        self,
        query: str,
        provider: ProviderSpec,
        deadline: Deadline,
        send: Callable[[Outcome], bool],
    ) -> None:
        try:
            outcome = await self.fetcher.fetch(query, provider, deadline)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Fetcher raised for provider '%s'", provider.name)
            outcome = Outcome.failure(
                provider.name, classify_exception(exc), str(exc) or type(exc).__name__
            )
        if not send(outcome):
            self._discard_late(query, outcome)

    def _launch(self, query: str, deadline: Deadline, channel: _OutcomeChannel) -> None:
        for provider in self._providers:
            task = asyncio.create_task(
                self._run_one(query, provider, deadline, channel.send),
                name=f"cep-race:{provider.name}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def race(self, query: str, timeout: float | None = None) -> RaceResult:
        """Run one race for *query* and return the settled result."""
        budget = self.timeout if timeout is None else check_timeout(timeout)
        started = time.monotonic()
        deadline = Deadline.after(budget)
        channel = _OutcomeChannel(len(self._providers))
        self.telemetry.emit(
            RaceEvent.started(
                query, [p.name for p in self._providers], budget, self.policy.value
            )
        )
        self._launch(query, deadline, channel)

        winner: Outcome | None = None
        failures: list[Outcome] = []
        try:
            async with asyncio.timeout_at(deadline.at):
                while winner is None and len(failures) < len(self._providers):
                    outcome = await channel.receive()
                    self.telemetry.emit(RaceEvent.fetched(query, outcome))
                    if outcome.ok:
                        winner = outcome
                        break
                    log_failure(outcome)
                    failures.append(outcome)
                    if self.policy is SettlePolicy.FIRST_OUTCOME:
                        break
            status = RaceStatus.SUCCESS if winner is not None else RaceStatus.ALL_FAILED
        except TimeoutError:
            status = RaceStatus.TIMEOUT
            logger.info("Race for %r timed out after %.2fs", query, budget)
        finally:
            for unconsumed in channel.close():
                self._discard_late(query, unconsumed)

        result = RaceResult(
            query=query,
            status=status,
            winner=winner,
            failures=tuple(failures),
            elapsed_ms=(time.monotonic() - started) * 1000,
            timeout_s=budget,
        )
        self.telemetry.emit(RaceEvent.settled(result))
        return result

    async def wait_closed(self) -> None:
        """Wait for abandoned fetches to finish.  They are bounded by their deadline."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)


async def race(
    query: str,
    providers: Sequence[ProviderSpec] | None = None,
    timeout: float = DEFAULT_TIMEOUT_S,
    *,
    fetcher: Fetcher | None = None,
    policy: SettlePolicy = SettlePolicy.FIRST_SUCCESS,
) -> RaceResult:
    """One-shot race with a throwaway coordinator."""
    coordinator = RaceCoordinator(providers, fetcher=fetcher, timeout=timeout, policy=policy)
    return await coordinator.race(query)
