"""Run configuration for the CLI.

The coordinator itself only takes explicit parameters; this dataclass is
where flags and environment fallbacks meet::

    CEP_RACE_TIMEOUT=2.5
    CEP_RACE_PROVIDERS=viacep,brasilapi
    CEP_RACE_FETCHER=http
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from cep_race.models import ProviderSpec, SettlePolicy
from cep_race.provider import create_provider, default_providers
from cep_race.race import DEFAULT_TIMEOUT_S, check_providers, check_timeout

_FETCHERS = ("http", "mock")


@dataclass
class RaceConfig:
    """Everything one CLI lookup needs.

    Attributes:
        providers: Providers to race, in launch order.
        timeout_s: Overall race deadline in seconds.
        policy: What settles the race besides a winner or the deadline.
        fetcher: Name passed to :func:`~cep_race.fetcher.create_fetcher`.
    """

    providers: tuple[ProviderSpec, ...] = field(default_factory=default_providers)
    timeout_s: float = DEFAULT_TIMEOUT_S
    policy: SettlePolicy = SettlePolicy.FIRST_SUCCESS
    fetcher: str = "http"

    def __post_init__(self) -> None:
        self.timeout_s = check_timeout(self.timeout_s)
        if self.fetcher not in _FETCHERS:
            raise ValueError(
                f"Unknown fetcher '{self.fetcher}'. Use one of: {', '.join(_FETCHERS)}."
            )
        self.providers = check_providers(self.providers)
        self.policy = SettlePolicy(self.policy)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RaceConfig:
        env = os.environ if environ is None else environ

        raw_timeout = env.get("CEP_RACE_TIMEOUT", "").strip()
        try:
            timeout_s = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_S
        except ValueError:
            raise ValueError(f"CEP_RACE_TIMEOUT must be a number, got {raw_timeout!r}") from None

        raw_providers = env.get("CEP_RACE_PROVIDERS", "")
        names = [n for n in (part.strip() for part in raw_providers.split(",")) if n]
        providers = tuple(create_provider(n) for n in names) if names else default_providers()

        fetcher = env.get("CEP_RACE_FETCHER", "").strip().lower() or "http"
        return cls(providers=providers, timeout_s=timeout_s, fetcher=fetcher)
