"""Built-in postal-code providers and URL construction.

Each provider is a plain :class:`~cep_race.models.ProviderSpec`; the
fetcher decides how to talk to it.  Custom providers can be declared in
YAML (see :mod:`cep_race.loader`) or built directly.
"""

from __future__ import annotations

import httpx

from cep_race.models import QUERY_PLACEHOLDER, ProviderSpec

BRASILAPI = ProviderSpec(
    name="brasilapi",
    url_template="https://brasilapi.com.br/api/cep/v1/{query}",
    description="BrasilAPI CEP v1",
)

VIACEP = ProviderSpec(
    name="viacep",
    url_template="http://viacep.com.br/ws/{query}/json/",
    error_marker="erro",
    description="ViaCEP JSON web service",
)

BUILTIN_PROVIDERS: dict[str, ProviderSpec] = {p.name: p for p in (BRASILAPI, VIACEP)}


def default_providers() -> tuple[ProviderSpec, ...]:
    return (BRASILAPI, VIACEP)


def create_provider(name: str) -> ProviderSpec:
    """Look up a built-in provider by name.

    Raises:
        ValueError: If *name* is not a built-in provider.
    """
    normalized = name.strip().lower()
    spec = BUILTIN_PROVIDERS.get(normalized)
    if spec is None:
        raise ValueError(
            f"Unknown provider '{normalized}'. "
            f"Use one of: {', '.join(sorted(BUILTIN_PROVIDERS))}."
        )
    return spec


def build_url(provider: ProviderSpec, query: str) -> str:
    """Substitute *query* into the provider template, unmodified.

    Raises:
        ValueError: If the result is not an absolute http(s) URL.
        httpx.InvalidURL: If the result cannot be parsed as a URL at all.
    """
    raw = provider.url_template.replace(QUERY_PLACEHOLDER, query)
    url = httpx.URL(raw)
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"Provider '{provider.name}' resolved to a non-http URL: {raw!r}")
    return raw
