"""Core types: provider descriptors, per-fetch outcomes, and race results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, field_validator

from cep_race.errors import FetchErrorKind

QUERY_PLACEHOLDER = "{query}"

# Decoded JSON value as returned by a provider.
FieldValue = Union[str, int, float, bool, None, list["FieldValue"], dict[str, "FieldValue"]]


class ProviderSpec(BaseModel):
    """A named address-lookup endpoint.

    ``url_template`` carries exactly one ``{query}`` substitution point.
    ``error_marker`` names a top-level key the provider sets (truthy) on an
    otherwise well-formed "not found" body, e.g. ViaCEP's ``{"erro": true}``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    url_template: str
    error_marker: str | None = None
    description: str = ""

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("provider name must not be empty")
        return cleaned

    @field_validator("url_template")
    @classmethod
    def check_template(cls, value: str) -> str:
        cleaned = value.strip()
        count = cleaned.count(QUERY_PLACEHOLDER)
        if count != 1:
            raise ValueError(
                f"url_template must contain exactly one {QUERY_PLACEHOLDER} "
                f"placeholder, found {count}"
            )
        return cleaned

    @field_validator("error_marker")
    @classmethod
    def normalize_marker(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: str) -> str:
        return value.strip()


class SettlePolicy(str, Enum):
    """What settles a race besides a winner or the deadline."""

    # Wait for a success, for every provider to fail, or for the deadline.
    FIRST_SUCCESS = "first_success"
    # Legacy: the first outcome of any kind settles the race.
    FIRST_OUTCOME = "first_outcome"


class RaceStatus(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ALL_FAILED = "all_failed"


@dataclass(frozen=True)
class Outcome:
    """Terminal result of one provider fetch: either fields or an error."""

    provider: str
    fields: Mapping[str, FieldValue] | None = None
    error: FetchErrorKind | None = None
    message: str = ""
    latency_ms: float = 0.0

    def __post_init__(self) -> None:
        if (self.fields is None) == (self.error is None):
            raise ValueError("an outcome carries exactly one of fields or error")

    @classmethod
    def success(
        cls,
        provider: str,
        fields: Mapping[str, FieldValue],
        latency_ms: float = 0.0,
    ) -> Outcome:
        return cls(
            provider=provider,
            fields=MappingProxyType(dict(fields)),
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls,
        provider: str,
        error: FetchErrorKind,
        message: str = "",
        latency_ms: float = 0.0,
    ) -> Outcome:
        return cls(provider=provider, error=error, message=message, latency_ms=latency_ms)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {
                "provider": self.provider,
                "fields": dict(self.fields or {}),
                "latency_ms": round(self.latency_ms, 1),
            }
        return {
            "provider": self.provider,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "latency_ms": round(self.latency_ms, 1),
        }


@dataclass(frozen=True)
class RaceResult:
    """The single settled result of one race.

    ``failures`` holds the failure outcomes the coordinator observed before
    it settled, in arrival order.  Outcomes that arrived after settling are
    never part of the result.
    """

    query: str
    status: RaceStatus
    winner: Outcome | None = None
    failures: tuple[Outcome, ...] = field(default_factory=tuple)
    elapsed_ms: float = 0.0
    timeout_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is RaceStatus.SUCCESS

    @property
    def source(self) -> str | None:
        return self.winner.provider if self.winner else None

    @property
    def fields(self) -> Mapping[str, FieldValue]:
        if self.winner is None or self.winner.fields is None:
            return MappingProxyType({})
        return self.winner.fields
