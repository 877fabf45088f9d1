"""Output formatters for race results: plain text and JSON."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from cep_race.errors import describe_failure
from cep_race.models import FieldValue, RaceResult, RaceStatus


def _scalar(value: FieldValue) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(_scalar(v) for v in value)
    return str(value)


def _flatten(fields: Mapping[str, FieldValue], prefix: str = "") -> list[tuple[str, str]]:
    rows: list[tuple[str, str]] = []
    for key, value in fields.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            rows.extend(_flatten(value, prefix=f"{name}."))
        else:
            rows.append((name, _scalar(value)))
    return rows


def format_address(fields: Mapping[str, FieldValue]) -> list[str]:
    """One ``key: value`` line per field, in the provider's order."""
    return [f"{key}: {value}" for key, value in _flatten(fields)]


def format_text(result: RaceResult) -> str:
    lines: list[str] = []
    if result.status is RaceStatus.SUCCESS:
        lines.append(
            f"Fastest response from: {result.source} ({result.elapsed_ms:.0f} ms)"
        )
        lines.extend(format_address(result.fields))
    elif result.status is RaceStatus.TIMEOUT:
        lines.append(
            f"Timeout: no provider answered {result.query!r} "
            f"within {result.timeout_s:g}s"
        )
    else:
        lines.append(f"All providers failed for {result.query!r}:")
        lines.extend(f"  {describe_failure(f)}" for f in result.failures)

    if result.status is RaceStatus.TIMEOUT and result.failures:
        lines.append("Failed before the deadline:")
        lines.extend(f"  {describe_failure(f)}" for f in result.failures)
    return "\n".join(lines)


def format_json(result: RaceResult) -> str:
    payload: dict[str, Any] = {
        "query": result.query,
        "status": result.status.value,
        "source": result.source,
        "fields": dict(result.fields),
        "failures": [
            {
                "provider": f.provider,
                "error": f.error.value if f.error else None,
                "message": f.message,
            }
            for f in result.failures
        ],
        "elapsed_ms": round(result.elapsed_ms, 1),
        "timeout_s": result.timeout_s,
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
