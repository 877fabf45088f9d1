"""YAML provider loading. Files starting with underscore are skipped.

A file holds either one provider mapping or a ``providers:`` list::

    providers:
      - name: brasilapi
        url_template: https://brasilapi.com.br/api/cep/v1/{query}
      - name: viacep
        url_template: http://viacep.com.br/ws/{query}/json/
        error_marker: erro
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from cep_race.models import ProviderSpec

logger = logging.getLogger(__name__)


def _spec_from_mapping(entry: Any, path: Path) -> ProviderSpec:
    if not isinstance(entry, dict):
        raise ValueError(f"Provider entry must be a mapping in {path}")
    return ProviderSpec(
        name=entry["name"],
        url_template=entry["url_template"],
        error_marker=entry.get("error_marker"),
        description=entry.get("description", ""),
    )


def load_provider_file(path: str | Path) -> list[ProviderSpec]:
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f)
    if raw_data is None:
        raise ValueError(f"Empty provider YAML: {path}")
    if not isinstance(raw_data, dict):
        raise ValueError(f"Provider YAML root must be a mapping: {path}")

    if "providers" in raw_data:
        entries = raw_data["providers"]
        if not isinstance(entries, list):
            raise ValueError(f"'providers' must be a list in {path}")
        return [_spec_from_mapping(entry, path) for entry in entries]
    return [_spec_from_mapping(raw_data, path)]


def load_provider_directory(directory: str | Path) -> list[ProviderSpec]:
    """Load all YAML providers from a directory recursively, in path order."""
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Provider directory does not exist: %s", directory)
        return []

    specs: list[ProviderSpec] = []
    for path in sorted(directory.rglob("*.yaml")):
        if path.name.startswith("_"):
            continue
        try:
            specs.extend(load_provider_file(path))
        except (yaml.YAMLError, KeyError, ValueError, ValidationError) as exc:
            logger.exception("Failed to load providers from %s: %s", path, exc)
    return specs


def load_providers(path: str | Path) -> list[ProviderSpec]:
    """Load from a single file or a directory."""
    path = Path(path)
    if path.is_dir():
        return load_provider_directory(path)
    return load_provider_file(path)
