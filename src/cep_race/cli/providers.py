"""CLI handler for ``cep-race providers``."""

from __future__ import annotations

from argparse import Namespace

from cep_race.provider import BUILTIN_PROVIDERS


def run_providers(args: Namespace) -> None:
    _ = args
    width = max(len(name) for name in BUILTIN_PROVIDERS)
    for name, spec in sorted(BUILTIN_PROVIDERS.items()):
        print(f"{name.ljust(width)}  {spec.url_template}")
