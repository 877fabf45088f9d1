"""CLI handler for ``cep-race lookup``."""

from __future__ import annotations

import asyncio
import logging
import sys
from argparse import Namespace
from dataclasses import replace
from typing import Any

import yaml

from cep_race.config import RaceConfig
from cep_race.fetcher import create_fetcher
from cep_race.loader import load_providers
from cep_race.models import RaceResult, SettlePolicy
from cep_race.presenter import format_json, format_text
from cep_race.provider import create_provider
from cep_race.race import RaceCoordinator
from cep_race.telemetry import LoggerTelemetrySink, NoOpTelemetrySink


def _build_config(args: Namespace) -> RaceConfig:
    overrides: dict[str, Any] = {}
    if args.timeout is not None:
        overrides["timeout_s"] = args.timeout
    if args.policy:
        overrides["policy"] = SettlePolicy(args.policy)
    if args.fetcher:
        overrides["fetcher"] = args.fetcher

    providers = [create_provider(name) for name in args.provider or []]
    if args.providers_file:
        providers.extend(load_providers(args.providers_file))
    if providers:
        overrides["providers"] = tuple(providers)
    return replace(RaceConfig.from_env(), **overrides)


async def _run(config: RaceConfig, query: str, as_json: bool, verbose: bool) -> RaceResult:
    coordinator = RaceCoordinator(
        config.providers,
        fetcher=create_fetcher(config.fetcher),
        timeout=config.timeout_s,
        policy=config.policy,
        telemetry_sink=LoggerTelemetrySink() if verbose else NoOpTelemetrySink(),
    )
    result = await coordinator.race(query)
    print(format_json(result) if as_json else format_text(result))
    await coordinator.wait_closed()
    return result


def run_lookup(args: Namespace) -> None:
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.ERROR,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _build_config(args)
    except (OSError, KeyError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    result = asyncio.run(_run(config, args.query, args.json, args.verbose))
    if not result.ok:
        sys.exit(1)
