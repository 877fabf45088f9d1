"""CLI entry point: python -m cep_race <command>."""

from __future__ import annotations

import argparse
import sys

from cep_race.models import SettlePolicy


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="cep-race",
        description="Race postal-code providers and print the fastest answer",
    )
    sub = parser.add_subparsers(dest="command")

    lk = sub.add_parser("lookup", help="Look up one postal code")
    lk.add_argument("query", help="Postal code, passed to providers as-is")
    lk.add_argument("--timeout", type=float, default=None, help="Race timeout in seconds")
    lk.add_argument(
        "--provider",
        action="append",
        default=None,
        help="Built-in provider to race (repeatable)",
    )
    lk.add_argument("--providers-file", default="", help="YAML provider file or directory")
    lk.add_argument(
        "--policy",
        choices=[p.value for p in SettlePolicy],
        default=None,
        help="Settle policy (default: first_success)",
    )
    lk.add_argument("--fetcher", choices=["http", "mock"], default=None)
    lk.add_argument("--json", action="store_true", default=False, help="Output as JSON")
    lk.add_argument("--verbose", action="store_true", default=False, help="Log race events")

    sub.add_parser("providers", help="List built-in providers")

    args = parser.parse_args(argv)

    if args.command == "lookup":
        from cep_race.cli.lookup import run_lookup
        run_lookup(args)
    elif args.command == "providers":
        from cep_race.cli.providers import run_providers
        run_providers(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
