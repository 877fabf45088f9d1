"""Concrete fetchers: real HTTP and a scripted mock."""

from cep_race.fetchers.http import HTTPFetcher
from cep_race.fetchers.mock import MockFetcher, ScriptedReply

__all__ = ["HTTPFetcher", "MockFetcher", "ScriptedReply"]
