"""cep_race -- race postal-code providers and keep the fastest valid answer.

Public API::

    from cep_race import RaceCoordinator, race
    from cep_race.fetchers import HTTPFetcher, MockFetcher
    from cep_race.presenter import format_text
"""

from cep_race.errors import FetchErrorKind
from cep_race.fetcher import Deadline, Fetcher, create_fetcher
from cep_race.models import Outcome, ProviderSpec, RaceResult, RaceStatus, SettlePolicy
from cep_race.provider import create_provider, default_providers
from cep_race.race import RaceCoordinator, race

__all__ = [
    "Deadline",
    "FetchErrorKind",
    "Fetcher",
    "Outcome",
    "ProviderSpec",
    "RaceCoordinator",
    "RaceResult",
    "RaceStatus",
    "SettlePolicy",
    "create_fetcher",
    "create_provider",
    "default_providers",
    "race",
]
__version__ = "0.1.0"
