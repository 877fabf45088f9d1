"""Tests for RaceConfig and its environment fallbacks."""

from __future__ import annotations

import pytest

from cep_race.config import RaceConfig
from cep_race.models import SettlePolicy
from cep_race.provider import create_provider


class TestRaceConfig:
    def test_defaults(self):
        config = RaceConfig()
        assert [p.name for p in config.providers] == ["brasilapi", "viacep"]
        assert config.timeout_s == 1.0
        assert config.policy is SettlePolicy.FIRST_SUCCESS
        assert config.fetcher == "http"

    def test_policy_string_coerced(self):
        assert RaceConfig(policy="first_outcome").policy is SettlePolicy.FIRST_OUTCOME

    def test_rejects_bad_timeout(self):
        with pytest.raises(ValueError, match="positive"):
            RaceConfig(timeout_s=0)

    @pytest.mark.parametrize("timeout", [float("nan"), float("inf"), -float("inf")])
    def test_rejects_non_finite_timeout(self, timeout):
        with pytest.raises(ValueError, match="positive finite number"):
            RaceConfig(timeout_s=timeout)

    def test_rejects_duplicate_providers(self):
        with pytest.raises(ValueError, match="Duplicate provider names: viacep"):
            RaceConfig(providers=(create_provider("viacep"), create_provider("viacep")))

    def test_rejects_empty_providers(self):
        with pytest.raises(ValueError, match="At least one provider"):
            RaceConfig(providers=())

    def test_rejects_unknown_fetcher(self):
        with pytest.raises(ValueError, match="Unknown fetcher"):
            RaceConfig(fetcher="grpc")


class TestFromEnv:
    def test_empty_env_uses_defaults(self):
        config = RaceConfig.from_env({})
        assert config == RaceConfig()

    def test_reads_overrides(self):
        config = RaceConfig.from_env(
            {
                "CEP_RACE_TIMEOUT": "2.5",
                "CEP_RACE_PROVIDERS": " viacep , ",
                "CEP_RACE_FETCHER": "MOCK",
            }
        )
        assert config.timeout_s == 2.5
        assert [p.name for p in config.providers] == ["viacep"]
        assert config.fetcher == "mock"

    def test_bad_timeout(self):
        with pytest.raises(ValueError, match="must be a number"):
            RaceConfig.from_env({"CEP_RACE_TIMEOUT": "soon"})

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            RaceConfig.from_env({"CEP_RACE_PROVIDERS": "correios"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("CEP_RACE_TIMEOUT", "3")
        assert RaceConfig.from_env().timeout_s == 3.0

    def test_duplicate_provider_names(self):
        with pytest.raises(ValueError, match="Duplicate provider names"):
            RaceConfig.from_env({"CEP_RACE_PROVIDERS": "viacep,viacep"})

    def test_nan_timeout(self):
        with pytest.raises(ValueError, match="positive finite number"):
            RaceConfig.from_env({"CEP_RACE_TIMEOUT": "nan"})
