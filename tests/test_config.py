import asyncio

import jwt
import pytest

from lead_enricher.auth import EnvTokenProvider, StaticTokenProvider
from lead_enricher.config import ConfigurationError, Settings, load_configuration, provider_config
from lead_enricher.factory import build_pipeline
from lead_enricher.providers.dnc import DNCChecker
from lead_enricher.providers.sample import StaticDNCChecker
from lead_enricher.providers.skip_tracing import SkipTracingProvider
from lead_enricher.providers.telnyx import TelnyxLookupProvider


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("RAPIDAPI_KEY", "rapid")
    monkeypatch.setenv("TELNYX_API_KEY", "tel")
    monkeypatch.setenv("ENRICH_CHECKPOINT_INTERVAL", "10")
    monkeypatch.setenv("ENRICH_LEAD_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("DNC_ENABLED", "yes")
    monkeypatch.delenv("ENRICH_RATE_LIMIT_PER_MINUTE", raising=False)

    settings = Settings.from_env(dotenv=False)

    assert settings.rapidapi_key == "rapid"
    assert settings.telnyx_api_key == "tel"
    assert settings.checkpoint_interval == 10
    assert settings.lead_delay_seconds == 0.5
    assert settings.rate_limit_per_minute == 240.0
    assert settings.dnc_enabled is True


def test_settings_rejects_non_numeric_env(monkeypatch) -> None:
    monkeypatch.setenv("ENRICH_TIMEOUT_SECONDS", "soon")

    with pytest.raises(ConfigurationError, match="ENRICH_TIMEOUT_SECONDS"):
        Settings.from_env(dotenv=False)


def test_settings_apply_config_overrides() -> None:
    settings = Settings().apply({"checkpoint_interval": "3", "zip_lookup": {"table_path": "zips.json"}})

    assert settings.checkpoint_interval == 3
    assert settings.zip_lookup_table == "zips.json"
    assert Settings().checkpoint_interval == 5


def test_load_configuration_yaml_and_errors(tmp_path) -> None:
    yaml_path = tmp_path / "pipeline.yaml"
    yaml_path.write_text("rate_limit_per_minute: 120\nproviders:\n  dnc:\n    enabled: true\n", encoding="utf-8")
    empty_path = tmp_path / "empty.yml"
    empty_path.write_text("", encoding="utf-8")
    list_path = tmp_path / "list.yaml"
    list_path.write_text("- a\n- b\n", encoding="utf-8")

    config = load_configuration(yaml_path)

    assert config["rate_limit_per_minute"] == 120
    assert provider_config(config, "dnc") == {"enabled": True}
    assert provider_config(config, "token") == {}
    assert load_configuration(empty_path) == {}
    with pytest.raises(ConfigurationError):
        load_configuration(list_path)
    with pytest.raises(ConfigurationError, match="was not found"):
        load_configuration(tmp_path / "missing.yaml")
    ini_path = tmp_path / "config.ini"
    ini_path.write_text("[providers]\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Unsupported"):
        load_configuration(ini_path)


def test_provider_config_rejects_unknown_slot() -> None:
    with pytest.raises(ConfigurationError):
        provider_config({}, "scraper")


def test_build_pipeline_shares_one_client_between_default_providers() -> None:
    pipeline = build_pipeline({}, Settings(rapidapi_key="rapid", telnyx_api_key="tel"))

    orchestrator = pipeline.orchestrator
    assert isinstance(orchestrator._skip_tracing, SkipTracingProvider)
    assert isinstance(orchestrator._phone_intel, TelnyxLookupProvider)
    assert orchestrator._skip_tracing._client is orchestrator._phone_intel._client
    assert len(pipeline.clients) == 1
    assert not orchestrator.dnc_enabled
    assert pipeline.throttle.interval == pytest.approx(0.1)
    asyncio.run(pipeline.aclose())


def test_build_pipeline_gives_dedicated_client_when_slot_sets_rate_limit() -> None:
    config = {"providers": {"phone_intel": {"rate_limit_per_minute": 60}}}

    pipeline = build_pipeline(config, Settings(rapidapi_key="rapid", telnyx_api_key="tel"))

    assert len(pipeline.clients) == 2
    assert pipeline.orchestrator._phone_intel._client.rate_limiter.interval == pytest.approx(1.0)
    asyncio.run(pipeline.aclose())


def test_build_pipeline_enables_dnc_with_env_token_provider() -> None:
    settings = Settings(rapidapi_key="rapid", telnyx_api_key="tel", dnc_enabled=True, usha_agent_number="0001")

    pipeline = build_pipeline({}, settings)

    orchestrator = pipeline.orchestrator
    assert orchestrator.dnc_enabled
    assert isinstance(orchestrator._dnc, DNCChecker)
    assert isinstance(orchestrator._token_provider, EnvTokenProvider)
    asyncio.run(pipeline.aclose())


def test_build_pipeline_uses_configured_dnc_class_and_static_token() -> None:
    config = {
        "providers": {
            "dnc": {"class": "lead_enricher.providers.sample.StaticDNCChecker", "options": {"blocked_prefixes": ["303"]}},
            "token": {"options": {"token": "fixed"}},
        }
    }

    pipeline = build_pipeline(config, Settings(rapidapi_key="rapid", telnyx_api_key="tel"))

    assert isinstance(pipeline.orchestrator._dnc, StaticDNCChecker)
    assert isinstance(pipeline.orchestrator._token_provider, StaticTokenProvider)
    asyncio.run(pipeline.aclose())


def test_build_pipeline_reports_missing_keys_and_bad_classes() -> None:
    with pytest.raises(ConfigurationError, match="RAPIDAPI_KEY"):
        build_pipeline({}, Settings(telnyx_api_key="tel"))
    with pytest.raises(ConfigurationError, match="TELNYX_API_KEY"):
        build_pipeline({}, Settings(rapidapi_key="rapid"))
    with pytest.raises(ConfigurationError, match="Could not import"):
        build_pipeline({"providers": {"skip_tracing": {"class": "no_such_module.Provider"}}}, Settings(telnyx_api_key="t"))


def test_build_pipeline_dnc_token_comes_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("USHA_JWT_TOKEN", "")
    settings = Settings(rapidapi_key="rapid", telnyx_api_key="tel", dnc_enabled=True)
    pipeline = build_pipeline({}, settings)
    token_provider = pipeline.orchestrator._token_provider

    assert not hasattr(settings, "usha_jwt_token")
    assert asyncio.run(token_provider.get_token()) is None

    token = jwt.encode({"sub": "agent"}, "not-the-real-secret", algorithm="HS256")
    monkeypatch.setenv("USHA_JWT_TOKEN", token)
    assert asyncio.run(token_provider.get_token()) == token
    asyncio.run(pipeline.aclose())
