"""Configuration helpers for the enrichment pipeline."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

PROVIDER_SLOTS = ("skip_tracing", "phone_intel", "dnc", "token")


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Configuration file '{file_path}' could not be parsed: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_number(name: str, default: float, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} must be a number, got {raw!r}") from exc


@dataclass
class Settings:
    """Secrets and tunables read from the environment (and ``.env``)."""

    rapidapi_key: str = ""
    skip_tracing_host: str = "skip-tracing-working-api.p.rapidapi.com"
    telnyx_api_key: str = ""
    usha_agent_number: str = ""
    rate_limit_per_minute: float = 240.0
    timeout_seconds: float = 30.0
    checkpoint_interval: int = 5
    lead_delay_seconds: float = 0.1
    zip_lookup_table: Optional[str] = None
    dnc_enabled: bool = False

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            rapidapi_key=os.getenv("RAPIDAPI_KEY", ""),
            skip_tracing_host=os.getenv("SKIP_TRACING_HOST", cls.skip_tracing_host),
            telnyx_api_key=os.getenv("TELNYX_API_KEY", ""),
            usha_agent_number=os.getenv("USHA_AGENT_NUMBER", ""),
            rate_limit_per_minute=_env_number("ENRICH_RATE_LIMIT_PER_MINUTE", cls.rate_limit_per_minute),
            timeout_seconds=_env_number("ENRICH_TIMEOUT_SECONDS", cls.timeout_seconds),
            checkpoint_interval=_env_number("ENRICH_CHECKPOINT_INTERVAL", cls.checkpoint_interval, int),
            lead_delay_seconds=_env_number("ENRICH_LEAD_DELAY_SECONDS", cls.lead_delay_seconds),
            zip_lookup_table=os.getenv("ZIP_LOOKUP_TABLE") or None,
            dnc_enabled=_env_bool("DNC_ENABLED", False),
        )

    def apply(self, config: Mapping[str, Any]) -> "Settings":
        """Return a copy with the top-level values of a configuration file applied."""

        updated = Settings(**self.__dict__)
        for key, cast in (
            ("rate_limit_per_minute", float),
            ("timeout_seconds", float),
            ("checkpoint_interval", int),
            ("lead_delay_seconds", float),
        ):
            if config.get(key) is not None:
                try:
                    setattr(updated, key, cast(config[key]))
                except (TypeError, ValueError) as exc:
                    raise ConfigurationError(f"'{key}' must be a number, got {config[key]!r}") from exc
        zip_cfg = config.get("zip_lookup") or {}
        if zip_cfg.get("table_path"):
            updated.zip_lookup_table = str(zip_cfg["table_path"])
        return updated


def provider_config(config: Mapping[str, Any], slot: str) -> Dict[str, Any]:
    """Return the configuration block for one provider slot (empty when absent)."""

    if slot not in PROVIDER_SLOTS:
        raise ConfigurationError(f"Unknown provider slot '{slot}'")
    providers = config.get("providers") or {}
    if not isinstance(providers, Mapping):
        raise ConfigurationError("'providers' must be a mapping of slot name to provider settings")
    block = providers.get(slot) or {}
    if not isinstance(block, Mapping):
        raise ConfigurationError(f"Provider '{slot}' configuration must be a mapping")
    return dict(block)


__all__ = ["ConfigurationError", "PROVIDER_SLOTS", "Settings", "load_configuration", "provider_config"]
