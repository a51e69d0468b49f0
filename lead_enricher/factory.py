"""Factory helpers for constructing pipeline components from configuration."""
from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .auth import EnvTokenProvider, StaticTokenProvider, TokenProvider
from .config import ConfigurationError, Settings, provider_config
from .orchestrator.service import EnrichmentOrchestrator, ProgressCallback
from .providers.dnc import DNCChecker
from .providers.skip_tracing import SkipTracingProvider
from .providers.telnyx import TelnyxLookupProvider
from .rate_limit import RateLimitedClient, RateLimiter
from .zip_lookup import ZipLookup

LOGGER = logging.getLogger(__name__)


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid provider class path '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Could not import provider module '{module_name}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


@dataclass
class Pipeline:
    """Everything the CLI needs for one run; ``aclose`` releases the HTTP clients."""

    orchestrator: EnrichmentOrchestrator
    throttle: RateLimiter
    settings: Settings
    clients: List[RateLimitedClient] = field(default_factory=list)

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()


class _ClientPool:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.shared: Optional[RateLimitedClient] = None
        self.clients: List[RateLimitedClient] = []

    def get(self, calls_per_minute: Any = None) -> RateLimitedClient:
        if calls_per_minute:
            client = RateLimitedClient(RateLimiter(float(calls_per_minute)), timeout=self._settings.timeout_seconds)
            self.clients.append(client)
            return client
        if self.shared is None:
            self.shared = RateLimitedClient(
                RateLimiter(self._settings.rate_limit_per_minute), timeout=self._settings.timeout_seconds
            )
            self.clients.append(self.shared)
        return self.shared


def _build_provider(
    slot: str,
    block: Mapping[str, Any],
    default_cls: type,
    default_options: Dict[str, Any],
    pool: _ClientPool,
) -> Any:
    class_path = block.get("class")
    provider_cls = _load_class(class_path) if class_path else default_cls
    options = dict(default_options) if provider_cls is default_cls else {}
    options.update(block.get("options") or {})

    if getattr(provider_cls, "uses_http", False):
        options["client"] = pool.get(block.get("rate_limit_per_minute"))
    try:
        provider = provider_cls(**options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for provider '{slot}': {exc}") from exc
    LOGGER.debug("Configured %s provider %s", slot, provider_cls.__name__)
    return provider


def _require(value: str, name: str, slot: str) -> None:
    if not value:
        raise ConfigurationError(f"{name} is not set; configure it or choose another '{slot}' provider class")


def build_zip_lookup(config: Mapping[str, Any], settings: Settings) -> ZipLookup:
    zip_cfg = config.get("zip_lookup") or {}
    return ZipLookup(
        settings.zip_lookup_table,
        zip_cfg.get("entries"),
        use_state_centroids=bool(zip_cfg.get("use_state_centroids", True)),
    )


def build_pipeline(
    config: Mapping[str, Any],
    settings: Settings,
    *,
    progress_callback: Optional[ProgressCallback] = None,
) -> Pipeline:
    """Instantiate providers, shared clients and the orchestrator for one run."""

    settings = settings.apply(config)
    pool = _ClientPool(settings)

    skip_block = provider_config(config, "skip_tracing")
    if not skip_block.get("class"):
        _require(settings.rapidapi_key, "RAPIDAPI_KEY", "skip_tracing")
    skip_tracing = _build_provider(
        "skip_tracing",
        skip_block,
        SkipTracingProvider,
        {"api_key": settings.rapidapi_key, "host": settings.skip_tracing_host},
        pool,
    )

    intel_block = provider_config(config, "phone_intel")
    if not intel_block.get("class"):
        _require(settings.telnyx_api_key, "TELNYX_API_KEY", "phone_intel")
    phone_intel = _build_provider(
        "phone_intel", intel_block, TelnyxLookupProvider, {"api_key": settings.telnyx_api_key}, pool
    )

    dnc = None
    token_provider: Optional[TokenProvider] = None
    dnc_block = provider_config(config, "dnc")
    if dnc_block.get("enabled", settings.dnc_enabled or bool(dnc_block.get("class"))):
        dnc = _build_provider("dnc", dnc_block, DNCChecker, {"agent_number": settings.usha_agent_number}, pool)
        token_block = provider_config(config, "token")
        if token_block.get("class"):
            token_provider = _build_provider("token", token_block, EnvTokenProvider, {}, pool)
        elif (token_block.get("options") or {}).get("token"):
            token_provider = StaticTokenProvider(token_block["options"]["token"])
        else:
            token_provider = EnvTokenProvider()
        LOGGER.info("DNC checking enabled")

    orchestrator = EnrichmentOrchestrator(
        skip_tracing,
        phone_intel,
        build_zip_lookup(config, settings),
        dnc=dnc,
        token_provider=token_provider,
        progress_callback=progress_callback,
    )
    throttle = RateLimiter(60.0 / settings.lead_delay_seconds if settings.lead_delay_seconds > 0 else None)
    return Pipeline(orchestrator=orchestrator, throttle=throttle, settings=settings, clients=pool.clients)


__all__ = ["Pipeline", "build_pipeline", "build_zip_lookup"]
