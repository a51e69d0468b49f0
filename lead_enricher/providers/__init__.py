"""Clients for the external services the enrichment stages call."""

from .base import HttpProvider, StageFailure  # noqa: F401
from .dnc import DNCChecker  # noqa: F401
from .sample import EchoSkipTracingProvider, StaticDNCChecker, StaticPhoneIntelProvider  # noqa: F401
from .skip_tracing import SkipTracingProvider  # noqa: F401
from .telnyx import TelnyxLookupProvider  # noqa: F401

__all__ = [
    "DNCChecker",
    "EchoSkipTracingProvider",
    "HttpProvider",
    "SkipTracingProvider",
    "StageFailure",
    "StaticDNCChecker",
    "StaticPhoneIntelProvider",
    "TelnyxLookupProvider",
]
