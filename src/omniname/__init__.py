"""Omniname - Unified blockchain name resolution across naming services."""

from omniname.client import OmninameClient, resolve_name
from omniname.config import OmninameSettings, get_settings
from omniname.core.exceptions import (
    ConfigurationError,
    InvalidNameFormat,
    OmninameError,
    ProviderError,
)
from omniname.core.models import (
    NameRecords,
    ProviderAttempt,
    ResolutionResult,
    ResolutionTrace,
    ResolveOptions,
)
from omniname.core.types import AttemptOutcome, CoinType, ProviderName
from omniname.providers.base import NameProvider
from omniname.resolution.orchestrator import NameOrchestrator, OrchestratorConfig
from omniname.resolution.router import Router

__version__ = "0.1.0"
__all__ = [
    # Client
    "OmninameClient",
    "resolve_name",
    # Config
    "OmninameSettings",
    "get_settings",
    # Engine
    "NameOrchestrator",
    "NameProvider",
    "OrchestratorConfig",
    "Router",
    # Types
    "AttemptOutcome",
    "CoinType",
    "ProviderName",
    # Models
    "NameRecords",
    "ProviderAttempt",
    "ResolutionResult",
    "ResolutionTrace",
    "ResolveOptions",
    # Exceptions
    "ConfigurationError",
    "InvalidNameFormat",
    "OmninameError",
    "ProviderError",
    # Version
    "__version__",
]
