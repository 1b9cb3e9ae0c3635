"""Core types, models, and utilities."""

from .clock import Clock, SystemClock
from .exceptions import (
    CacheError,
    ConfigurationError,
    InvalidNameFormat,
    OmninameError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    ResolutionError,
)
from .models import (
    CacheStats,
    NameRecords,
    ProviderAttempt,
    ProviderStats,
    ResolutionResult,
    ResolutionTrace,
    ResolveOptions,
)
from .namehash import labelhash, namehash, namehash_hex, reverse_node_name
from .normalization import (
    get_tld,
    is_valid_name,
    normalize_name,
    split_labels,
    strip_suffix,
)
from .types import (
    AddressKind,
    AttemptOutcome,
    CacheBackend,
    CacheKind,
    CoinType,
    PatternKind,
    ProviderName,
)

__all__ = [
    # Types
    "AddressKind",
    "AttemptOutcome",
    "CacheBackend",
    "CacheKind",
    "CoinType",
    "PatternKind",
    "ProviderName",
    # Clock
    "Clock",
    "SystemClock",
    # Models
    "CacheStats",
    "NameRecords",
    "ProviderAttempt",
    "ProviderStats",
    "ResolutionResult",
    "ResolutionTrace",
    "ResolveOptions",
    # Namehash
    "labelhash",
    "namehash",
    "namehash_hex",
    "reverse_node_name",
    # Normalization
    "get_tld",
    "is_valid_name",
    "normalize_name",
    "split_labels",
    "strip_suffix",
    # Exceptions
    "CacheError",
    "ConfigurationError",
    "InvalidNameFormat",
    "OmninameError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ResolutionError",
]
