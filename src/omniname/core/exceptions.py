"""Custom exception hierarchy for omniname."""

from typing import Any


class OmninameError(Exception):
    """Base exception for all omniname errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidNameFormat(OmninameError):
    """Caller supplied a malformed name or address.

    Raised synchronously before any provider I/O and never retried.
    """

    def __init__(
        self,
        message: str,
        name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.name = name


class ConfigurationError(OmninameError):
    """Provider registration or route configuration is inconsistent."""

    pass


class ResolutionError(OmninameError):
    """Failed to resolve a name."""

    pass


class ProviderError(ResolutionError):
    """A naming authority failed at the network or protocol level."""

    def __init__(
        self,
        message: str,
        provider_id: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.provider_id = provider_id
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """A provider call exceeded its per-attempt timeout."""

    pass


class RateLimitError(ProviderError):
    """Rate limit exceeded for a provider."""

    def __init__(
        self,
        message: str,
        provider_id: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, provider_id, status_code=429, details=details)
        self.retry_after = retry_after


class CacheError(OmninameError):
    """Cache operation failed."""

    pass
