"""Provider contract, HTTP client management and rate limiting."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, ClassVar

import httpx
from eth_utils import decode_hex, encode_hex
from pydantic import BaseModel

from omniname.core.exceptions import ProviderError, ProviderTimeoutError, RateLimitError
from omniname.core.models import NameRecords, ResolutionResult

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    requests_per_second: float = 10.0
    requests_per_minute: float | None = None
    burst_size: int = 5
    retry_on_429: bool = True
    max_429_retries: int = 3
    backoff_factor: float = 2.0
    max_backoff: float = 30.0


@dataclass
class RateLimitState:
    """Tracks rate limit state for a provider."""

    request_times: deque[float] = field(default_factory=deque)
    retry_after_until: float = 0.0
    consecutive_429s: int = 0


class ProviderConfig(BaseModel):
    """Configuration for an HTTP-backed provider."""

    base_url: str | None = None
    api_key: str | None = None
    timeout: float = 10.0
    rate_limit: RateLimitConfig | None = None
    enabled: bool = True


class AsyncRateLimiter:
    """Async sliding-window rate limiter with 429 back-off."""

    def __init__(self, config: RateLimitConfig) -> None:
        self.config = config
        self._state = RateLimitState()
        self._lock = asyncio.Lock()
        self._semaphore: asyncio.Semaphore | None = None

    async def acquire(self) -> None:
        """Acquire a permit to make a request."""
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.config.burst_size)

        async with self._semaphore:
            async with self._lock:
                await self._wait_for_permit()
                self._record_request()

    async def _wait_for_permit(self) -> None:
        now = time.monotonic()

        # Inside a 429 back-off window
        if now < self._state.retry_after_until:
            await asyncio.sleep(self._state.retry_after_until - now)
            now = time.monotonic()

        self._cleanup_old_requests(now)

        wait_time = 0.0
        if self.config.requests_per_second:
            recent = [t for t in self._state.request_times if t > now - 1.0]
            if len(recent) >= self.config.requests_per_second:
                wait_time = max(wait_time, recent[0] + 1.0 - now)

        if self.config.requests_per_minute:
            recent = [t for t in self._state.request_times if t > now - 60.0]
            if len(recent) >= self.config.requests_per_minute:
                wait_time = max(wait_time, recent[0] + 60.0 - now)

        if wait_time > 0:
            await asyncio.sleep(wait_time)

    def _record_request(self) -> None:
        self._state.request_times.append(time.monotonic())

    def _cleanup_old_requests(self, now: float) -> None:
        cutoff = now - 60.0
        while self._state.request_times and self._state.request_times[0] < cutoff:
            self._state.request_times.popleft()

    def handle_429(self, retry_after: float | None = None) -> float:
        """Register a 429 response, returning the wait time."""
        self._state.consecutive_429s += 1

        if retry_after:
            wait_time = retry_after
        else:
            wait_time = min(
                self.config.backoff_factor ** (self._state.consecutive_429s - 1),
                self.config.max_backoff,
            )

        self._state.retry_after_until = time.monotonic() + wait_time
        return wait_time

    def reset_429_state(self) -> None:
        self._state.consecutive_429s = 0

    @property
    def should_retry_429(self) -> bool:
        return (
            self.config.retry_on_429
            and self._state.consecutive_429s < self.config.max_429_retries
        )


class NameProvider(ABC):
    """
    Uniform contract implemented by every naming authority adapter.

    ``resolve`` returns None when the authority has no record for the name
    and raises :class:`ProviderError` on network or protocol failure. The
    orchestrator relies on that distinction to classify attempts.
    """

    PROVIDER_ID: ClassVar[str]
    SUPPORTED_SUFFIXES: ClassVar[tuple[str, ...]] = ()
    SUPPORTED_PREFIXES: ClassVar[tuple[str, ...]] = ()
    SUPPORTS_REVERSE: ClassVar[bool] = False
    SUPPORTS_BATCH: ClassVar[bool] = False

    def __init__(self, provider_id: str | None = None) -> None:
        self._provider_id = provider_id

    @property
    def id(self) -> str:
        return str(self._provider_id or self.PROVIDER_ID)

    @property
    def supports_reverse(self) -> bool:
        return self.SUPPORTS_REVERSE

    @property
    def supports_batch(self) -> bool:
        return self.SUPPORTS_BATCH

    @property
    def is_enabled(self) -> bool:
        """Disabled providers stay registered but are never tried."""
        return True

    @property
    def default_patterns(self) -> list[str]:
        """Route patterns this provider is normally registered for."""
        return [*self.SUPPORTED_SUFFIXES, *self.SUPPORTED_PREFIXES]

    def can_resolve(self, name: str) -> bool:
        """Local pattern check; never performs I/O."""
        return any(name.endswith(s) and len(name) > len(s) for s in self.SUPPORTED_SUFFIXES) or any(
            name.startswith(p) and len(name) > len(p) for p in self.SUPPORTED_PREFIXES
        )

    @abstractmethod
    async def resolve(
        self,
        name: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult | None:
        """
        Resolve a normalized name to an address.

        Args:
            name: Normalized name
            chain_id: Optional chain selector
            coin_type: Optional SLIP-0044 coin type

        Returns:
            The result, or None when no record exists
        """
        ...

    async def reverse_resolve(self, address: str, chain_id: int | None = None) -> str | None:
        """Resolve an address to its primary name. Unsupported by default."""
        return None

    async def get_records(self, name: str) -> NameRecords | None:
        """Fetch every record of a name. Defaults to the primary address only."""
        result = await self.resolve(name)
        if result is None:
            return None
        return NameRecords(
            primary_address=result.resolved_address,
            source_provider_id=self.id,
        )

    async def resolve_batch(
        self,
        names: list[str],
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> dict[str, ResolutionResult | None]:
        """
        Resolve many names in one round trip.

        Names missing from the returned mapping are treated as failed.
        Only called when ``supports_batch`` is true.
        """
        raise ProviderError(f"{self.id} does not support batch resolution", provider_id=self.id)

    def _result(
        self,
        name: str,
        address: str,
        chain_id: int | None = None,
        coin_type: int | None = None,
    ) -> ResolutionResult:
        return ResolutionResult(
            resolved_address=address,
            source_provider_id=self.id,
            name=name,
            chain_id=chain_id,
            coin_type=coin_type,
        )

    async def close(self) -> None:
        """Release held resources."""
        return None

    async def __aenter__(self) -> "NameProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class HttpProvider(NameProvider):
    """
    Provider backed by an HTTP API or JSON-RPC endpoint.

    Provides:
    - HTTP client management with connection pooling
    - Rate limiting with 429 handling
    - JSON-RPC and ``eth_call`` helpers
    - Transport failures surfaced as ProviderError
    """

    BASE_URL: ClassVar[str] = ""
    DEFAULT_RATE_LIMIT: ClassVar[RateLimitConfig] = RateLimitConfig()

    def __init__(
        self,
        config: ProviderConfig | None = None,
        provider_id: str | None = None,
    ) -> None:
        super().__init__(provider_id)
        self.config = config or ProviderConfig()
        self._client: httpx.AsyncClient | None = None
        self._rate_limiter = AsyncRateLimiter(self.config.rate_limit or self.DEFAULT_RATE_LIMIT)
        self._rpc_id = 0

    @property
    def base_url(self) -> str:
        return self.config.base_url or self.BASE_URL

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Get or create HTTP client with proper lifecycle."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.config.timeout),
                headers=self._get_default_headers(),
                follow_redirects=True,
            )

        try:
            yield self._client
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Request timed out: {e}", provider_id=self.id) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"HTTP error: {e}", provider_id=self.id) from e

    def _get_default_headers(self) -> dict[str, str]:
        """Default request headers. Override to add auth."""
        return {
            "User-Agent": "omniname/0.1",
            "Accept": "application/json",
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an HTTP request with rate limiting and 429 handling."""
        await self._rate_limiter.acquire()

        async with self._get_client() as client:
            while True:
                response = await client.request(method, url, **kwargs)

                if response.status_code == 429:
                    header = response.headers.get("Retry-After")
                    retry_after = float(header) if header and header.isdigit() else None
                    if self._rate_limiter.should_retry_429:
                        wait_time = self._rate_limiter.handle_429(retry_after)
                        logger.warning("%s rate limited, retrying in %.1fs", self.id, wait_time)
                        await asyncio.sleep(wait_time)
                        continue
                    raise RateLimitError(
                        "Rate limit exceeded",
                        provider_id=self.id,
                        retry_after=retry_after,
                    )

                self._rate_limiter.reset_429_state()
                return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if not response.is_success:
            raise ProviderError(
                f"{self.id} returned HTTP {response.status_code}",
                provider_id=self.id,
                status_code=response.status_code,
            )

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        """GET a JSON document; None on 404."""
        response = await self._make_request("GET", url, **kwargs)
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {self.id}", provider_id=self.id) from e

    async def _json_rpc(self, method: str, params: list[Any], url: str = "") -> Any:
        """Call a JSON-RPC 2.0 method and return its ``result``."""
        self._rpc_id += 1
        payload = {"jsonrpc": "2.0", "id": self._rpc_id, "method": method, "params": params}
        response = await self._make_request("POST", url, json=payload)
        self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON-RPC response from {self.id}", provider_id=self.id) from e

        if body.get("error"):
            error = body["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ProviderError(
                f"{method} failed: {message}",
                provider_id=self.id,
                details={"rpc_error": error},
            )
        return body.get("result")

    async def eth_call(self, to: str, data: bytes, url: str = "") -> bytes:
        """Execute a read-only contract call at the latest block."""
        result = await self._json_rpc("eth_call", [{"to": to, "data": encode_hex(data)}, "latest"], url)
        if not result:
            return b""
        return decode_hex(result)
