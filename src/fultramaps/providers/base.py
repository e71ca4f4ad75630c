"""
Shared plumbing for HTTP mapping providers.

Provider clients (Google, HERE) are responsible only for:
- building provider-specific query strings,
- fetching JSON through the shared cache (stale-if-error) and rate limiter,
- parsing payloads into `fultramaps.domain.models` types.

Every public client method is a boundary: transport errors, non-2xx responses
and provider error statuses are logged and degraded to `None` / `[]` /
an error-status `DirectionsResponse`, so callers never see provider exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from fultramaps.config.settings import Settings
from fultramaps.core.cache import FileCache
from fultramaps.core.http import get_json
from fultramaps.core.polyline import PolylineCodec
from fultramaps.core.rate_limit import TokenBucketRateLimiter
from fultramaps.domain.models import (
    DirectionsRequest,
    DirectionsResponse,
    GeocodingResult,
    GeoPoint,
    PlaceDetails,
    PlaceSuggestion,
)

logger = logging.getLogger(__name__)


class MapsProvider(Protocol):
    name: str
    codec: PolylineCodec

    def geocode(self, address: str) -> GeocodingResult | None: ...

    def reverse_geocode(self, point: GeoPoint) -> GeocodingResult | None: ...

    def autocomplete(self, text: str, session_token: str | None = None) -> list[PlaceSuggestion]: ...

    def place_details(self, place_id: str, session_token: str | None = None) -> PlaceDetails | None: ...

    def directions(self, request: DirectionsRequest) -> DirectionsResponse: ...


class ProviderError(ValueError):
    """A provider answered, but with an error status (e.g. REQUEST_DENIED)."""

    def __init__(self, status: str, message: str | None = None):
        super().__init__(f"{status}: {message}" if message else status)
        self.status = status
        self.message = message


def is_transient_error(exc: Exception) -> bool:
    """True for failures worth serving a stale cache entry for (network, 429, 5xx)."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return False


def http_error_status(exc: httpx.HTTPError) -> str:
    """Map an HTTP failure onto the directions status vocabulary."""
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        if code in (401, 403):
            return "REQUEST_DENIED"
        if code == 429:
            return "OVER_QUERY_LIMIT"
        if code in (400, 422):
            return "INVALID_REQUEST"
        if code == 404:
            return "NOT_FOUND"
    return "UNKNOWN_ERROR"


class HttpProviderClient:
    """Base for HTTP providers: cached, rate-limited JSON GETs with an API key parameter."""

    name = "http"
    api_key_param = "key"

    def __init__(
        self,
        settings: Settings,
        cache: FileCache,
        *,
        api_key: str | None,
        rate_limiter: TokenBucketRateLimiter | None = None,
    ):
        self._settings = settings
        self._cache = cache
        self._api_key = api_key
        self._rate_limiter = rate_limiter
        if not api_key:
            logger.warning("%s provider has no API key configured; requests will be rejected.", self.name)

    def _check_payload(self, payload: Any) -> Any:
        """Raise `ProviderError` for payloads that must not be cached; return the payload otherwise."""
        return payload

    def _fetch(self, namespace: str, url: str, params: dict[str, Any], *, ttl_seconds: int) -> Any:
        """GET `url` through the cache. Raises `httpx.HTTPError`, `ProviderError` or `ValueError`."""
        # The API key is not part of the cache key.
        cache_key = f"{url}?{urlencode(sorted(params.items()), doseq=True)}"

        def builder() -> Any:
            if self._rate_limiter is not None:
                self._rate_limiter.acquire()
            logger.info("Fetching %s %s", self.name, namespace)
            payload = get_json(
                url,
                params={**params, self.api_key_param: self._api_key or ""},
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
            return self._check_payload(payload)

        return self._cache.get_or_set(
            f"{self.name}-{namespace}",
            cache_key,
            builder,
            ttl_seconds=ttl_seconds,
            stale_if_error=True,
            stale_predicate=is_transient_error,
        )
