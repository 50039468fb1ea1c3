"""
Read-through loading of provider metadata on top of MetadataCache.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, Union, TYPE_CHECKING

from shared.config import get_config
from shared.errors import ExternalServiceError
from shared.logging import get_logger
from .metadata_cache import MetadataCache, TTL

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# Called with the canonical cache key; resolves to the payload or raises.
MetadataFetcher = Callable[[str], Awaitable[Any]]


class MetadataLoader:
    """Consult the cache first, fall back to the provider on a miss."""

    def __init__(
        self,
        cache: MetadataCache,
        fetcher: Optional[MetadataFetcher] = None,
        *,
        ttl: Optional[TTL] = None,
        timeout_seconds: Optional[float] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        config = get_config()
        self.cache = cache
        self.fetcher = fetcher
        self.ttl = ttl if ttl is not None else config.metadata_cache_ttl_seconds
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config.metadata_fetch_timeout_seconds
        )
        self.metrics = metrics
        self.logger = get_logger("catalog.metadata_loader")

    async def get_or_fetch(
        self,
        key: str,
        fetch: Optional[MetadataFetcher] = None,
        ttl: Optional[TTL] = None,
    ) -> Any:
        """Return the cached payload for ``key`` or fetch and cache it.

        Fetch failures and timeouts surface as ``ExternalServiceError`` and
        leave the cache untouched. A ``None`` payload is returned but not cached.
        """
        payload, found = self.cache.get(key)
        if found:
            return payload

        fetch = fetch or self.fetcher
        if fetch is None:
            raise ExternalServiceError("metadata", "No fetcher configured", {"key": key})

        start = time.perf_counter()
        try:
            payload = await asyncio.wait_for(fetch(key), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self._record_fetch("timeout")
            self.logger.error(
                "Metadata fetch timed out",
                key=key,
                timeout_seconds=self.timeout_seconds,
            )
            raise ExternalServiceError(
                "metadata",
                "Provider request timed out",
                {"key": key, "timeout_seconds": self.timeout_seconds}
            )
        except ExternalServiceError:
            self._record_fetch("error")
            raise
        except Exception as e:
            self._record_fetch("error")
            self.logger.error("Metadata fetch failed", key=key, error=str(e))
            raise ExternalServiceError("metadata", str(e), {"key": key}) from e

        duration_ms = (time.perf_counter() - start) * 1000
        if payload is None:
            self._record_fetch("empty")
            self.logger.debug("Metadata provider returned nothing", key=key)
            return None

        self.cache.set(key, payload, ttl if ttl is not None else self.ttl)
        self._record_fetch("success")
        self.logger.debug("Metadata cached", key=key, fetch_ms=round(duration_ms, 2))
        return payload

    async def get_details(
        self,
        kind: str,
        tmdb_id: Union[int, str],
        locale: Optional[str] = None,
        fetch: Optional[MetadataFetcher] = None,
    ) -> Any:
        """Details for a movie or series, keyed by kind, id and locale."""
        key = self.cache.metadata_key(kind, tmdb_id, locale)
        return await self.get_or_fetch(key, fetch)

    def _record_fetch(self, result: str) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("metadata_fetch_total", result=result)
        if result in ("error", "timeout"):
            self.metrics.record_error("external_service")
