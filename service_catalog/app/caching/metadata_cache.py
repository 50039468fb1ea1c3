"""
Expiring in-memory cache for external metadata (TMDB details).
"""

import math
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Union, TYPE_CHECKING

from shared.config import get_config
from shared.errors import ValidationError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


KEY_DELIMITER = ":"

Clock = Callable[[], float]
TTL = Union[int, float, timedelta]


@dataclass
class CacheEntry:
    """A cached payload and the moment it was stored."""
    key: str
    payload: Any
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        # A zero ttl never survives to a read; otherwise the expiry instant itself is still fresh.
        if self.ttl == 0:
            return True
        return now - self.inserted_at > self.ttl


def make_key(*parts: Any) -> str:
    """Build a canonical cache key from typed parts.

    Parts are stringified and stripped before joining with ``KEY_DELIMITER``,
    so ``make_key("movie", 550, "ar")`` and ``make_key("movie", "550 ", "ar")``
    resolve to the same entry. Empty parts and parts containing the delimiter
    are rejected since they would make two different lookups collide.
    """
    if not parts:
        raise ValidationError("Cache key needs at least one part")

    normalized = []
    for part in parts:
        text = str(part).strip() if part is not None else ""
        if not text:
            raise ValidationError("Cache key part must not be empty", {"parts": [str(p) for p in parts]})
        if KEY_DELIMITER in text:
            raise ValidationError(
                f"Cache key part must not contain '{KEY_DELIMITER}'",
                {"part": text}
            )
        normalized.append(text)

    return KEY_DELIMITER.join(normalized)


class MetadataCache:
    """Process-wide key/value store with per-entry expiry.

    Expired entries are evicted lazily on the read that discovers them; there
    is no background sweep. A single lock guards every read-check-evict and
    every write, so a concurrent ``set`` can never be undone by an eviction of
    the entry it replaced.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        *,
        namespace: Optional[str] = None,
        default_locale: Optional[str] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        config = get_config()
        self.clock: Clock = clock or time.monotonic
        self.namespace = namespace or config.metadata_key_namespace
        self.default_locale = default_locale or config.default_locale
        self.metrics = metrics
        self.logger = get_logger("catalog.metadata_cache")

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._expirations = 0

    def get(self, key: str) -> Tuple[Optional[Any], bool]:
        """Return ``(payload, True)`` for a fresh entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                result = "miss"
                payload, found = None, False
            elif entry.is_expired(self.clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                result = "expired"
                payload, found = None, False
            else:
                self._hits += 1
                result = "hit"
                payload, found = entry.payload, True
            size = len(self._entries)

        if result == "expired":
            self.logger.debug("Evicted expired metadata entry", key=key)
        self._record(result, size)
        return payload, found

    def set(self, key: str, value: Any, ttl: TTL) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        seconds = self._ttl_seconds(ttl, key)
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                payload=value,
                inserted_at=self.clock(),
                ttl=seconds,
            )
            size = len(self._entries)

        if self.metrics:
            self.metrics.set_gauge("metadata_cache_entries", size)

    def make_key(self, *parts: Any) -> str:
        """Canonical key for ``parts`` (see :func:`make_key`)."""
        return make_key(*parts)

    def metadata_key(self, kind: str, tmdb_id: Union[int, str], locale: Optional[str] = None) -> str:
        """Key for a details lookup, e.g. ``tmdb:movie:550:ar``."""
        return make_key(
            self.namespace,
            str(kind).strip().lower(),
            tmdb_id,
            locale or self.default_locale,
        )

    def invalidate(self, key: str) -> bool:
        """Drop a single entry. Returns whether anything was removed."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        return removed

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._expirations = 0

    def stats(self) -> Dict[str, Any]:
        """Snapshot of cache counters."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "expirations": self._expirations,
                "hit_ratio": (self._hits / lookups) if lookups else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # Presence only; does not check or evict expired entries.
        with self._lock:
            return key in self._entries

    def _ttl_seconds(self, ttl: TTL, key: str) -> float:
        seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
        if seconds < 0 or not math.isfinite(seconds):
            self.logger.warning("Invalid ttl clamped to zero", key=key, ttl=seconds)
            return 0.0
        return seconds

    def _record(self, result: str, size: int) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("metadata_cache_requests_total", result=result)
        self.metrics.set_gauge("metadata_cache_entries", size)
