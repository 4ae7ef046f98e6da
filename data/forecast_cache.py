"""
Short-lived in-memory cache for upstream weather forecasts.

Requests for nearby locations share an entry: coordinates are rounded to
three decimals (~100 m).  Entries expire a fixed time after insertion and
are evicted lazily, on the first read past expiry.  Nothing is persisted.
"""

import logging
import math
import threading
import time
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from config import FORECAST_CACHE_TTL_S, CACHE_KEY_DECIMALS
from data.weather import MeteoSample

logger = logging.getLogger(__name__)

CacheKey = Tuple[float, float]


class CacheEntry(NamedTuple):
    data: Tuple[MeteoSample, ...]
    inserted_at: float


def _round_half_up(value: float) -> float:
    scale = 10 ** CACHE_KEY_DECIMALS
    return math.floor(value * scale + 0.5) / scale


def cache_key(latitude: float, longitude: float) -> CacheKey:
    """Bucket a location so requests within ~100 m share a cache line.

    Halves round up (towards +inf), not to even.
    """
    return (_round_half_up(latitude), _round_half_up(longitude))


class ForecastCache:
    """Thread-safe TTL cache of forecast series keyed by rounded location.

    Args:
        ttl_seconds: Entry lifetime measured from insertion.
        clock: Zero-argument callable returning seconds; ``time.monotonic``
               by default.  Tests inject a fake clock.
    """

    def __init__(
        self,
        ttl_seconds: float = FORECAST_CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, latitude: float, longitude: float) -> Optional[List[MeteoSample]]:
        """Return the cached series, or None on a miss or an expired entry."""
        key = cache_key(latitude, longitude)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Forecast cache miss for %s", key)
                return None
            if self._clock() - entry.inserted_at >= self.ttl_seconds:
                del self._entries[key]
                logger.debug("Forecast cache entry for %s expired", key)
                return None
        logger.debug("Forecast cache hit for %s", key)
        return list(entry.data)

    def set(self, latitude: float, longitude: float, data: List[MeteoSample]) -> None:
        """Store a series; an existing entry for the same bucket is replaced."""
        key = cache_key(latitude, longitude)
        entry = CacheEntry(data=tuple(data), inserted_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        """Entry count, TTL in minutes and the stored keys."""
        with self._lock:
            keys = list(self._entries)
        return {
            "entries": len(keys),
            "ttl_minutes": self.ttl_seconds / 60.0,
            "keys": keys,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
