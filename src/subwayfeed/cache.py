"""In-memory cache of decoded feeds, one entry per endpoint."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .decode import DecodedFeed
from .models import FeedEndpoint

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    endpoint: FeedEndpoint
    feed: DecodedFeed
    fetched_at_ms: int


class FeedCache:
    """
    Decoded feeds keyed by endpoint.

    Writes for one endpoint overwrite its previous entry. A lock guards the
    store because batch fetches write from worker threads.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms):
        """
        Initialize the cache.

        Args:
            clock: Returns the current time in milliseconds. Tests inject a fake.
        """
        self._lock = threading.Lock()
        self._store: Dict[FeedEndpoint, CacheEntry] = {}
        self._clock = clock

    def now_ms(self) -> int:
        return self._clock()

    def get(self, endpoint: FeedEndpoint) -> Optional[CacheEntry]:
        with self._lock:
            return self._store.get(endpoint)

    def get_fresh(self, endpoint: FeedEndpoint, ttl_ms: int) -> Optional[DecodedFeed]:
        """
        Get the cached feed if it is younger than ttl_ms.

        A ttl_ms of 0 or less never hits.
        """
        if ttl_ms <= 0:
            return None

        with self._lock:
            entry = self._store.get(endpoint)
        if entry is None:
            return None

        if self._clock() - entry.fetched_at_ms < ttl_ms:
            logger.debug(f"Using cached data for {endpoint.value}")
            return entry.feed
        return None

    def put(self, endpoint: FeedEndpoint, feed: DecodedFeed) -> CacheEntry:
        entry = CacheEntry(endpoint=endpoint, feed=feed, fetched_at_ms=self._clock())
        with self._lock:
            self._store[endpoint] = entry
        return entry

    def invalidate(self, endpoint: FeedEndpoint) -> None:
        """Drop a single endpoint from the cache."""
        with self._lock:
            self._store.pop(endpoint, None)
        logger.debug(f"Invalidated cache entry for {endpoint.value}")

    def clear(self) -> None:
        """Manually clear the cache."""
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, endpoint) -> bool:
        with self._lock:
            return endpoint in self._store
