"""
In-memory cache of resolved download links.

Entries live for a fixed TTL counted from the moment of resolution. The
cache is owned by the application factory and shared by reference with
the request handlers; it never persists across restarts.
"""

import threading
import time
from typing import Callable, Dict, Optional

from common.logging_config import get_logger
from gateway.types import CacheEntry, FileMetadata

logger = get_logger(__name__)


class ResolutionCache:
    """
    Thread-safe share id -> resolved link cache with TTL expiry.

    Expired entries are treated as absent on lookup. The number of entries
    is bounded by max_entries: when the bound is reached, expired entries
    are swept first and then the entry closest to expiry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize resolution cache.

        Args:
            ttl_seconds: Lifetime of each entry from the moment it is written
            max_entries: Upper bound on stored entries (0 or less disables the bound)
            clock: Monotonic time source, injectable for tests
        """
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, share_id: str) -> Optional[CacheEntry]:
        """
        Look up a share id.

        Args:
            share_id: Share id used as cache key

        Returns:
            The cached entry, or None on miss or expiry
        """
        now = self._clock()

        with self._lock:
            entry = self._entries.get(share_id)
            if entry is None:
                return None

            if not entry.is_valid(now):
                del self._entries[share_id]
                logger.debug(f"Cache entry expired for {share_id}")
                return None

            return entry

    def put(
        self,
        share_id: str,
        download_url: str,
        metadata: Optional[FileMetadata] = None,
    ) -> CacheEntry:
        """
        Store a freshly resolved link, overwriting any previous entry.

        Args:
            share_id: Share id used as cache key
            download_url: Signed download URL
            metadata: Metadata of the resolved file

        Returns:
            The stored entry
        """
        entry = CacheEntry(
            download_url=download_url,
            expires_at=self._clock() + self._ttl,
            metadata=metadata,
        )

        with self._lock:
            if share_id not in self._entries:
                self._make_room()
            self._entries[share_id] = entry

        logger.debug(f"Cache updated for {share_id} (ttl={self._ttl}s)")
        return entry

    def invalidate(self, share_id: str) -> bool:
        """
        Drop the entry for a share id.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._entries.pop(share_id, None) is not None

        if removed:
            logger.debug(f"Cache entry invalidated for {share_id}")
        return removed

    def sweep(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()

        with self._lock:
            expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info(f"Swept {len(expired)} expired cache entr{'y' if len(expired) == 1 else 'ies'}")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _make_room(self) -> None:
        if self._max_entries <= 0 or len(self._entries) < self._max_entries:
            return

        self.sweep()

        while len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda key: self._entries[key].expires_at)
            del self._entries[oldest]
            logger.debug(f"Evicted cache entry for {oldest} (cache full)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, share_id: object) -> bool:
        return isinstance(share_id, str) and self.get(share_id) is not None
