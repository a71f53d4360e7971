"""
Latest-reading cache for thermo-pulse.

Holds exactly one entry per source: the most recent successful reading and
the wall-clock time it was captured. Pollers replace entries, HTTP handlers
read them. Entries are immutable and swapped whole under the lock, so a
reader sees either the previous entry or the new one, never a mix.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .datasources.base import Reading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A reading paired with its capture time (None before the first fetch)."""

    reading: Reading
    timestamp: Optional[datetime] = None

    @property
    def age(self) -> Optional[float]:
        """Seconds since capture, or None if never fetched."""
        if self.timestamp is None:
            return None
        return time.time() - self.timestamp.timestamp()


class ReadingCache:
    """
    Per-source latest-value cache guarded by a single lock.

    Writes happen at most once per poll interval per source and payloads are
    tiny, so one lock for the whole cache is enough.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def register(self, source_id: str, empty: Reading) -> None:
        """
        Create the zero-valued entry for a source.

        Called once per source during startup, before any poller runs.
        """
        if source_id in self._entries:
            raise ValueError(f"source already registered: {source_id}")
        self._entries[source_id] = CacheEntry(reading=empty)
        logger.debug(f"Cache entry registered: {source_id}")

    async def replace(self, source_id: str, reading: Reading, timestamp: datetime) -> None:
        """Atomically replace the entry for source_id."""
        entry = CacheEntry(reading=reading, timestamp=timestamp)
        async with self._lock:
            if source_id not in self._entries:
                raise KeyError(source_id)
            self._entries[source_id] = entry
        logger.debug(f"Cache updated: {source_id}")

    async def read(self, source_id: str) -> CacheEntry:
        """Return the current entry for source_id."""
        async with self._lock:
            return self._entries[source_id]

    async def snapshot(self) -> dict[str, CacheEntry]:
        """Return all entries as seen under one lock acquisition."""
        async with self._lock:
            return dict(self._entries)

    def list_sources(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._entries
