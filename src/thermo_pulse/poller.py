"""
Per-source background polling.

Each enabled data source gets its own Poller running as an independent task:
fetch once immediately, then on a fixed interval until the stop event is set.
A poller runs its fetches strictly one after another; if a fetch outlives the
interval, the ticks it overran are skipped rather than queued.
"""

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Optional

from .cache import ReadingCache
from .datasources.base import DataSource, FetchError
from .metrics import MetricsSink

logger = logging.getLogger(__name__)


class Poller:
    """Fixed-interval fetch loop for one data source."""

    def __init__(
        self,
        source: DataSource,
        cache: ReadingCache,
        metrics: MetricsSink,
        interval: Optional[float] = None,
        fetch_timeout: Optional[float] = None,
    ):
        """
        Args:
            source: Data source to poll
            cache: Cache whose entry for this source gets replaced
            metrics: Gauges updated after each successful fetch
            interval: Seconds between ticks (default: source refresh_interval)
            fetch_timeout: Upper bound for one fetch in seconds (None: unbounded)
        """
        metadata = source.get_metadata()
        self.source = source
        self.source_id = metadata.source_id
        self.name = metadata.name
        self.interval = interval if interval is not None else metadata.refresh_interval
        self.fetch_timeout = fetch_timeout
        self._cache = cache
        self._metrics = metrics

        self.fetch_count = 0
        self.success_count = 0
        self.failure_count = 0
        self.skipped_ticks = 0
        self.last_error: Optional[str] = None

        if self.interval <= 0:
            raise ValueError(f"poll interval must be positive, got {self.interval}")

    async def poll_once(self) -> bool:
        """
        Run one fetch and, on success, update cache then gauges.

        Returns:
            True if the cache entry was replaced
        """
        self.fetch_count += 1
        try:
            if self.fetch_timeout is not None:
                reading = await asyncio.wait_for(self.source.fetch(), timeout=self.fetch_timeout)
            else:
                reading = await self.source.fetch()
        except asyncio.TimeoutError:
            self._record_failure(f"fetch timed out after {self.fetch_timeout}s")
            logger.warning(f"Polling {self.name} timed out after {self.fetch_timeout}s")
            return False
        except FetchError as e:
            self._record_failure(str(e))
            logger.error(f"Error polling {self.name} ({e.cause}): {e}")
            return False
        except Exception as e:
            self._record_failure(str(e))
            logger.error(f"Error polling {self.name}: {e}", exc_info=True)
            return False

        await self._cache.replace(self.source_id, reading, datetime.now(timezone.utc))
        self._metrics.update(self.source.gauge_values(reading))
        self.success_count += 1
        self.last_error = None
        logger.debug(f"Successfully polled: {self.name} {reading}")
        return True

    def _record_failure(self, message: str) -> None:
        self.failure_count += 1
        self.last_error = message

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Poll until stop_event is set (or forever if none is given).

        The first fetch happens immediately.
        """
        if stop_event is None:
            stop_event = asyncio.Event()

        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        logger.info(f"Poller started: {self.name} every {self.interval}s")

        while not stop_event.is_set():
            await self.poll_once()

            next_tick += self.interval
            now = loop.time()
            if now > next_tick:
                missed = int((now - next_tick) // self.interval) + 1
                next_tick += missed * self.interval
                self.skipped_ticks += missed
                logger.warning(f"Polling {self.name} overran its interval, skipped {missed} tick(s)")

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=next_tick - now)

        logger.info(f"Poller stopped: {self.name}")
