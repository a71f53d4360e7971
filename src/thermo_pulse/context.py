"""
Application context for dependency injection.

This module provides a central container for all application dependencies,
eliminating the need for global singletons and enabling clean testing.

Usage:
    config = load_config()
    context = AppContext.from_config(config)
    await context.start()

    app = create_app(context=context)

    # On shutdown
    await context.shutdown()
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Optional

from prometheus_client import CollectorRegistry

from thermo_pulse.cache import ReadingCache
from thermo_pulse.config import Config
from thermo_pulse.datasources.base import DataSource
from thermo_pulse.datasources.thermostat_source import ThermostatDataSource
from thermo_pulse.datasources.weather_source import WeatherDataSource
from thermo_pulse.metrics import MetricsSink
from thermo_pulse.poller import Poller

logger = logging.getLogger(__name__)

# Slack on top of the HTTP timeout before a poller gives up on a fetch
FETCH_TIMEOUT_GRACE = 5.0


@dataclass
class AppContext:
    """
    Application context containing all shared dependencies.

    This class owns the lifecycle of:
    - Configuration
    - Reading cache and metrics sink
    - Data sources and one poller task per enabled source

    Attributes:
        config: Application configuration
        cache: ReadingCache shared by pollers and the web app
        metrics: MetricsSink shared by pollers and the web app
        data_sources: Registered DataSource instances
        pollers: Running pollers, keyed by source id
    """

    config: Config
    cache: ReadingCache
    metrics: MetricsSink
    data_sources: list[DataSource] = field(default_factory=list)
    pollers: dict[str, Poller] = field(default_factory=dict)
    _tasks: list[asyncio.Task] = field(default_factory=list, repr=False)
    _stop_event: Optional[asyncio.Event] = field(default=None, repr=False)
    _started: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls, config: Config, registry: Optional[CollectorRegistry] = None
    ) -> "AppContext":
        """Create an empty context; add data sources before start()."""
        return cls(config=config, cache=ReadingCache(), metrics=MetricsSink(registry=registry))

    @classmethod
    def from_config(
        cls, config: Config, registry: Optional[CollectorRegistry] = None
    ) -> "AppContext":
        """Create a context with the thermostat and weather sources from config."""
        context = cls.create(config, registry=registry)
        timeout = config.http.timeout
        debug = config.logging.debug
        context.add_data_source(ThermostatDataSource(config.thermostat, timeout=timeout, debug=debug))
        context.add_data_source(WeatherDataSource(config.weather, timeout=timeout, debug=debug))
        return context

    def add_data_source(self, source: DataSource) -> "AppContext":
        """
        Add a data source to the context.

        Returns:
            self (for method chaining)
        """
        self.data_sources.append(source)
        metadata = source.get_metadata()
        logger.debug(f"Added data source: {metadata.name} (id={metadata.source_id})")
        return self

    async def start(self) -> None:
        """
        Initialize data sources and launch one poller task per enabled source.

        Every source gets a zero-valued cache entry, including disabled ones.
        A source that fails to initialize is logged and not polled; the other
        sources continue.
        """
        if self._started:
            logger.warning("AppContext already started, ignoring start() call")
            return

        logger.info(f"Starting AppContext with {len(self.data_sources)} data source(s)...")
        self._stop_event = asyncio.Event()
        fetch_timeout = self.config.http.timeout + FETCH_TIMEOUT_GRACE

        for source in self.data_sources:
            metadata = source.get_metadata()
            self.cache.register(metadata.source_id, source.empty_reading())

            if not metadata.enabled:
                logger.info(f"{metadata.name} disabled, not fetching {metadata.source_id} data")
                continue

            try:
                await source.initialize()
            except Exception as e:
                logger.error(f"✗ Failed to initialize {metadata.name}: {e}")
                continue

            poller = Poller(source, self.cache, self.metrics, fetch_timeout=fetch_timeout)
            self.pollers[metadata.source_id] = poller
            self._tasks.append(
                asyncio.create_task(
                    poller.run(self._stop_event), name=f"poller-{metadata.source_id}"
                )
            )
            logger.info(f"✓ Polling: {metadata.name} every {poller.interval}s")

        self._started = True
        logger.info(
            f"AppContext started: {len(self.pollers)}/{len(self.data_sources)} sources polling"
        )

    async def shutdown(self, timeout: float = 5.0) -> None:
        """
        Stop pollers and shut down all data sources.

        Safe to call multiple times or before start().
        """
        if not self._started:
            logger.debug("AppContext not started, nothing to shutdown")
            return

        logger.info("Shutting down AppContext...")
        if self._stop_event is not None:
            self._stop_event.set()

        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=timeout)
            for task in pending:
                logger.warning(f"{task.get_name()} did not stop gracefully, cancelling")
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._tasks.clear()

        for source in self.data_sources:
            metadata = source.get_metadata()
            try:
                await source.shutdown()
            except Exception as e:
                logger.error(f"✗ Error shutting down {metadata.name}: {e}")

        self._started = False
        logger.info("AppContext shutdown complete")

    @property
    def is_started(self) -> bool:
        return self._started

    def get_data_source(self, source_id: str) -> Optional[DataSource]:
        for source in self.data_sources:
            if source.get_metadata().source_id == source_id:
                return source
        return None

    def __repr__(self) -> str:
        sources = [s.get_metadata().source_id for s in self.data_sources]
        return f"AppContext(started={self._started}, sources={sources})"
