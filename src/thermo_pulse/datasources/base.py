"""
Base interface for all data sources in thermo-pulse.

Data sources are responsible for fetching one fresh reading from an upstream API.
They do NOT cache data - the cache layer holds the latest reading and the poller
decides when to call fetch().
"""

import json
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Optional

import httpx

from ..log import debug_event_hooks

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """
    A single fetch against an upstream API failed.

    Fetch errors are never fatal: the poller logs them and keeps the
    previously cached reading.

    Attributes:
        source_id: Source the failed fetch belongs to
        cause: One of "transport", "status" or "decode"
    """

    cause = "unknown"

    def __init__(self, source_id: str, message: str):
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id


class TransportError(FetchError):
    """Network failure, timeout or redirect loop."""

    cause = "transport"


class StatusError(FetchError):
    """Upstream answered with a non-2xx status."""

    cause = "status"

    def __init__(self, source_id: str, status_code: int, message: str):
        super().__init__(source_id, message)
        self.status_code = status_code


class DecodeError(FetchError):
    """Response body is not a JSON object."""

    cause = "decode"


@dataclass(frozen=True)
class Reading:
    """Immutable snapshot produced by one successful fetch."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DataSourceMetadata:
    """
    Metadata describing a data source.

    Attributes:
        source_id: Unique identifier for this data source
        name: Human-readable name
        description: Brief description of what this source provides
        refresh_interval: How often (in seconds) the poller fetches this source
        requires_auth: Whether this source needs authentication
        enabled: Whether this source is polled at all
    """

    source_id: str
    name: str
    description: str
    refresh_interval: float
    requires_auth: bool = False
    enabled: bool = True


def as_float(value: Any) -> float:
    """Lenient numeric field: anything that is not a finite JSON number becomes 0.0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    try:
        value = float(value)
    except OverflowError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def as_str(value: Any) -> str:
    """Lenient string field: anything that is not a JSON string becomes ""."""
    return value if isinstance(value, str) else ""


class DataSource(ABC):
    """
    Abstract base class for all data sources.

    A data source knows how to fetch and decode one reading and how that
    reading maps onto gauges. Scheduling, caching and metric updates are
    done by the poller.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the data source (open HTTP clients, validate configuration).

        Raises:
            Exception: If initialization fails
        """

    @abstractmethod
    async def fetch(self) -> Reading:
        """
        Fetch one fresh reading from the upstream API.

        Returns:
            The decoded reading

        Raises:
            FetchError: If the request or decoding fails
        """

    @abstractmethod
    def empty_reading(self) -> Reading:
        """Zero-valued reading served before the first successful fetch."""

    @abstractmethod
    def gauge_values(self, reading: Reading) -> dict[str, float]:
        """Map a reading onto gauge name -> value."""

    @abstractmethod
    def get_metadata(self) -> DataSourceMetadata:
        """
        Get metadata about this data source.

        This is a synchronous method that returns configuration/metadata
        without performing any I/O operations.
        """

    @abstractmethod
    async def shutdown(self) -> None:
        """Release resources (HTTP clients) held by this data source."""


class HttpDataSource(DataSource):
    """
    Data source backed by a single JSON-over-HTTP GET request.

    Subclasses provide the URL, the request headers and the decoding of the
    JSON object into a reading. Headers returned by request_headers() are
    applied to every request the client sends, including each redirect hop,
    since httpx strips Authorization on cross-origin redirects.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._debug = debug
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @abstractmethod
    def request_url(self) -> str:
        """Full URL (including query) for one fetch."""

    def request_headers(self) -> dict[str, str]:
        """Headers to (re)apply on every request and redirect hop."""
        return {}

    @abstractmethod
    def decode(self, payload: dict[str, Any]) -> Reading:
        """Turn the decoded JSON object into a reading."""

    async def _apply_headers(self, request: httpx.Request) -> None:
        request.headers.update(self.request_headers())

    async def initialize(self) -> None:
        hooks: dict[str, list] = {"request": [self._apply_headers], "response": []}
        if self._debug:
            dumps = debug_event_hooks(logger)
            hooks["request"].extend(dumps["request"])
            hooks["response"].extend(dumps["response"])

        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            event_hooks=hooks,
            transport=self._transport,
        )

    async def fetch(self) -> Reading:
        source_id = self.get_metadata().source_id
        if self._client is None:
            raise RuntimeError(f"{source_id}: data source not initialized")

        try:
            response = await self._client.get(self.request_url())
        except httpx.TimeoutException as e:
            raise TransportError(source_id, f"request timed out: {e!r}") from e
        except httpx.RequestError as e:
            raise TransportError(source_id, f"request failed: {e!r}") from e

        if not response.is_success:
            raise StatusError(
                source_id,
                response.status_code,
                f"unexpected status {response.status_code} from {response.request.url.host}",
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(source_id, f"invalid JSON body: {e}") from e

        if not isinstance(payload, dict):
            raise DecodeError(source_id, f"expected JSON object, got {type(payload).__name__}")

        return self.decode(payload)

    async def shutdown(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
