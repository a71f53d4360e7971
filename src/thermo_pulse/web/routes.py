"""Read-only API routes: cached readings, metrics and health"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

from thermo_pulse.cache import CacheEntry, ReadingCache
from thermo_pulse.context import AppContext
from thermo_pulse.metrics import MetricsSink

logger = logging.getLogger(__name__)
router = APIRouter()


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_cache(context: AppContext = Depends(get_context)) -> ReadingCache:
    return context.cache


def get_metrics(context: AppContext = Depends(get_context)) -> MetricsSink:
    return context.metrics


def _stamp(entry: CacheEntry) -> Any:
    return entry.timestamp.isoformat() if entry.timestamp else None


def build_data_payload(entries: dict[str, CacheEntry]) -> dict[str, Any]:
    """
    Flatten cache entries into the snapshot document.

    Each source contributes ``<id>Stamp`` and ``<id>Data`` keys, e.g.
    ``thermostatStamp`` / ``thermostatData``.
    """
    payload: dict[str, Any] = {}
    for source_id, entry in entries.items():
        payload[f"{source_id}Stamp"] = _stamp(entry)
        payload[f"{source_id}Data"] = entry.reading.to_dict()
    return payload


@router.get("/data")
@router.get("/", include_in_schema=False)
async def get_data(cache: ReadingCache = Depends(get_cache)) -> Response:
    """Latest reading and capture time of every source."""
    entries = await cache.snapshot()
    try:
        body = json.dumps(build_data_payload(entries), allow_nan=False)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize cached data: {e}")
        return Response(
            content=json.dumps({"error": "failed to serialize cached data"}),
            status_code=500,
            media_type="application/json",
        )
    return Response(content=body, media_type="application/json")


@router.get("/metrics", include_in_schema=False)
def get_prometheus_metrics(metrics: MetricsSink = Depends(get_metrics)) -> Response:
    """Expose gauges in Prometheus text format."""
    return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
async def health(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Staleness of each source plus poller counters."""
    entries = await context.cache.snapshot()
    sources: dict[str, Any] = {}
    for source_id, entry in entries.items():
        poller = context.pollers.get(source_id)
        sources[source_id] = {
            "polling": poller is not None,
            "age": entry.age,
            "interval": poller.interval if poller else None,
            "fetches": poller.fetch_count if poller else 0,
            "successes": poller.success_count if poller else 0,
            "failures": poller.failure_count if poller else 0,
            "last_error": poller.last_error if poller else None,
        }
    return {"status": "healthy", "sources": sources}
