"""Prometheus gauges for the latest successful readings."""

from __future__ import annotations

from collections.abc import Mapping

from prometheus_client import (
    CollectorRegistry,
    Gauge,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

# Gauge name -> help text
GAUGES: dict[str, str] = {
    "env_humidity": "Current humidity.",
    "env_temperature": "Current temperature.",
    "target_temperature": "Target temperature.",
    "is_heating": "Flag (0 or 1) indicating if currently heating.",
    "outside_humidity": "Current humidity (outside).",
    "outside_temperature": "Current temperature (outside).",
    "outside_pressure": "Current pressure (outside).",
}


class MetricsSink:
    """Owns the gauge registry; one gauge per numeric reading field.

    Process and platform metrics are exported alongside the gauges.
    """

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        self._gauges = {
            name: Gauge(name, help_text, registry=self.registry)
            for name, help_text in GAUGES.items()
        }

    def set_gauge(self, name: str, value: float) -> None:
        """Set one gauge; last write wins."""

        try:
            gauge = self._gauges[name]
        except KeyError:
            raise KeyError(f"unknown gauge: {name}") from None
        gauge.set(value)

    def update(self, values: Mapping[str, float]) -> None:
        for name, value in values.items():
            self.set_gauge(name, value)

    def value(self, name: str) -> float | None:
        """Current value of a gauge as exported."""

        return self.registry.get_sample_value(name)

    def render(self) -> bytes:
        """Render metrics in Prometheus exposition format."""

        return generate_latest(self.registry)
