"""Thermostat and weather poller with a JSON snapshot and Prometheus exporter."""

__version__ = "0.3.0"
