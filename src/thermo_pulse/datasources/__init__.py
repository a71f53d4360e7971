"""
Data sources package for thermo-pulse.

Each data source implements the DataSource interface and fetches one fresh
reading from its upstream API when polled.
"""

from .base import (
    DataSource,
    DataSourceMetadata,
    DecodeError,
    FetchError,
    HttpDataSource,
    Reading,
    StatusError,
    TransportError,
)
from .thermostat_source import ThermostatDataSource, ThermostatReading
from .weather_source import WeatherDataSource, WeatherReading

__all__ = [
    "DataSource",
    "DataSourceMetadata",
    "Reading",
    "HttpDataSource",
    "FetchError",
    "TransportError",
    "StatusError",
    "DecodeError",
    "ThermostatDataSource",
    "ThermostatReading",
    "WeatherDataSource",
    "WeatherReading",
]
