"""Weather data source implementation using the OpenWeatherMap API"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import WeatherConfig
from ..log import get_structured_logger
from .base import DataSourceMetadata, HttpDataSource, Reading, as_float

logger = get_structured_logger(__name__, component="weather")


@dataclass(frozen=True)
class WeatherReading(Reading):
    temp: float = 0.0
    pressure: float = 0.0
    humidity: float = 0.0


class WeatherDataSource(HttpDataSource):
    """
    Outdoor conditions for a configured city from OpenWeatherMap.

    Only the nested ``main`` object of the response is used. The source is
    disabled when no API key is configured.
    """

    def __init__(
        self,
        config: WeatherConfig,
        timeout: float = 10.0,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=timeout, debug=debug, transport=transport)
        self._config = config

    async def initialize(self) -> None:
        await super().initialize()
        logger.info("Weather data source initialized", city_id=self._config.city_id)

    def request_url(self) -> str:
        params = httpx.QueryParams(
            {"units": "metric", "id": self._config.city_id, "appid": self._config.api_key}
        )
        return f"{self._config.base_url}?{params}"

    def decode(self, payload: dict[str, Any]) -> WeatherReading:
        main = payload.get("main")
        if not isinstance(main, dict):
            main = {}

        return WeatherReading(
            temp=as_float(main.get("temp")),
            pressure=as_float(main.get("pressure")),
            humidity=as_float(main.get("humidity")),
        )

    def empty_reading(self) -> WeatherReading:
        return WeatherReading()

    def gauge_values(self, reading: Reading) -> dict[str, float]:
        if not isinstance(reading, WeatherReading):
            raise TypeError(f"expected WeatherReading, got {type(reading).__name__}")
        return {
            "outside_humidity": reading.humidity,
            "outside_temperature": reading.temp,
            "outside_pressure": reading.pressure,
        }

    def get_metadata(self) -> DataSourceMetadata:
        """Get weather data source metadata"""
        return DataSourceMetadata(
            source_id="weather",
            name="Weather",
            description=f"Current weather conditions from OpenWeatherMap (city {self._config.city_id})",
            refresh_interval=self._config.poll_interval,
            requires_auth=True,
            enabled=self._config.enabled,
        )
