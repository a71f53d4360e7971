"""Thermostat data source using the Nest device API"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import ThermostatConfig
from ..log import get_structured_logger
from .base import DataSourceMetadata, HttpDataSource, Reading, as_float, as_str

logger = get_structured_logger(__name__, component="thermostat")

HEATING_STATE = "heating"


@dataclass(frozen=True)
class ThermostatReading(Reading):
    humidity: float = 0.0
    ambient_temperature_c: float = 0.0
    target_temperature_c: float = 0.0
    hvac_state: str = ""
    structure_id: str = ""

    @property
    def is_heating(self) -> bool:
        return self.hvac_state == HEATING_STATE


class ThermostatDataSource(HttpDataSource):
    """
    Thermostat status from the device API.

    Every request carries the bearer token; the API answers with a redirect
    to another host, so the token is re-applied on each hop.
    """

    def __init__(
        self,
        config: ThermostatConfig,
        timeout: float = 10.0,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=timeout, debug=debug, transport=transport)
        self._config = config

    async def initialize(self) -> None:
        await super().initialize()
        logger.info("Thermostat data source initialized", thermostat_id=self._config.thermostat_id)

    def request_url(self) -> str:
        return self._config.base_url.rstrip("/") + "/" + self._config.thermostat_id

    def request_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.client_secret}",
            "User-Agent": "curl/7.51.0",
        }

    def decode(self, payload: dict[str, Any]) -> ThermostatReading:
        reading = ThermostatReading(
            humidity=as_float(payload.get("humidity")),
            ambient_temperature_c=as_float(payload.get("ambient_temperature_c")),
            target_temperature_c=as_float(payload.get("target_temperature_c")),
            hvac_state=as_str(payload.get("hvac_state")),
            structure_id=as_str(payload.get("structure_id")),
        )
        logger.debug("Decoded thermostat reading", reading=reading)
        return reading

    def empty_reading(self) -> ThermostatReading:
        return ThermostatReading()

    def gauge_values(self, reading: Reading) -> dict[str, float]:
        if not isinstance(reading, ThermostatReading):
            raise TypeError(f"expected ThermostatReading, got {type(reading).__name__}")
        return {
            "env_humidity": reading.humidity,
            "env_temperature": reading.ambient_temperature_c,
            "target_temperature": reading.target_temperature_c,
            "is_heating": 1.0 if reading.is_heating else 0.0,
        }

    def get_metadata(self) -> DataSourceMetadata:
        return DataSourceMetadata(
            source_id="thermostat",
            name="Thermostat",
            description=f"Thermostat {self._config.thermostat_id} from the device API",
            refresh_interval=self._config.poll_interval,
            requires_auth=True,
        )
