"""Configuration loading and validation"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# Default config search paths (in order)
CONFIG_PATHS = [
    Path("config.yaml"),
    Path.home() / ".config" / "thermo-pulse" / "config.yaml",
    Path("/etc/thermo-pulse/config.yaml"),
]

DEFAULT_LISTEN_ADDRESS = "127.0.0.1:9092"
DEFAULT_OWM_CITY_ID = "2761369"  # Vienna, AT


class ConfigError(ValueError):
    """Raised when the configuration cannot be used to start the service."""


@dataclass
class ThermostatConfig:
    client_secret: str = ""  # Bearer token for the device API
    thermostat_id: str = ""
    base_url: str = "https://developer-api.nest.com/devices/thermostats/"
    poll_interval: float = 30.0


@dataclass
class WeatherConfig:
    api_key: str = ""  # Weather polling is skipped when empty
    city_id: str = DEFAULT_OWM_CITY_ID
    base_url: str = "http://api.openweathermap.org/data/2.5/weather"
    poll_interval: float = 1800.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class HttpConfig:
    timeout: float = 10.0  # Upper bound for one outbound fetch


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = ""
    debug: bool = False  # Dump outbound requests/responses


@dataclass
class WebConfig:
    listen_address: str = DEFAULT_LISTEN_ADDRESS

    @property
    def host(self) -> str:
        return parse_listen_address(self.listen_address)[0]

    @property
    def port(self) -> int:
        return parse_listen_address(self.listen_address)[1]


@dataclass
class Config:
    thermostat: ThermostatConfig = field(default_factory=ThermostatConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)

    def validate(self) -> None:
        """Raise ConfigError when a required setting is missing or malformed."""
        missing = []
        if not self.thermostat.client_secret:
            missing.append("client-secret")
        if not self.thermostat.thermostat_id:
            missing.append("thermostat-id")
        if missing:
            raise ConfigError(f"missing required setting(s): {', '.join(missing)}")

        if self.thermostat.poll_interval <= 0 or self.weather.poll_interval <= 0:
            raise ConfigError("poll intervals must be positive")
        if self.http.timeout <= 0:
            raise ConfigError("http timeout must be positive")

        parse_listen_address(self.web.listen_address)


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address.

    An empty host (``":9092"``) listens on all interfaces.
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"listen address must be host:port, got {address!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {address!r}") from None
    if not 0 <= port_num <= 65535:
        raise ConfigError(f"port out of range in listen address {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, port_num


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations"""
    for path in CONFIG_PATHS:
        if path.exists():
            return path
    return None


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file"""
    if config_path:
        path = Path(config_path)
    else:
        path = find_config_file()

    if path is None or not path.exists():
        logger.debug("No config file found, using defaults")
        return Config()

    logger.info(f"Loading config from: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    try:
        return Config(
            thermostat=ThermostatConfig(**data.get("thermostat", {})),
            weather=WeatherConfig(**data.get("weather", {})),
            http=HttpConfig(**data.get("http", {})),
            logging=LoggingConfig(**data.get("logging", {})),
            web=WebConfig(**data.get("web", {})),
        )
    except TypeError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e
