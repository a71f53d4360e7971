"""Tests for the web application endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from thermo_pulse.config import Config, ThermostatConfig, WeatherConfig
from thermo_pulse.context import AppContext
from thermo_pulse.datasources.thermostat_source import ThermostatDataSource
from thermo_pulse.datasources.weather_source import WeatherDataSource
from thermo_pulse.web.app import create_app
from tests.mock_datasource import MockDataSource, MockReading, wait_until

THERMOSTAT_PAYLOAD = {
    "humidity": 45.2,
    "ambient_temperature_c": 21.0,
    "target_temperature_c": 22.5,
    "hvac_state": "heating",
    "structure_id": "abc",
}


def make_config() -> Config:
    return Config(
        thermostat=ThermostatConfig(client_secret="s3cret", thermostat_id="t-1"),
        weather=WeatherConfig(api_key=""),
    )


def make_context(thermostat_handler) -> AppContext:
    config = make_config()
    context = AppContext.create(config, registry=CollectorRegistry())
    context.add_data_source(
        ThermostatDataSource(config.thermostat, transport=httpx.MockTransport(thermostat_handler))
    )
    context.add_data_source(WeatherDataSource(config.weather))
    return context


def asgi_client(context: AppContext) -> httpx.AsyncClient:
    app = create_app(context=context)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class TestWebAppCreation:
    def test_app_holds_context(self):
        context = AppContext.create(Config(), registry=CollectorRegistry())
        app = create_app(context=context)
        assert app.state.context is context

    def test_metrics_endpoint_without_data(self):
        context = AppContext.create(Config(), registry=CollectorRegistry())
        client = TestClient(create_app(context=context))

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"] == CONTENT_TYPE_LATEST
        assert "env_humidity 0.0" in response.text
        assert "is_heating 0.0" in response.text


class TestDataEndpoint:
    async def test_zero_values_before_first_fetch(self):
        context = make_context(lambda request: httpx.Response(503))
        await context.start()
        try:
            async with asgi_client(context) as client:
                response = await client.get("/data")
        finally:
            await context.shutdown()

        assert response.status_code == 200
        data = response.json()
        assert data["thermostatStamp"] is None
        assert data["thermostatData"] == {
            "humidity": 0.0,
            "ambient_temperature_c": 0.0,
            "target_temperature_c": 0.0,
            "hvac_state": "",
            "structure_id": "",
        }
        assert data["weatherStamp"] is None
        assert data["weatherData"] == {"temp": 0.0, "pressure": 0.0, "humidity": 0.0}

    async def test_first_poll_is_served_and_exported(self):
        context = make_context(lambda request: httpx.Response(200, json=THERMOSTAT_PAYLOAD))
        await context.start()
        try:
            poller = context.pollers["thermostat"]
            await wait_until(lambda: poller.success_count == 1)

            async with asgi_client(context) as client:
                data_response = await client.get("/data")
                root_response = await client.get("/")
                metrics_response = await client.get("/metrics")
        finally:
            await context.shutdown()

        assert data_response.status_code == 200
        data = data_response.json()
        assert data["thermostatData"]["humidity"] == 45.2
        assert data["thermostatData"]["ambient_temperature_c"] == 21.0
        assert data["thermostatData"]["target_temperature_c"] == 22.5
        assert data["thermostatData"]["hvac_state"] == "heating"
        assert data["thermostatStamp"] is not None
        assert root_response.json() == data

        assert metrics_response.status_code == 200
        assert "is_heating 1.0" in metrics_response.text
        assert "env_humidity 45.2" in metrics_response.text
        assert "target_temperature 22.5" in metrics_response.text

    async def test_timed_out_fetch_serves_previous_reading(self):
        """fetch 1 ok, fetch 2 times out, fetch 3 ok"""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 2:
                raise httpx.ReadTimeout("upstream hung", request=request)
            payload = dict(THERMOSTAT_PAYLOAD, humidity=40.0 + len(calls))
            return httpx.Response(200, json=payload)

        context = make_context(handler)
        await context.start()
        try:
            poller = context.pollers["thermostat"]
            await wait_until(lambda: poller.success_count == 1)

            async with asgi_client(context) as client:
                first = (await client.get("/data")).json()

                assert await poller.poll_once() is False
                between = (await client.get("/data")).json()

                assert await poller.poll_once() is True
                third = (await client.get("/data")).json()
        finally:
            await context.shutdown()

        assert first["thermostatData"]["humidity"] == 41.0
        assert between["thermostatData"] == first["thermostatData"]
        assert between["thermostatStamp"] == first["thermostatStamp"]
        assert third["thermostatData"]["humidity"] == 43.0
        assert third["thermostatStamp"] >= first["thermostatStamp"]

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    async def test_non_finite_upstream_number_still_served(self, constant):
        body = (
            f'{{"humidity": {constant}, "ambient_temperature_c": 21.0, "hvac_state": "heating"}}'
        ).encode()
        context = make_context(lambda request: httpx.Response(200, content=body))
        await context.start()
        try:
            await wait_until(lambda: context.pollers["thermostat"].success_count == 1)
            async with asgi_client(context) as client:
                response = await client.get("/data")
        finally:
            await context.shutdown()

        assert response.status_code == 200
        data = response.json()
        assert data["thermostatData"]["humidity"] == 0.0
        assert data["thermostatData"]["ambient_temperature_c"] == 21.0
        assert data["thermostatData"]["hvac_state"] == "heating"
        assert context.metrics.value("env_humidity") == 0.0

    async def test_unserializable_reading_returns_500(self):
        context = AppContext.create(make_config(), registry=CollectorRegistry())
        source = MockDataSource(source_id="mock", reading=MockReading(value=1.0, label=b"raw"))
        context.add_data_source(source)
        await context.start()
        try:
            await wait_until(lambda: context.pollers["mock"].success_count == 1)
            async with asgi_client(context) as client:
                response = await client.get("/data")
        finally:
            await context.shutdown()

        assert response.status_code == 500
        assert response.json() == {"error": "failed to serialize cached data"}


class TestHealthEndpoint:
    async def test_reports_sources(self):
        context = make_context(lambda request: httpx.Response(200, json=THERMOSTAT_PAYLOAD))
        await context.start()
        try:
            await wait_until(lambda: context.pollers["thermostat"].success_count == 1)
            async with asgi_client(context) as client:
                response = await client.get("/health")
        finally:
            await context.shutdown()

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        thermostat = data["sources"]["thermostat"]
        assert thermostat["polling"] is True
        assert thermostat["interval"] == 30.0
        assert thermostat["successes"] == 1
        assert thermostat["age"] >= 0
        weather = data["sources"]["weather"]
        assert weather["polling"] is False
        assert weather["age"] is None

    @pytest.mark.parametrize("path", ["/data", "/metrics", "/health"])
    async def test_endpoints_never_trigger_fetch(self, path):
        source = MockDataSource(source_id="mock", interval=60.0)
        context = AppContext.create(make_config(), registry=CollectorRegistry())
        context.add_data_source(source)
        await context.start()
        try:
            await wait_until(lambda: source.fetch_count == 1)
            async with asgi_client(context) as client:
                for _ in range(3):
                    assert (await client.get(path)).status_code == 200
        finally:
            await context.shutdown()

        assert source.fetch_count == 1
