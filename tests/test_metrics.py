"""Tests for the metrics sink"""

import pytest
from prometheus_client import CollectorRegistry

from thermo_pulse.metrics import GAUGES, MetricsSink


def test_all_gauges_registered_at_zero() -> None:
    sink = MetricsSink(registry=CollectorRegistry())
    for name in GAUGES:
        assert sink.value(name) == 0.0


def test_set_gauge_last_write_wins() -> None:
    sink = MetricsSink(registry=CollectorRegistry())
    sink.set_gauge("env_temperature", 20.0)
    sink.set_gauge("env_temperature", 21.5)
    sink.set_gauge("env_temperature", 21.5)
    assert sink.value("env_temperature") == 21.5


def test_unknown_gauge_rejected() -> None:
    sink = MetricsSink(registry=CollectorRegistry())
    with pytest.raises(KeyError):
        sink.set_gauge("not_a_gauge", 1.0)


def test_render_exposition_format() -> None:
    sink = MetricsSink(registry=CollectorRegistry())
    sink.update({"is_heating": 1.0, "outside_pressure": 1018.0})

    text = sink.render().decode()
    assert "# HELP is_heating Flag (0 or 1) indicating if currently heating." in text
    assert "# TYPE is_heating gauge" in text
    assert "is_heating 1.0" in text
    assert "outside_pressure 1018.0" in text


def test_separate_registries_do_not_collide() -> None:
    first = MetricsSink(registry=CollectorRegistry())
    second = MetricsSink(registry=CollectorRegistry())
    first.set_gauge("env_humidity", 50.0)
    assert second.value("env_humidity") == 0.0


def test_process_and_platform_metrics_exported() -> None:
    text = MetricsSink(registry=CollectorRegistry()).render().decode()
    assert "python_info" in text
