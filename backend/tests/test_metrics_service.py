"""Tests for deriving displayable metrics from raw stats samples."""

from datetime import datetime, timezone

import pytest

from app.schemas.metrics import RawUsageSample
from app.services.metrics_service import (
    cpu_percentage,
    derive_metrics,
    memory_percentage,
    round_half_up,
)


def _sample(**overrides) -> RawUsageSample:
    values = dict(
        container_cpu_total=2_000_000,
        container_cpu_total_prev=1_000_000,
        system_cpu_total=20_000_000,
        system_cpu_total_prev=10_000_000,
        online_cpus=0,
        memory_usage=256,
        memory_limit=1024,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return RawUsageSample(**values)


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(1.005) == 1.01
        assert round_half_up(2.675) == 2.68
        assert round_half_up(0.125) == 0.13

    def test_not_bankers_rounding(self):
        # round() would give 0.12 here
        assert round(0.125, 2) == 0.12
        assert round_half_up(0.125) == 0.13

    def test_below_half_rounds_down(self):
        assert round_half_up(4.8828125) == 4.88
        assert round_half_up(1.004) == 1.0

    def test_zero_and_integers(self):
        assert round_half_up(0.0) == 0.0
        assert round_half_up(100.0) == 100.0


class TestCpuPercentage:
    def test_basic_delta(self):
        assert cpu_percentage(_sample()) == pytest.approx(10.0)

    def test_divided_by_online_cpus(self):
        assert cpu_percentage(_sample(online_cpus=4)) == pytest.approx(2.5)

    def test_zero_system_delta_is_zero(self):
        raw = _sample(system_cpu_total=10_000_000, system_cpu_total_prev=10_000_000)
        assert cpu_percentage(raw) == 0.0

    def test_negative_system_delta_is_zero(self):
        raw = _sample(system_cpu_total=5, system_cpu_total_prev=10_000_000)
        assert cpu_percentage(raw) == 0.0

    def test_first_sample_without_previous_counters(self):
        raw = _sample(container_cpu_total_prev=0, system_cpu_total_prev=0, system_cpu_total=0)
        assert cpu_percentage(raw) == 0.0

    def test_container_counter_reset_is_clamped(self):
        raw = _sample(container_cpu_total=10, container_cpu_total_prev=1_000_000)
        assert cpu_percentage(raw) == 0.0

    def test_burst_above_100_is_not_capped(self):
        raw = _sample(container_cpu_total=30_000_000, container_cpu_total_prev=0)
        assert cpu_percentage(raw) == pytest.approx(300.0)


class TestMemoryPercentage:
    def test_zero_limit(self):
        assert memory_percentage(512, 0) == 0.0

    def test_over_limit_is_not_clamped(self):
        assert memory_percentage(2048, 1024) == pytest.approx(200.0)


class TestDeriveMetrics:
    def test_full_derivation(self):
        ts = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        metrics = derive_metrics(_sample(online_cpus=3, timestamp=ts))

        assert metrics.cpu_percentage == 3.33
        assert metrics.memory_usage == 256
        assert metrics.memory_limit == 1024
        assert metrics.memory_percent == 25.0
        assert metrics.timestamp == ts

    def test_memory_percent_rounded(self):
        metrics = derive_metrics(_sample(memory_usage=100, memory_limit=2048))
        assert metrics.memory_percent == 4.88

    def test_zero_limit_gives_zero_percent(self):
        metrics = derive_metrics(_sample(memory_limit=0))
        assert metrics.memory_percent == 0.0

    def test_empty_sample_never_raises(self):
        metrics = derive_metrics(RawUsageSample())
        assert metrics.cpu_percentage == 0.0
        assert metrics.memory_percent == 0.0
        assert metrics.timestamp is None

    def test_serialized_output_omits_zero_memory_percent(self):
        data = derive_metrics(_sample(memory_limit=0)).model_dump(mode="json")
        assert "memory_percent" not in data
        assert set(data) == {"cpu_percentage", "memory_usage", "memory_limit", "timestamp"}

    def test_serialized_output_keeps_memory_percent(self):
        data = derive_metrics(_sample()).model_dump(mode="json")
        assert data["memory_percent"] == 25.0
        assert data["timestamp"].startswith("2024-01-01T00:00:00")

    def test_derived_metrics_are_immutable(self):
        metrics = derive_metrics(_sample())
        with pytest.raises(Exception):
            metrics.cpu_percentage = 99.0
