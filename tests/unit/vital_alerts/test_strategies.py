"""
Tests for per-sample strategies and the strategy registry.
"""

import threading

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vital_alerts.config import ThresholdConfig
from vital_alerts.services.strategies import (
    AlertStrategy,
    BoundDirection,
    BoundStrategy,
    StrategyRegistry,
    ThresholdRangeStrategy,
)


class TestThresholdRangeStrategy:
    @pytest.fixture
    def systolic(self) -> ThresholdRangeStrategy:
        return ThresholdRangeStrategy(90, 180, "Systolic blood pressure")

    @pytest.mark.parametrize("value", [89.9, 180.1, 40.0, 250.0])
    def test_fires_outside_range(self, systolic: ThresholdRangeStrategy, value: float) -> None:
        assert systolic.check_alert("1", value, 0)

    @pytest.mark.parametrize("value", [90.0, 120.0, 180.0])
    def test_range_bounds_are_inclusive(
        self, systolic: ThresholdRangeStrategy, value: float
    ) -> None:
        assert not systolic.check_alert("1", value, 0)

    def test_description_reports_direction_and_value(
        self, systolic: ThresholdRangeStrategy
    ) -> None:
        assert systolic.describe_condition(185.0) == "Systolic blood pressure too high: 185.0 mmHg"
        assert systolic.describe_condition(70.0) == "Systolic blood pressure too low: 70.0 mmHg"

    def test_description_uses_label_and_unit_for_any_metric(self) -> None:
        temperature = ThresholdRangeStrategy(35, 38, "Temperature", unit="C")

        assert temperature.check_alert("1", 39.5, 0)
        assert temperature.describe_condition(39.5) == "Temperature too high: 39.5 C"
        assert temperature.describe_condition(34.0) == "Temperature too low: 34.0 C"

    def test_rejects_inverted_range(self) -> None:
        with pytest.raises(ValueError, match="must not exceed"):
            ThresholdRangeStrategy(180, 90, "Systolic")


class TestBoundStrategy:
    def test_above_direction_fires_only_above(self) -> None:
        heart_rate = BoundStrategy(120, BoundDirection.ABOVE, "Heart Rate", "bpm")

        assert heart_rate.check_alert("1", 121.0, 0)
        assert not heart_rate.check_alert("1", 120.0, 0)
        assert not heart_rate.check_alert("1", 40.0, 0)

    def test_below_direction_fires_only_below(self) -> None:
        oxygen = BoundStrategy(90, BoundDirection.BELOW, "Oxygen Saturation", "%")

        assert oxygen.check_alert("1", 89.0, 0)
        assert not oxygen.check_alert("1", 90.0, 0)
        assert not oxygen.check_alert("1", 99.0, 0)

    def test_description_mentions_label_threshold_and_value(self) -> None:
        heart_rate = BoundStrategy(120, BoundDirection.ABOVE, "Heart Rate", "bpm")

        assert heart_rate.describe_condition(130.0) == "Heart Rate above 120 bpm: 130.0 bpm"

    @given(value=st.floats(allow_nan=False, allow_infinity=False), threshold=st.floats(-1e6, 1e6))
    def test_directions_never_both_fire(self, value: float, threshold: float) -> None:
        """Property: a value cannot be both above and below the same threshold."""
        above = BoundStrategy(threshold, BoundDirection.ABOVE, "x")
        below = BoundStrategy(threshold, BoundDirection.BELOW, "x")

        assert not (above.check_alert("1", value, 0) and below.check_alert("1", value, 0))


class TestStrategyRegistry:
    def test_default_registry_covers_threshold_metrics(self) -> None:
        registry = StrategyRegistry.from_thresholds()

        assert set(registry) == {
            "SystolicBloodPressure",
            "DiastolicBloodPressure",
            "HeartRate",
            "OxygenLevel",
        }
        assert "ECG" not in registry

    def test_default_registry_uses_configured_thresholds(self) -> None:
        registry = StrategyRegistry.from_thresholds(ThresholdConfig(heart_rate_max=100.0))
        heart_rate = registry.get("HeartRate")

        assert heart_rate is not None
        assert heart_rate.check_alert("1", 101.0, 0)

    def test_set_strategy_overwrites_without_removing_others(self) -> None:
        registry = StrategyRegistry.from_thresholds()
        replacement = BoundStrategy(100, BoundDirection.ABOVE, "Heart Rate", "bpm")

        registry.set_strategy("HeartRate", replacement)

        assert registry.get("HeartRate") is replacement
        assert len(registry) == 4

    def test_set_strategy_adds_new_metric(self) -> None:
        registry = StrategyRegistry()
        registry.set_strategy("RespiratoryRate", BoundStrategy(30, BoundDirection.ABOVE, "RR"))

        assert "RespiratoryRate" in registry
        assert registry.get("Unknown") is None

    def test_rejects_objects_without_strategy_protocol(self) -> None:
        registry = StrategyRegistry()

        with pytest.raises(TypeError, match="AlertStrategy protocol"):
            registry.set_strategy("HeartRate", object())  # type: ignore[arg-type]

    def test_snapshot_is_detached(self) -> None:
        registry = StrategyRegistry.from_thresholds()
        snapshot = registry.snapshot()
        snapshot.clear()

        assert len(registry) == 4

    def test_builtin_strategies_satisfy_protocol(self) -> None:
        for strategy in StrategyRegistry.from_thresholds().snapshot().values():
            assert isinstance(strategy, AlertStrategy)

    def test_concurrent_updates_keep_registry_consistent(self) -> None:
        registry = StrategyRegistry()

        def register(index: int) -> None:
            registry.set_strategy(f"Metric{index}", BoundStrategy(index, BoundDirection.ABOVE, "m"))

        threads = [threading.Thread(target=register, args=(i,)) for i in range(50)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 50
