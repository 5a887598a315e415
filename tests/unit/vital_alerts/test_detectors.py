"""
Tests for the window-level pattern detectors and alert factories.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vital_alerts.domain.models import AlertCategory, Measurement
from vital_alerts.services.detectors import (
    MINUTE_MS,
    detect_deviation,
    detect_hypotensive_hypoxemia,
    detect_rapid_drop,
    detect_trend,
)
from vital_alerts.services.factories import (
    BloodOxygenAlertFactory,
    BloodPressureAlertFactory,
    CardiacAlertFactory,
    default_factory_dispatch,
)


def _oxygen(value: float, timestamp: int) -> Measurement:
    return Measurement(
        patient_id=1, record_type="OxygenLevel", measurement_value=value, timestamp=timestamp
    )


class TestDetectTrend:
    @pytest.mark.parametrize(
        "values",
        [[100, 115, 130], [130, 115, 100], [95, 96, 110, 125], [100, 111, 122, 90]],
    )
    def test_detects_three_sample_trends(self, values: list[float]) -> None:
        assert detect_trend(values)

    @pytest.mark.parametrize(
        "values",
        [[100, 105, 108], [100, 110, 120], [100, 115, 100], [100, 85, 100], [], [100], [100, 150]],
    )
    def test_ignores_small_or_mixed_moves(self, values: list[float]) -> None:
        assert not detect_trend(values)

    def test_threshold_is_configurable(self) -> None:
        assert detect_trend([100, 106, 112], threshold=5)
        assert not detect_trend([100, 106, 112], threshold=6)

    @given(st.lists(st.floats(allow_nan=False, allow_infinity=False), max_size=2))
    def test_short_sequences_never_trend(self, values: list[float]) -> None:
        assert not detect_trend(values)


class TestDetectRapidDrop:
    def test_reports_drop_within_ten_minutes(self) -> None:
        drop = detect_rapid_drop(_oxygen(97, 0), _oxygen(91, 5 * MINUTE_MS))
        assert drop == 6.0

    def test_gap_of_exactly_ten_minutes_still_counts(self) -> None:
        assert detect_rapid_drop(_oxygen(97, 0), _oxygen(92, 10 * MINUTE_MS)) == 5.0

    def test_ignores_samples_too_far_apart(self) -> None:
        assert detect_rapid_drop(_oxygen(97, 0), _oxygen(91, 15 * MINUTE_MS)) is None

    def test_ignores_small_drops_and_rises(self) -> None:
        assert detect_rapid_drop(_oxygen(97, 0), _oxygen(93, MINUTE_MS)) is None
        assert detect_rapid_drop(_oxygen(90, 0), _oxygen(98, MINUTE_MS)) is None

    def test_first_sample_has_nothing_to_compare(self) -> None:
        assert detect_rapid_drop(None, _oxygen(80, 0)) is None


class TestDetectDeviation:
    def test_outlier_against_mean(self) -> None:
        # mean 3.25, the first 1.0 is already 2.25 away (> 1.625)
        assert detect_deviation([1, 1, 1, 10]) == 1

    def test_flat_signal_has_no_deviation(self) -> None:
        assert detect_deviation([1, 1, 1, 1]) is None

    def test_empty_batch(self) -> None:
        assert detect_deviation([]) is None

    @given(st.floats(min_value=0.1, max_value=1e6), st.integers(min_value=1, max_value=50))
    def test_constant_positive_signal_never_deviates(self, value: float, count: int) -> None:
        assert detect_deviation([value] * count) is None


class TestHypotensiveHypoxemia:
    @pytest.mark.parametrize(
        "low_bp,low_oxygen,expected",
        [(True, True, True), (True, False, False), (False, True, False), (False, False, False)],
    )
    def test_requires_both_signals(self, low_bp: bool, low_oxygen: bool, expected: bool) -> None:
        assert detect_hypotensive_hypoxemia(low_bp, low_oxygen) is expected


class TestAlertFactories:
    @pytest.mark.parametrize(
        "factory,category",
        [
            (BloodPressureAlertFactory(), AlertCategory.BLOOD_PRESSURE),
            (BloodOxygenAlertFactory(), AlertCategory.BLOOD_OXYGEN),
            (CardiacAlertFactory(), AlertCategory.CARDIAC),
        ],
    )
    def test_factory_stamps_category(self, factory, category: AlertCategory) -> None:
        alert = factory.create_alert("7", "Something happened", 123)

        assert alert.category is category
        assert alert.patient_id == "7"
        assert alert.condition == "Something happened"
        assert alert.timestamp == 123

    def test_alerts_are_immutable(self) -> None:
        alert = CardiacAlertFactory().create_alert("7", "Tachycardia", 1)

        with pytest.raises(ValueError, match="frozen"):
            alert.condition = "changed"  # type: ignore[misc]

    def test_dispatch_table_is_explicit(self) -> None:
        dispatch = default_factory_dispatch()

        assert dispatch["HeartRate"].category is AlertCategory.CARDIAC
        assert dispatch["OxygenLevel"].category is AlertCategory.BLOOD_OXYGEN
        assert dispatch["SystolicBloodPressure"].category is AlertCategory.BLOOD_PRESSURE
        assert dispatch["DiastolicBloodPressure"].category is AlertCategory.BLOOD_PRESSURE
        # No substring matching on reserved words
        assert "MeanArterialBloodPressure" not in dispatch
        assert "ECG" not in dispatch
