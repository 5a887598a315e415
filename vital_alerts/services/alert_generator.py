"""
Alert generation for one patient's recent vital signs.

The generator pulls the trailing hour of measurements from the record store and
evaluates it in a single chronological pass:

- per-sample threshold strategies from the StrategyRegistry
- manual alerts raised by staff or call buttons
- rapid oxygen drops between consecutive saturation samples
- window-level pressure trends, hypotensive hypoxemia and ECG deviation

Evaluations keep no state between calls. Evaluating overlapping windows re-reports
the same events; deduplication belongs to whoever consumes the sink.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import structlog
from pydantic import ValidationError

from vital_alerts.config import DetectionConfig
from vital_alerts.domain.models import (
    Alert,
    AlertCategory,
    Measurement,
    MetricType,
    PatientIdentity,
)
from vital_alerts.services.detectors import (
    MINUTE_MS,
    detect_deviation,
    detect_hypotensive_hypoxemia,
    detect_rapid_drop,
    detect_trend,
)
from vital_alerts.services.factories import (
    AlertFactory,
    BloodOxygenAlertFactory,
    BloodPressureAlertFactory,
    CardiacAlertFactory,
    default_factory_dispatch,
)
from vital_alerts.services.sink import AlertSink
from vital_alerts.services.strategies import AlertStrategy, StrategyRegistry

logger = structlog.get_logger(__name__)

WINDOW_MS = 60 * MINUTE_MS

MANUAL_ALERT_CONDITION = "Manual Triggered Alert"
HYPOTENSIVE_HYPOXEMIA_CONDITION = "Hypotensive Hypoxemia Alert"
ABNORMAL_ECG_CONDITION = "Abnormal ECG Activity Detected"


@runtime_checkable
class DataStorage(Protocol):
    """
    Record store supplying a patient's measurements for a time range.

    Results must be in ascending timestamp order; the generator does not re-sort.
    """

    def get_records(self, patient_id: int, start_time: int, end_time: int) -> list[Measurement]:
        """Return measurements with start_time <= timestamp <= end_time."""
        ...


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _WindowState:
    """Values gathered during the pass for the window-level detectors."""

    systolic: list[float] = field(default_factory=list)
    diastolic: list[float] = field(default_factory=list)
    ecg: list[float] = field(default_factory=list)
    low_systolic_seen: bool = False
    low_oxygen_seen: bool = False
    previous_oxygen: Measurement | None = None


class AlertGenerator:
    """
    Evaluates patient windows against strategies and detectors and records the alerts.

    The registry and the sink are owned here. Both tolerate concurrent evaluations of
    different patients; registry changes are expected during configuration only.
    """

    def __init__(
        self,
        data_storage: DataStorage,
        registry: StrategyRegistry | None = None,
        detection: DetectionConfig | None = None,
        sink: AlertSink | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        if not isinstance(data_storage, DataStorage):
            raise TypeError(f"Record store {data_storage!r} must implement DataStorage protocol")

        self.data_storage = data_storage
        self.registry = registry if registry is not None else StrategyRegistry.from_thresholds()
        self.detection = detection or DetectionConfig()
        self.sink = sink if sink is not None else AlertSink()
        self.clock = clock
        self.logger = logger.bind(component="alert_generator")

        self.blood_pressure_factory = BloodPressureAlertFactory()
        self.blood_oxygen_factory = BloodOxygenAlertFactory()
        self.cardiac_factory = CardiacAlertFactory()
        self._factories: dict[str, AlertFactory] = default_factory_dispatch()

    def set_strategy(self, metric_type: str, strategy: AlertStrategy) -> None:
        """Replace or add the strategy for a metric type; applies to later evaluations."""
        self.registry.set_strategy(metric_type, strategy)

    def register_factory(self, metric_type: str, factory: AlertFactory) -> None:
        """Route strategy alerts for `metric_type` to `factory`."""
        key = metric_type.value if isinstance(metric_type, MetricType) else metric_type
        self._factories[key] = factory
        self.logger.info(
            "factory_registered", metric_type=key, category=factory.category.value
        )

    def get_triggered_alerts(self) -> tuple[Alert, ...]:
        """Snapshot of every alert triggered so far, in append order."""
        return self.sink.snapshot()

    def evaluate_data(self, patient: PatientIdentity) -> list[Alert]:
        """
        Evaluate the patient's trailing hour of data and emit alerts to the sink.

        Args:
            patient: Patient whose records are fetched; only `patient_id` is used.

        Returns:
            list[Alert]: Alerts emitted by this evaluation, in emission order.
        """
        alerts = self.collect_alerts(patient)
        self.commit_alerts(alerts)
        return alerts

    def collect_alerts(self, patient: PatientIdentity) -> list[Alert]:
        """Evaluate the trailing hour without touching the sink."""
        now = self.clock()
        records = self.data_storage.get_records(patient.patient_id, now - WINDOW_MS, now)
        patient_id = str(patient.patient_id)

        alerts: list[Alert] = []
        state = _WindowState()

        for record in records:
            alerts.extend(self._evaluate_record(patient_id, record, state))
        alerts.extend(self._evaluate_window(patient_id, state, now))

        self.logger.info(
            "window_evaluated", patient_id=patient_id, records=len(records), alerts=len(alerts)
        )
        return alerts

    def commit_alerts(self, alerts: list[Alert]) -> None:
        """Append collected alerts to the sink in order."""
        for alert in alerts:
            self._trigger_alert(alert)

    def _evaluate_record(
        self, patient_id: str, record: Measurement, state: _WindowState
    ) -> list[Alert]:
        alerts: list[Alert] = []
        value = record.measurement_value
        timestamp = record.timestamp

        strategy = self.registry.get(record.record_type)
        if strategy is not None and strategy.check_alert(patient_id, value, timestamp):
            factory = self._factories.get(record.record_type)
            if factory is None:
                self.logger.debug(
                    "factory_missing", metric_type=record.record_type, patient_id=patient_id
                )
            else:
                condition = strategy.describe_condition(value)
                try:
                    alerts.append(factory.create_alert(patient_id, condition, timestamp))
                except ValidationError as e:
                    self.logger.warning(
                        "alert_build_failed",
                        metric_type=record.record_type,
                        patient_id=patient_id,
                        error=str(e),
                    )

        metric = MetricType.parse(record.record_type)
        if metric is MetricType.SYSTOLIC_BLOOD_PRESSURE:
            state.systolic.append(value)
            if value < self.detection.hypotension_systolic:
                state.low_systolic_seen = True
        elif metric is MetricType.DIASTOLIC_BLOOD_PRESSURE:
            state.diastolic.append(value)
        elif metric is MetricType.OXYGEN_LEVEL:
            if value < self.detection.hypoxemia_oxygen:
                state.low_oxygen_seen = True
            drop = detect_rapid_drop(
                state.previous_oxygen,
                record,
                min_drop=self.detection.rapid_drop_points,
                max_gap_ms=int(self.detection.rapid_drop_window_minutes * MINUTE_MS),
            )
            if drop is not None:
                alerts.append(
                    self.blood_oxygen_factory.create_alert(
                        patient_id, f"Rapid Oxygen Drop: -{drop}%", timestamp
                    )
                )
            state.previous_oxygen = record
        elif metric is MetricType.ECG:
            state.ecg.append(value)
        elif metric is MetricType.TRIGGERED_ALERT and value == 1.0:
            alerts.append(
                Alert(
                    patient_id=patient_id,
                    condition=MANUAL_ALERT_CONDITION,
                    timestamp=timestamp,
                    category=AlertCategory.MANUAL,
                )
            )

        return alerts

    def _evaluate_window(self, patient_id: str, state: _WindowState, now: int) -> list[Alert]:
        alerts: list[Alert] = []

        for values, label in (
            (state.systolic, "Systolic Blood Pressure"),
            (state.diastolic, "Diastolic Blood Pressure"),
        ):
            if detect_trend(values, self.detection.trend_threshold):
                alerts.append(
                    self.blood_pressure_factory.create_alert(
                        patient_id, f"Trend Alert: {label}", now
                    )
                )

        if detect_hypotensive_hypoxemia(state.low_systolic_seen, state.low_oxygen_seen):
            alerts.append(
                self.blood_pressure_factory.create_alert(
                    patient_id, HYPOTENSIVE_HYPOXEMIA_CONDITION, now
                )
            )

        if state.ecg and detect_deviation(state.ecg, self.detection.deviation_factor) is not None:
            alerts.append(self.cardiac_factory.create_alert(patient_id, ABNORMAL_ECG_CONDITION, now))

        return alerts

    def _trigger_alert(self, alert: Alert) -> None:
        self.sink.append(alert)
        self.logger.info(
            "alert_triggered",
            patient_id=alert.patient_id,
            category=alert.category.value,
            condition=alert.condition,
            timestamp=alert.timestamp,
        )
