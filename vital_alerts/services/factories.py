"""
Alert factories, one per alert category, and the metric-type dispatch table.
"""

from typing import Protocol

from vital_alerts.domain.models import Alert, AlertCategory, MetricType


class AlertFactory(Protocol):
    """Builds an Alert stamped with the factory's category."""

    category: AlertCategory

    def create_alert(self, patient_id: str, condition: str, timestamp: int) -> Alert: ...


class _CategoryAlertFactory:
    category: AlertCategory

    def create_alert(self, patient_id: str, condition: str, timestamp: int) -> Alert:
        return Alert(
            patient_id=patient_id,
            condition=condition,
            timestamp=timestamp,
            category=self.category,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class BloodPressureAlertFactory(_CategoryAlertFactory):
    category = AlertCategory.BLOOD_PRESSURE


class BloodOxygenAlertFactory(_CategoryAlertFactory):
    category = AlertCategory.BLOOD_OXYGEN


class CardiacAlertFactory(_CategoryAlertFactory):
    category = AlertCategory.CARDIAC


def default_factory_dispatch() -> dict[str, AlertFactory]:
    """Which factory builds the alert when a metric's strategy fires.

    ECG and TriggeredAlert have no entry; they never go through the strategy registry.
    """
    blood_pressure = BloodPressureAlertFactory()
    return {
        MetricType.HEART_RATE.value: CardiacAlertFactory(),
        MetricType.OXYGEN_LEVEL.value: BloodOxygenAlertFactory(),
        MetricType.SYSTOLIC_BLOOD_PRESSURE.value: blood_pressure,
        MetricType.DIASTOLIC_BLOOD_PRESSURE.value: blood_pressure,
    }
