"""
Domain models for patient vital-sign alerting.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation; alerts and measurements are frozen so they can be
shared between evaluation tasks without copying.
"""

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class MetricType(str, Enum):
    """Measurement types the alerting engine knows how to interpret."""

    SYSTOLIC_BLOOD_PRESSURE = "SystolicBloodPressure"
    DIASTOLIC_BLOOD_PRESSURE = "DiastolicBloodPressure"
    HEART_RATE = "HeartRate"
    OXYGEN_LEVEL = "OxygenLevel"
    ECG = "ECG"
    TRIGGERED_ALERT = "TriggeredAlert"

    @classmethod
    def parse(cls, record_type: str) -> "MetricType | None":
        """Map a raw record type to a known metric, or None when it is not one of ours.

        Matching is exact except for ``TriggeredAlert``, which call buttons and nurse
        stations report with inconsistent casing.
        """
        try:
            return cls(record_type)
        except ValueError:
            if record_type.lower() == cls.TRIGGERED_ALERT.value.lower():
                return cls.TRIGGERED_ALERT
            return None


class AlertCategory(str, Enum):
    """Alert families, one per factory plus manually raised alerts."""

    BLOOD_PRESSURE = "blood_pressure"
    BLOOD_OXYGEN = "blood_oxygen"
    CARDIAC = "cardiac"
    MANUAL = "manual"


class Measurement(BaseModel):
    """Single reading supplied by the record store."""

    model_config = ConfigDict(frozen=True)

    patient_id: int
    record_type: str = Field(description="Metric type name, e.g. 'HeartRate'")
    measurement_value: float
    timestamp: int = Field(description="Epoch milliseconds")


class Alert(BaseModel):
    """Detected condition for a patient. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    patient_id: str
    condition: str = Field(min_length=1)
    timestamp: int = Field(description="Epoch milliseconds of the triggering sample or evaluation")
    category: AlertCategory


class Patient(BaseModel):
    """Patient identity as known to the record store."""

    model_config = ConfigDict(frozen=True)

    patient_id: int
    name: str | None = None


class PatientIdentity(Protocol):
    """Anything that can identify a patient; only the id is consumed."""

    @property
    def patient_id(self) -> int: ...
