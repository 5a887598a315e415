"""
Core services for the alerting engine.

This package contains the strategies, factories and detectors that decide when a
patient needs attention, plus the generator and monitor that drive them.
"""

from .alert_generator import AlertGenerator, DataStorage
from .factories import (
    AlertFactory,
    BloodOxygenAlertFactory,
    BloodPressureAlertFactory,
    CardiacAlertFactory,
)
from .monitoring import PatientMonitor, Result
from .sink import AlertSink
from .strategies import (
    AlertStrategy,
    BoundDirection,
    BoundStrategy,
    StrategyRegistry,
    ThresholdRangeStrategy,
)

__all__ = [
    "AlertGenerator",
    "DataStorage",
    "AlertFactory",
    "BloodPressureAlertFactory",
    "BloodOxygenAlertFactory",
    "CardiacAlertFactory",
    "PatientMonitor",
    "Result",
    "AlertSink",
    "AlertStrategy",
    "BoundDirection",
    "BoundStrategy",
    "StrategyRegistry",
    "ThresholdRangeStrategy",
]
