"""
Per-sample threshold strategies and the registry that maps metric types to them.

Key patterns:
- Protocol-based strategies so callers can plug in their own rules
- Explicit comparison direction instead of one assumed bound semantics
- Registry owned by the generator, mutated only through set_strategy()
"""

import threading
from collections.abc import Iterator
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

from vital_alerts.config import ThresholdConfig
from vital_alerts.domain.models import MetricType

logger = structlog.get_logger(__name__)


@runtime_checkable
class AlertStrategy(Protocol):
    """
    Protocol for a rule that inspects one sample.

    Implementations must be pure: the same inputs always give the same answer.
    """

    def check_alert(self, patient_id: str, value: float, timestamp: int) -> bool:
        """Return True when the sample breaches the rule."""
        ...

    def describe_condition(self, value: float) -> str:
        """Human-readable description of the breach for this value."""
        ...


class ThresholdRangeStrategy:
    """Fires when a value leaves the closed range [low, high]."""

    def __init__(self, low: float, high: float, label: str, unit: str = "mmHg") -> None:
        if low > high:
            raise ValueError(f"low threshold {low} must not exceed high threshold {high}")
        self.low = low
        self.high = high
        self.label = label
        self.unit = unit

    def check_alert(self, patient_id: str, value: float, timestamp: int) -> bool:
        return value < self.low or value > self.high

    def describe_condition(self, value: float) -> str:
        breach = "too low" if value < self.low else "too high"
        return f"{self.label} {breach}: {value} {self.unit}".rstrip()

    def __repr__(self) -> str:
        return f"ThresholdRangeStrategy(low={self.low}, high={self.high}, label={self.label!r})"


class BoundDirection(str, Enum):
    """Which side of the threshold is dangerous."""

    BELOW = "below"
    ABOVE = "above"


class BoundStrategy:
    """
    Fires when a value crosses a single threshold.

    Heart rate is dangerous above its bound while oxygen saturation is dangerous below
    it, so the direction is always explicit.
    """

    def __init__(
        self, threshold: float, direction: BoundDirection, label: str, unit: str = ""
    ) -> None:
        self.threshold = threshold
        self.direction = direction
        self.label = label
        self.unit = unit

    def check_alert(self, patient_id: str, value: float, timestamp: int) -> bool:
        if self.direction is BoundDirection.ABOVE:
            return value > self.threshold
        return value < self.threshold

    def describe_condition(self, value: float) -> str:
        suffix = f" {self.unit}" if self.unit else ""
        return (
            f"{self.label} {self.direction.value} {self.threshold}{suffix}: {value}{suffix}"
        )

    def __repr__(self) -> str:
        return (
            f"BoundStrategy(threshold={self.threshold}, direction={self.direction.value}, "
            f"label={self.label!r})"
        )


class StrategyRegistry:
    """
    Mapping from metric type name to the strategy that evaluates it.

    Entries are added or overwritten, never removed. Reads and writes are lock-guarded
    so configuration changes cannot tear a concurrent lookup.
    """

    def __init__(self, strategies: dict[str, AlertStrategy] | None = None) -> None:
        self._lock = threading.Lock()
        self._strategies: dict[str, AlertStrategy] = {}
        self.logger = logger.bind(component="strategy_registry")
        for metric_type, strategy in (strategies or {}).items():
            self.set_strategy(metric_type, strategy)

    @classmethod
    def from_thresholds(cls, thresholds: ThresholdConfig | None = None) -> "StrategyRegistry":
        """Build the default registry for the four threshold metrics."""
        thresholds = thresholds or ThresholdConfig()
        return cls(
            {
                MetricType.SYSTOLIC_BLOOD_PRESSURE.value: ThresholdRangeStrategy(
                    thresholds.systolic_low, thresholds.systolic_high, "Systolic blood pressure"
                ),
                MetricType.DIASTOLIC_BLOOD_PRESSURE.value: ThresholdRangeStrategy(
                    thresholds.diastolic_low,
                    thresholds.diastolic_high,
                    "Diastolic blood pressure",
                ),
                MetricType.HEART_RATE.value: BoundStrategy(
                    thresholds.heart_rate_max, BoundDirection.ABOVE, "Heart Rate", "bpm"
                ),
                MetricType.OXYGEN_LEVEL.value: BoundStrategy(
                    thresholds.oxygen_min, BoundDirection.BELOW, "Oxygen Saturation", "%"
                ),
            }
        )

    def set_strategy(self, metric_type: str, strategy: AlertStrategy) -> None:
        """Add or replace the strategy for a metric type. Validates the protocol."""
        if not isinstance(strategy, AlertStrategy):
            raise TypeError(f"Strategy {strategy!r} must implement AlertStrategy protocol")
        key = metric_type.value if isinstance(metric_type, MetricType) else metric_type
        with self._lock:
            replaced = key in self._strategies
            self._strategies[key] = strategy
        self.logger.info(
            "strategy_registered",
            metric_type=key,
            strategy=type(strategy).__name__,
            replaced=replaced,
        )

    def get(self, metric_type: str) -> AlertStrategy | None:
        with self._lock:
            return self._strategies.get(metric_type)

    def snapshot(self) -> dict[str, AlertStrategy]:
        with self._lock:
            return dict(self._strategies)

    def __contains__(self, metric_type: object) -> bool:
        with self._lock:
            return metric_type in self._strategies

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._strategies)
