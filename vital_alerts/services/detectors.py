"""
Window-level pattern detectors.

All detectors are pure functions over values already pulled from one evaluation window.
They report at most one finding each; the generator turns findings into alerts.
"""

from collections.abc import Sequence
from statistics import fmean

from vital_alerts.domain.models import Measurement

MINUTE_MS = 60 * 1000


def detect_trend(values: Sequence[float], threshold: float = 10.0) -> bool:
    """
    Three consecutive samples moving the same way by more than `threshold` each step.

    Scans triples in order and stops at the first match, so one window reports one trend.
    Fewer than three values can never match.
    """
    for a, b, c in zip(values, values[1:], values[2:]):
        rising = b - a > threshold and c - b > threshold
        falling = a - b > threshold and b - c > threshold
        if rising or falling:
            return True
    return False


def detect_rapid_drop(
    previous: Measurement | None,
    current: Measurement,
    min_drop: float = 5.0,
    max_gap_ms: int = 10 * MINUTE_MS,
) -> float | None:
    """Return the drop in points between two close oxygen samples, or None.

    The samples must be at most `max_gap_ms` apart and the value must fall by at
    least `min_drop`.
    """
    if previous is None:
        return None
    if current.timestamp - previous.timestamp > max_gap_ms:
        return None
    drop = previous.measurement_value - current.measurement_value
    return drop if drop >= min_drop else None


def detect_deviation(values: Sequence[float], factor: float = 0.5) -> float | None:
    """Return the first value further than `factor * mean` from the batch mean."""
    if not values:
        return None
    mean = fmean(values)
    for value in values:
        if abs(value - mean) > mean * factor:
            return value
    return None


def detect_hypotensive_hypoxemia(low_systolic_seen: bool, low_oxygen_seen: bool) -> bool:
    """Combined low blood pressure and low saturation anywhere in the same window."""
    return low_systolic_seen and low_oxygen_seen
