"""
Append-only collection of triggered alerts with pluggable delivery handlers.
"""

import threading
from collections.abc import Callable, Iterator

import structlog

from vital_alerts.domain.models import Alert

logger = structlog.get_logger(__name__)

AlertHandler = Callable[[Alert], None]


class AlertSink:
    """
    Thread-safe append-only alert store.

    Appends from different patients' evaluations may interleave; appends from one
    evaluation keep their order. Handlers run after the alert is stored, outside the lock.
    """

    def __init__(self, handlers: list[AlertHandler] | None = None) -> None:
        self._lock = threading.Lock()
        self._alerts: list[Alert] = []
        self._handlers: list[AlertHandler] = list(handlers or [])
        self.logger = logger.bind(component="alert_sink")

    def subscribe(self, handler: AlertHandler) -> None:
        """Register a delivery handler (pager, notification, audit log)."""
        if not callable(handler):
            raise TypeError(f"Handler {handler!r} must be callable")
        with self._lock:
            self._handlers.append(handler)
        self.logger.info("handler_subscribed", handler=getattr(handler, "__name__", repr(handler)))

    def append(self, alert: Alert) -> None:
        with self._lock:
            self._alerts.append(alert)
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(alert)
            except Exception as e:
                # Delivery is downstream; a broken handler must not lose the alert
                self.logger.error(
                    "alert_dispatch_failed",
                    error=str(e),
                    patient_id=alert.patient_id,
                    condition=alert.condition,
                )

    def snapshot(self) -> tuple[Alert, ...]:
        with self._lock:
            return tuple(self._alerts)

    def for_patient(self, patient_id: str) -> list[Alert]:
        return [alert for alert in self.snapshot() if alert.patient_id == patient_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    def __iter__(self) -> Iterator[Alert]:
        return iter(self.snapshot())
