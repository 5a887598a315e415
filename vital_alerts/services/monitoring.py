"""
Multi-patient monitoring on top of the single-window AlertGenerator.

Key patterns:
- Generic Result type so one patient's failure never hides another patient's alerts
- Structured concurrency with asyncio.TaskGroup, one task per patient
- Blocking record-store calls moved off the event loop with asyncio.to_thread
- Caller-level deadline per evaluation (the generator itself never times out)
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Generic, TypeVar

import structlog

from vital_alerts.config import AppConfig, MonitoringConfig, get_config
from vital_alerts.domain.models import Alert, PatientIdentity
from vital_alerts.logging_config import configure_logging
from vital_alerts.services.alert_generator import AlertGenerator, DataStorage
from vital_alerts.services.sink import AlertSink
from vital_alerts.services.strategies import StrategyRegistry

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Outcome of one patient's evaluation: the alerts it raised, or why it failed.

    A record store that is down for one patient is business as usual for a
    monitoring loop, not a reason to stop evaluating the others.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class PatientMonitor:
    """
    Periodically evaluates every registered patient.

    Patients are evaluated concurrently, bounded by `max_concurrent_evaluations`.
    All evaluations share the generator's registry and sink. Alerts reach the sink
    only after their evaluation finished within the deadline.
    """

    def __init__(self, generator: AlertGenerator, config: MonitoringConfig | None = None) -> None:
        self.generator = generator
        self.config = config or MonitoringConfig()
        self.patients: dict[int, PatientIdentity] = {}
        self.logger = logger.bind(component="patient_monitor")
        self._is_running: bool = False

    @classmethod
    def from_config(
        cls,
        data_storage: DataStorage,
        config: AppConfig | None = None,
        sink: AlertSink | None = None,
    ) -> "PatientMonitor":
        """Wire logging, registry, generator and monitor from application config."""
        config = config or get_config()
        configure_logging(config.logging)

        generator = AlertGenerator(
            data_storage,
            registry=StrategyRegistry.from_thresholds(config.thresholds),
            detection=config.detection,
            sink=sink,
        )
        monitor = cls(generator, config.monitoring)
        monitor.logger.info(
            "patient_monitor_initialized",
            environment=config.environment,
            max_concurrent_evaluations=config.monitoring.max_concurrent_evaluations,
        )
        return monitor

    def add_patient(self, patient: PatientIdentity) -> None:
        """Add a patient to the monitoring rota. Validates it carries an id."""
        if not hasattr(patient, "patient_id"):
            raise TypeError(f"Patient {patient!r} must expose a patient_id")
        self.patients[patient.patient_id] = patient
        self.logger.info("patient_added", patient_id=patient.patient_id)

    def remove_patient(self, patient: PatientIdentity) -> None:
        """Remove a patient from the monitoring rota."""
        del self.patients[patient.patient_id]
        self.logger.info("patient_removed", patient_id=patient.patient_id)

    @asynccontextmanager
    async def monitoring_session(self) -> AsyncIterator["PatientMonitor"]:
        """Mark the monitor running for the duration of the block."""
        self.logger.info("monitoring_session_started", patients=len(self.patients))
        self._is_running = True

        try:
            yield self
        finally:
            self._is_running = False
            self.logger.info("monitoring_session_ended")

    async def _evaluate_patient(
        self, patient: PatientIdentity, semaphore: asyncio.Semaphore
    ) -> Result[list[Alert], Exception]:
        async with semaphore:
            try:
                alerts = await asyncio.wait_for(
                    asyncio.to_thread(self.generator.collect_alerts, patient),
                    timeout=self.config.evaluation_timeout_seconds,
                )
                # An abandoned worker thread never reaches the sink
                self.generator.commit_alerts(alerts)
                return Result.ok(alerts)
            except TimeoutError as e:
                self.logger.warning(
                    "patient_evaluation_timeout",
                    patient_id=patient.patient_id,
                    timeout_seconds=self.config.evaluation_timeout_seconds,
                )
                return Result.err(e)
            except Exception as e:
                self.logger.exception(
                    "patient_evaluation_failed", patient_id=patient.patient_id, error=str(e)
                )
                return Result.err(e)

    async def evaluate_once(self) -> dict[int, Result[list[Alert], Exception]]:
        """
        Evaluate every registered patient once.

        Returns:
            dict[int, Result[list[Alert], Exception]]: Per-patient alerts or the failure.
        """
        if not self._is_running:
            raise RuntimeError("Monitor not running - use monitoring_session()")

        start_time = time.perf_counter()
        semaphore = asyncio.Semaphore(self.config.max_concurrent_evaluations)

        async with asyncio.TaskGroup() as task_group:
            tasks = {
                patient_id: task_group.create_task(self._evaluate_patient(patient, semaphore))
                for patient_id, patient in self.patients.items()
            }

        results = {patient_id: task.result() for patient_id, task in tasks.items()}

        self.logger.info(
            "monitoring_cycle_completed",
            patients=len(results),
            failed=sum(1 for r in results.values() if r.is_err()),
            alerts=sum(len(r.unwrap_or([])) for r in results.values()),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return results

    async def monitor_continuously(self) -> AsyncIterator[list[Alert]]:
        """Yield each cycle's new alerts until the session ends or the caller stops."""
        self.logger.info(
            "monitoring_started", interval_seconds=self.config.evaluation_interval_seconds
        )

        while self._is_running:
            cycle_start = time.perf_counter()

            results = await self.evaluate_once()
            yield [alert for result in results.values() for alert in result.unwrap_or([])]

            elapsed = time.perf_counter() - cycle_start
            sleep_time = max(0, self.config.evaluation_interval_seconds - elapsed)
            if sleep_time > 0:
                await asyncio.sleep(sleep_time)
            else:
                self.logger.warning(
                    "monitoring_cycle_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.config.evaluation_interval_seconds,
                )
