"""
In-memory record store implementing the DataStorage protocol.

Used by tests, simulators and single-process deployments. Measurements are kept
per patient in timestamp order so range queries come back chronological.
"""

import bisect
import threading

import structlog

from vital_alerts.domain.models import Measurement, Patient

logger = structlog.get_logger(__name__)


def _timestamp(record: Measurement) -> int:
    return record.timestamp


class InMemoryDataStorage:
    """Thread-safe per-patient measurement history."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[int, list[Measurement]] = {}
        self.logger = logger.bind(component="in_memory_storage")

    def add_patient_data(
        self, patient_id: int, measurement_value: float, record_type: str, timestamp: int
    ) -> Measurement:
        """Store one measurement, keeping the patient's history sorted by timestamp."""
        record = Measurement(
            patient_id=patient_id,
            record_type=record_type,
            measurement_value=measurement_value,
            timestamp=timestamp,
        )
        with self._lock:
            history = self._records.setdefault(patient_id, [])
            # Equal timestamps keep arrival order
            bisect.insort_right(history, record, key=_timestamp)
        return record

    def get_records(self, patient_id: int, start_time: int, end_time: int) -> list[Measurement]:
        """Measurements with start_time <= timestamp <= end_time, oldest first."""
        with self._lock:
            history = self._records.get(patient_id, [])
            lo = bisect.bisect_left(history, start_time, key=_timestamp)
            hi = bisect.bisect_right(history, end_time, key=_timestamp)
            records = history[lo:hi]
        self.logger.debug(
            "records_fetched",
            patient_id=patient_id,
            start_time=start_time,
            end_time=end_time,
            count=len(records),
        )
        return records

    def get_all_patients(self) -> list[Patient]:
        with self._lock:
            return [Patient(patient_id=patient_id) for patient_id in sorted(self._records)]
