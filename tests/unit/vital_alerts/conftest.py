"""Shared fixtures for alerting engine tests."""

import pytest

from adapters.records.memory import InMemoryDataStorage
from vital_alerts.domain.models import Patient
from vital_alerts.services.alert_generator import AlertGenerator

NOW = 1_700_000_000_000


@pytest.fixture
def storage() -> InMemoryDataStorage:
    return InMemoryDataStorage()


@pytest.fixture
def patient() -> Patient:
    return Patient(patient_id=7)


@pytest.fixture
def generator(storage: InMemoryDataStorage) -> AlertGenerator:
    """Generator with default thresholds and a frozen clock."""
    return AlertGenerator(storage, clock=lambda: NOW)
