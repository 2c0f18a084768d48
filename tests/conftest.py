"""
Shared test fixtures for the AquaWatch test suite.

Provides:
- Measurement series builders (daily readings, spikes)
- Unit profiles for each unit class
- In-memory stores wired into an orchestration service
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import pytest

from aquawatch.application.services.orchestration import OrchestrationService
from aquawatch.application.use_cases.anomaly_detection import (
    AnomalyDetectionUseCase,
    SmoothedBaselineStrategy,
)
from aquawatch.application.use_cases.maintenance_prediction import MaintenancePredictionUseCase
from aquawatch.config.settings import OrchestrationSettings
from aquawatch.core.domain.models import Measurement, UnitProfile, UnitType
from aquawatch.infrastructure.storage.memory import (
    InMemoryAlertSink,
    InMemoryMeasurementStore,
    InMemoryPredictionStore,
    InMemoryUnitRegistry,
)

logging.getLogger("aquawatch").setLevel(logging.WARNING)

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def daily_series(
    volumes: Sequence[float],
    start: datetime = START,
    temperatures: Optional[Sequence[Optional[float]]] = None,
    uvc_hours: Optional[Sequence[Optional[float]]] = None,
) -> List[Measurement]:
    """One measurement per day, oldest first."""
    series = []
    for i, volume in enumerate(volumes):
        series.append(Measurement(
            timestamp=start + timedelta(days=i),
            volume=volume,
            temperature=temperatures[i] if temperatures else None,
            uvc_hours=uvc_hours[i] if uvc_hours else None,
        ))
    return series


def spike_series(count: int = 40, base: float = 100.0, spike: float = 500.0) -> List[Measurement]:
    """``count - 1`` steady readings followed by one spike on the last day."""
    return daily_series([base] * (count - 1) + [spike])


@pytest.fixture
def uvc_unit():
    return UnitProfile(
        unit_id="unit-a",
        unit_name="Clinic Tap",
        unit_type=UnitType.UVC,
        current_volume=8000,
        current_uvc_hours=4500,
        setup_date=START - timedelta(days=300),
    )


@pytest.fixture
def filter_unit():
    return UnitProfile(
        unit_id="unit-b",
        unit_name="School Filter",
        unit_type=UnitType.FILTER,
        current_volume=2000,
    )


@pytest.fixture
def measurement_store():
    return InMemoryMeasurementStore()


@pytest.fixture
def unit_registry(uvc_unit, filter_unit):
    return InMemoryUnitRegistry([uvc_unit, filter_unit])


@pytest.fixture
def alert_sink():
    return InMemoryAlertSink()


@pytest.fixture
def prediction_store():
    return InMemoryPredictionStore()


@pytest.fixture
def service(measurement_store, unit_registry, alert_sink, prediction_store):
    return OrchestrationService(
        measurement_store=measurement_store,
        unit_registry=unit_registry,
        alert_sink=alert_sink,
        prediction_store=prediction_store,
        detector=AnomalyDetectionUseCase(SmoothedBaselineStrategy()),
        predictor=MaintenancePredictionUseCase(),
        settings=OrchestrationSettings(max_concurrency=2),
    )
