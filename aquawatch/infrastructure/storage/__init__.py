"""
Store interfaces and file-based storage for AquaWatch

The measurement store, unit registry, alert sink and predictions store are
owned by the host system. The abstract classes below are the in-process
contracts the orchestrator talks to; the CSV/JSON classes back the command
line tool and the in-memory ones live in ``storage.memory``.
"""

import asyncio
import csv
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from aquawatch.core.domain.models import (
    AlertRecord,
    MaintenancePrediction,
    Measurement,
    SortOrder,
    UnitProfile,
)
from aquawatch.core.exceptions import (
    MeasurementFetchError,
    PersistenceError,
    StorageError,
    UnitNotFoundError,
)

logger = logging.getLogger(__name__)

MEASUREMENT_COLUMNS = ['unit_id', 'timestamp', 'volume', 'temperature', 'uvc_hours']


class MeasurementStore(ABC):
    """Append-only per-unit time series of measurements."""

    @abstractmethod
    async def fetch_measurements(
        self,
        unit_id: str,
        order: SortOrder = SortOrder.DESCENDING,
        limit: Optional[int] = None,
    ) -> List[Measurement]:
        """Return the last ``limit`` measurements of a unit sorted by timestamp in ``order``."""


class UnitRegistry(ABC):
    """Lookup of unit identity and wear counters."""

    @abstractmethod
    async def get_unit(self, unit_id: str) -> UnitProfile:
        """Return the unit's profile or raise UnitNotFoundError."""


class AlertSink(ABC):
    """Receiver of alert records; owns their lifecycle."""

    @abstractmethod
    async def create_alert(self, alert: AlertRecord) -> str:
        """Store an alert and return its identifier."""


class PredictionStore(ABC):
    """Receiver of maintenance predictions."""

    @abstractmethod
    async def save_prediction(self, prediction: MaintenancePrediction) -> str:
        """Store a prediction and return its identifier."""


def select_latest(
    measurements: List[Measurement],
    order: SortOrder,
    limit: Optional[int],
) -> List[Measurement]:
    """Keep the newest ``limit`` measurements, returned in ``order``."""
    newest_first = sorted(measurements, key=lambda m: m.timestamp, reverse=True)
    if limit is not None:
        newest_first = newest_first[:max(0, limit)]
    if order == SortOrder.ASCENDING:
        newest_first.reverse()
    return newest_first


def _optional_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


class CsvMeasurementStore(MeasurementStore):
    """Measurements for all units in one CSV file with a ``unit_id`` column."""

    def __init__(self, path: str):
        self.path = path

    def _load(self, unit_id: str) -> List[Measurement]:
        if not os.path.exists(self.path):
            raise MeasurementFetchError(f"Measurement file not found: {self.path}")
        try:
            df = pd.read_csv(self.path, dtype={'unit_id': str})
        except Exception as e:
            raise MeasurementFetchError(f"Failed to read measurements: {e}", cause=e)

        missing = {'unit_id', 'timestamp', 'volume'} - set(df.columns)
        if missing:
            raise MeasurementFetchError(
                f"Measurement file is missing columns: {sorted(missing)}",
                details={'path': self.path},
            )

        rows = df[df['unit_id'] == unit_id]
        timestamps = pd.to_datetime(rows['timestamp'], utc=True)
        measurements = []
        for ts, (_, row) in zip(timestamps, rows.iterrows()):
            measurements.append(Measurement(
                timestamp=ts.to_pydatetime(),
                volume=float(row['volume']),
                temperature=_optional_float(row.get('temperature')),
                uvc_hours=_optional_float(row.get('uvc_hours')),
            ))
        return measurements

    async def fetch_measurements(self, unit_id, order=SortOrder.DESCENDING, limit=None):
        measurements = await asyncio.to_thread(self._load, unit_id)
        return select_latest(measurements, order, limit)


class JsonUnitRegistry(UnitRegistry):
    """Unit profiles from a JSON file: a list of objects or a mapping keyed by unit id."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, Dict[str, Any]]:
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StorageError(f"Unit registry file not found: {self.path}", cause=e)
        except json.JSONDecodeError as e:
            raise StorageError(f"Invalid unit registry file: {e}", cause=e)

        try:
            if isinstance(data, dict):
                return {str(k): {**v, 'unit_id': str(k)} for k, v in data.items()}
            return {str(item['unit_id']): item for item in data}
        except (KeyError, TypeError) as e:
            raise StorageError(f"Malformed unit registry entry in {self.path}: {e!r}", cause=e)

    async def get_unit(self, unit_id: str) -> UnitProfile:
        units = await asyncio.to_thread(self._load)
        if unit_id not in units:
            raise UnitNotFoundError(f"Unit not found: {unit_id}")
        try:
            return UnitProfile(**units[unit_id])
        except ValidationError as e:
            raise StorageError(f"Invalid profile for unit {unit_id}: {e}", cause=e)


class _CsvAppender:
    """Append dict rows to a CSV file, writing the header on first write."""

    def __init__(self, path: str):
        self.path = path
        self._lock = asyncio.Lock()

    def _append(self, row: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_exists = os.path.exists(self.path)
        with open(self.path, 'a', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=list(row.keys()))
            if not file_exists:
                writer.writeheader()
            writer.writerow(row)

    async def append(self, row: Dict[str, Any]) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._append, row)
            except OSError as e:
                raise PersistenceError(f"Failed to write {self.path}: {e}", cause=e)
        logger.debug(f"Row appended to {self.path}")


class CsvAlertSink(AlertSink):
    """Alerts appended to a CSV file."""

    def __init__(self, path: str):
        self._appender = _CsvAppender(path)
        self._count = 0

    @property
    def path(self) -> str:
        return self._appender.path

    async def create_alert(self, alert: AlertRecord) -> str:
        self._count += 1
        alert_id = f"alert-{alert.unit_id}-{int(alert.created_at.timestamp())}-{self._count}"
        await self._appender.append({
            'id': alert_id,
            'unit_id': alert.unit_id,
            'message': alert.message,
            'severity': alert.severity.value,
            'created_at': alert.created_at.isoformat(),
        })
        return alert_id


class CsvPredictionStore(PredictionStore):
    """Maintenance predictions appended to a CSV file."""

    def __init__(self, path: str):
        self._appender = _CsvAppender(path)

    @property
    def path(self) -> str:
        return self._appender.path

    async def save_prediction(self, prediction: MaintenancePrediction) -> str:
        await self._appender.append({
            'id': prediction.id,
            'unit_id': prediction.unit_id,
            'unit_name': prediction.unit_name,
            'maintenance_type': prediction.maintenance_type.value,
            'predicted_date': prediction.predicted_date.isoformat(),
            'estimated_days_remaining': prediction.estimated_days_remaining,
            'confidence': prediction.confidence,
            'priority': prediction.priority.value,
        })
        return prediction.id


from aquawatch.infrastructure.storage.memory import (  # noqa: E402
    InMemoryAlertSink,
    InMemoryMeasurementStore,
    InMemoryPredictionStore,
    InMemoryUnitRegistry,
)

__all__ = [
    "MeasurementStore",
    "UnitRegistry",
    "AlertSink",
    "PredictionStore",
    "CsvMeasurementStore",
    "JsonUnitRegistry",
    "CsvAlertSink",
    "CsvPredictionStore",
    "InMemoryMeasurementStore",
    "InMemoryUnitRegistry",
    "InMemoryAlertSink",
    "InMemoryPredictionStore",
    "select_latest",
]
