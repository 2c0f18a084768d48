"""
In-memory store implementations, for embedding hosts and tests
"""

import uuid
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from aquawatch.core.domain.models import (
    AlertRecord,
    MaintenancePrediction,
    Measurement,
    SortOrder,
    UnitProfile,
)
from aquawatch.core.exceptions import UnitNotFoundError
from aquawatch.infrastructure.storage import (
    AlertSink,
    MeasurementStore,
    PredictionStore,
    UnitRegistry,
    select_latest,
)


class InMemoryMeasurementStore(MeasurementStore):
    def __init__(self, measurements: Optional[Dict[str, Iterable[Measurement]]] = None):
        self._series: Dict[str, List[Measurement]] = defaultdict(list)
        for unit_id, items in (measurements or {}).items():
            self._series[unit_id].extend(items)

    def append(self, unit_id: str, measurement: Measurement) -> None:
        self._series[unit_id].append(measurement)

    async def fetch_measurements(self, unit_id, order=SortOrder.DESCENDING, limit=None):
        return select_latest(list(self._series.get(unit_id, [])), order, limit)


class InMemoryUnitRegistry(UnitRegistry):
    def __init__(self, units: Optional[Iterable[UnitProfile]] = None):
        self._units: Dict[str, UnitProfile] = {u.unit_id: u for u in (units or [])}

    def add(self, unit: UnitProfile) -> None:
        self._units[unit.unit_id] = unit

    async def get_unit(self, unit_id: str) -> UnitProfile:
        try:
            return self._units[unit_id]
        except KeyError:
            raise UnitNotFoundError(f"Unit not found: {unit_id}")


class InMemoryAlertSink(AlertSink):
    def __init__(self):
        self.alerts: Dict[str, AlertRecord] = {}

    async def create_alert(self, alert: AlertRecord) -> str:
        alert_id = str(uuid.uuid4())
        self.alerts[alert_id] = alert
        return alert_id


class InMemoryPredictionStore(PredictionStore):
    """Keeps the latest predictions per unit and maintenance type (create-and-replace)."""

    def __init__(self):
        self.predictions: Dict[str, MaintenancePrediction] = {}

    async def save_prediction(self, prediction: MaintenancePrediction) -> str:
        key = f"{prediction.unit_id}:{prediction.maintenance_type.value}"
        self.predictions[key] = prediction
        return prediction.id

    def for_unit(self, unit_id: str) -> List[MaintenancePrediction]:
        return [p for p in self.predictions.values() if p.unit_id == unit_id]
