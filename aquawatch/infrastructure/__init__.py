"""Infrastructure layer for AquaWatch."""

from aquawatch.infrastructure.storage import (
    AlertSink,
    MeasurementStore,
    PredictionStore,
    UnitRegistry,
)

__all__ = [
    "AlertSink",
    "MeasurementStore",
    "PredictionStore",
    "UnitRegistry",
]
