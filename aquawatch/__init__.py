"""AquaWatch - Anomaly Detection and Maintenance Prediction for Water Purification Units.

This package watches the measurement history of water-purification units and
turns it into actionable findings.

Key Features:
- Statistical anomaly detection on flow and temperature readings
- Two interchangeable detection strategies (smoothed baseline, raw threshold)
- Filter, UVC lamp and annual service maintenance forecasts
- Per-unit risk scoring
- File-based stores and a command line tool for batch runs

Architecture:
- Domain models and pure statistics in ``aquawatch.core``
- Detection, prediction and orchestration in ``aquawatch.application``
- Store ports and adapters in ``aquawatch.infrastructure``
"""

__version__ = "1.0.0"
__author__ = "AquaWatch Team"
__license__ = "MIT"

# Public API exports
from aquawatch.core.domain.models import (
    Measurement,
    UnitProfile,
    AnomalyFinding,
    MaintenancePrediction,
    SortOrder,
    Severity,
)
from aquawatch.core.exceptions import (
    AquaWatchError,
    InvalidInputError,
    ConfigurationError,
)

__all__ = [
    "Measurement",
    "UnitProfile",
    "AnomalyFinding",
    "MaintenancePrediction",
    "SortOrder",
    "Severity",
    "AquaWatchError",
    "InvalidInputError",
    "ConfigurationError",
]
