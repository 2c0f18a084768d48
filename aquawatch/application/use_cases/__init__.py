"""
Application use cases for AquaWatch
"""

from .anomaly_detection import (
    AnomalyDetectionUseCase,
    AnomalyStrategy,
    RawThresholdStrategy,
    SmoothedBaselineStrategy,
    build_strategy,
)
from .maintenance_prediction import MaintenancePredictionUseCase
from .risk_assessment import assess_risk

__all__ = [
    'AnomalyDetectionUseCase',
    'AnomalyStrategy',
    'RawThresholdStrategy',
    'SmoothedBaselineStrategy',
    'build_strategy',
    'MaintenancePredictionUseCase',
    'assess_risk',
]
