"""
Application layer for AquaWatch
"""

from aquawatch.application.use_cases.anomaly_detection import AnomalyDetectionUseCase
from aquawatch.application.use_cases.maintenance_prediction import MaintenancePredictionUseCase
from aquawatch.application.services.orchestration import OrchestrationService

__all__ = [
    "AnomalyDetectionUseCase",
    "MaintenancePredictionUseCase",
    "OrchestrationService",
]
