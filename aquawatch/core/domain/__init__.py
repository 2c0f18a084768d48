"""Core domain layer for AquaWatch."""

__all__ = [
    "Measurement",
    "DetectionConfig",
    "RawDetectionConfig",
    "PredictionConfig",
    "UnitProfile",
    "AnomalyFinding",
    "MaintenancePrediction",
    "AlertRecord",
    "RiskAssessment",
    "SortOrder",
    "MetricType",
    "Severity",
    "MaintenanceType",
    "Priority",
    "UnitType",
]
