"""Configuration for AquaWatch."""

from aquawatch.config.settings import (
    AquaWatchSettings,
    DetectionSettings,
    LoggingSettings,
    OrchestrationSettings,
    PredictionSettings,
    RawDetectionSettings,
    StorageSettings,
)
from aquawatch.config.manager import ConfigurationManager

__all__ = [
    "AquaWatchSettings",
    "DetectionSettings",
    "RawDetectionSettings",
    "PredictionSettings",
    "OrchestrationSettings",
    "StorageSettings",
    "LoggingSettings",
    "ConfigurationManager",
]
