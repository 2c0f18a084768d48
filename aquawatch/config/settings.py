"""Configuration settings models using Pydantic."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from aquawatch.core.domain.models import DetectionConfig, PredictionConfig, RawDetectionConfig

AVAILABLE_STRATEGIES = ('smoothed', 'raw')


class DetectionSettings(DetectionConfig):
    """Smoothed-baseline detector settings plus the strategy choice."""

    strategy: str = Field("smoothed", description="Anomaly strategy (smoothed/raw)")

    @field_validator('strategy')
    @classmethod
    def validate_strategy(cls, v):
        if v.lower() not in AVAILABLE_STRATEGIES:
            raise ValueError(f"Strategy must be one of: {list(AVAILABLE_STRATEGIES)}")
        return v.lower()

    def to_config(self) -> DetectionConfig:
        return DetectionConfig(**self.model_dump(exclude={'strategy'}))


class RawDetectionSettings(RawDetectionConfig):
    """Raw z-score/percentage detector settings."""

    def to_config(self) -> RawDetectionConfig:
        return RawDetectionConfig(**self.model_dump())


class PredictionSettings(PredictionConfig):
    """Maintenance predictor settings."""

    def to_config(self) -> PredictionConfig:
        return PredictionConfig(**self.model_dump())


class OrchestrationSettings(BaseModel):
    """Batch processing configuration."""

    history_limit: int = Field(100, gt=0, description="Measurements fetched per unit")
    max_units: Optional[int] = Field(None, gt=0, description="Cap on units per batch run")
    max_concurrency: int = Field(4, gt=0, description="Units processed at the same time")
    upcoming_window_days: int = Field(30, gt=0, description="Horizon for 'upcoming' maintenance")


class StorageSettings(BaseModel):
    """File-based store locations used by the command line tool."""

    data_directory: Path = Field(Path("data"), description="Data directory")
    measurements_file: str = Field("measurements.csv")
    units_file: str = Field("units.json")
    alerts_file: str = Field("alerts.csv")
    predictions_file: str = Field("predictions.csv")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    file_enabled: bool = Field(False, description="Enable file logging")
    console_enabled: bool = Field(True, description="Enable console logging")
    log_directory: Path = Field(Path("logs"), description="Log file directory")
    max_file_size_mb: int = Field(10, gt=0, description="Maximum log file size")
    backup_count: int = Field(5, gt=0, description="Number of backup log files")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class AquaWatchSettings(BaseModel):
    """Main configuration settings for AquaWatch."""

    debug: bool = Field(False, description="Log at DEBUG regardless of logging.level")

    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    raw_detection: RawDetectionSettings = Field(default_factory=RawDetectionSettings)
    prediction: PredictionSettings = Field(default_factory=PredictionSettings)
    orchestration: OrchestrationSettings = Field(default_factory=OrchestrationSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def get_data_path(self, filename: str) -> Path:
        """Get full path to a data file."""
        return self.storage.data_directory / filename
