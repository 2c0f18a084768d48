"""Domain models for AquaWatch system."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _new_id() -> str:
    return str(uuid.uuid4())


class SortOrder(str, Enum):
    """Ordering of a measurement sequence by timestamp."""
    ASCENDING = "ascending"    # oldest first
    DESCENDING = "descending"  # newest first


class MetricType(str, Enum):
    """Measured quantity an anomaly refers to."""
    FLOW = "flow"
    TEMPERATURE = "temperature"


class Severity(str, Enum):
    """Operational significance of an anomaly."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def downgrade(self) -> "Severity":
        """One level less severe; LOW stays LOW."""
        if self is Severity.HIGH:
            return Severity.MEDIUM
        return Severity.LOW


class FindingStatus(str, Enum):
    """Status of a freshly created finding. Later states belong to the alert sink."""
    NEW = "new"


class MaintenanceType(str, Enum):
    """Kinds of maintenance the predictor forecasts."""
    FILTER_CHANGE = "filter_change"
    UVC_REPLACEMENT = "uvc_replacement"
    GENERAL_SERVICE = "general_service"


class Priority(str, Enum):
    """Urgency of a maintenance prediction."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UnitType(str, Enum):
    """Purification unit class."""
    UVC = "uvc"
    FILTER = "filter"
    OTHER = "other"


class Measurement(BaseModel):
    """One reading from a purification unit."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="When the reading was taken")
    volume: float = Field(..., description="Volume reading (cumulative within a day)")
    temperature: Optional[float] = Field(None, description="Water temperature in °C")
    uvc_hours: Optional[float] = Field(None, ge=0, description="UVC lamp hours")

    @field_validator('timestamp')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        # naive timestamps are taken as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


def sort_measurements(
    measurements: Iterable[Measurement],
    order: SortOrder = SortOrder.ASCENDING,
) -> List[Measurement]:
    """Return measurements sorted by timestamp in the requested order."""
    return sorted(
        measurements,
        key=lambda m: m.timestamp,
        reverse=(order == SortOrder.DESCENDING),
    )


class DetectionConfig(BaseModel):
    """Sensitivity settings for the smoothed-baseline detector."""

    model_config = ConfigDict(frozen=True)

    moving_average_window: int = Field(5, ge=2, description="Trailing points in the baseline")
    smoothing_factor: float = Field(0.3, gt=0, le=1, description="Exponential smoothing alpha")
    standard_deviation_threshold: float = Field(3.0, gt=0, description="Deviation multiple of std")

    flow_materiality_percent: float = Field(20.0, ge=0)
    temperature_materiality_percent: float = Field(15.0, ge=0)
    flow_high_percent: float = Field(50.0, gt=0)
    flow_medium_percent: float = Field(30.0, gt=0)
    temperature_high_percent: float = Field(40.0, gt=0)
    temperature_medium_percent: float = Field(25.0, gt=0)
    uvc_flow_escalation_percent: float = Field(60.0, gt=0)

    @model_validator(mode='after')
    def validate_breakpoints(self) -> "DetectionConfig":
        if self.flow_medium_percent >= self.flow_high_percent:
            raise ValueError("Flow medium breakpoint must be below the high breakpoint")
        if self.temperature_medium_percent >= self.temperature_high_percent:
            raise ValueError("Temperature medium breakpoint must be below the high breakpoint")
        return self


class RawDetectionConfig(BaseModel):
    """Thresholds for the raw z-score / percentage detector."""

    model_config = ConfigDict(frozen=True)

    z_score_threshold: float = Field(3.0, gt=0)
    percent_threshold: float = Field(40.0, gt=0)
    recent_window: int = Field(5, ge=1, description="Preceding readings in the local mean")
    min_history: int = Field(3, ge=1, description="Readings required before an index is checked")
    min_measurements: int = Field(5, ge=1)
    temperature_min: float = Field(5.0)
    temperature_max: float = Field(35.0)
    temperature_high_limit: float = Field(40.0)

    @model_validator(mode='after')
    def validate_band(self) -> "RawDetectionConfig":
        if self.temperature_min >= self.temperature_max:
            raise ValueError("Temperature band minimum must be below maximum")
        return self


class PredictionConfig(BaseModel):
    """Thresholds and constants for maintenance prediction."""

    model_config = ConfigDict(frozen=True)

    filter_volume_threshold: float = Field(10000.0, gt=0)
    uvc_hours_threshold: float = Field(9000.0, gt=0)
    service_cycle_days: int = Field(365, gt=0)
    horizon_days: int = Field(366, gt=0, description="Predictions at or beyond this are dropped")
    high_priority_days: int = Field(30, gt=0)
    medium_priority_days: int = Field(90, gt=0)
    filter_confidence: float = Field(0.75, ge=0, le=1)
    uvc_confidence: float = Field(0.85, ge=0, le=1)
    service_confidence: float = Field(0.9, ge=0, le=1)


class UnitProfile(BaseModel):
    """Static wear counters and identity of a unit, as held by the unit registry."""

    unit_id: str = Field(..., min_length=1)
    unit_name: str = Field("")
    unit_type: UnitType = Field(UnitType.UVC)
    current_volume: float = Field(0.0, ge=0)
    current_uvc_hours: float = Field(0.0, ge=0)
    setup_date: Optional[datetime] = Field(None)

    @field_validator('unit_type', mode='before')
    @classmethod
    def coerce_unit_type(cls, v):
        if isinstance(v, str):
            v = v.lower()
            if v not in {t.value for t in UnitType}:
                return UnitType.OTHER
        return v

    @field_validator('setup_date')
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def display_name(self) -> str:
        return self.unit_name or self.unit_id

    @property
    def is_uvc_class(self) -> bool:
        return self.unit_type == UnitType.UVC


class AnomalyFinding(BaseModel):
    """A flagged deviation of one measurement from its expected value."""

    id: str = Field(default_factory=_new_id)
    unit_id: str = Field(...)
    unit_name: str = Field("")
    detected_at: datetime = Field(default_factory=utc_now)
    metric: MetricType = Field(...)
    severity: Severity = Field(...)
    observed_value: float = Field(...)
    expected_value: float = Field(...)
    deviation_percent: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=100, description="Heuristic score 0-100")
    status: FindingStatus = Field(FindingStatus.NEW)
    strategy: str = Field(..., description="Name of the detection strategy")
    measurement_timestamp: Optional[datetime] = Field(None)
    description: str = Field("")


class MaintenancePrediction(BaseModel):
    """Forecast of when a wear counter crosses its replacement threshold."""

    id: str = Field(default_factory=_new_id)
    unit_id: str = Field(...)
    unit_name: str = Field("")
    maintenance_type: MaintenanceType = Field(...)
    predicted_date: datetime = Field(...)
    estimated_days_remaining: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    priority: Priority = Field(...)


class AlertRecord(BaseModel):
    """Payload handed to the alert sink."""

    unit_id: str = Field(...)
    message: str = Field(...)
    severity: Severity = Field(...)
    created_at: datetime = Field(default_factory=utc_now)


class RiskAssessment(BaseModel):
    """Weighted anomaly score for a unit."""

    score: int = Field(0, ge=0, le=100)
    level: Severity = Field(Severity.LOW)
