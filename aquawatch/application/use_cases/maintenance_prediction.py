"""
Maintenance prediction use case for AquaWatch
"""

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import pandas as pd

from aquawatch.core.domain.models import (
    MaintenancePrediction,
    MaintenanceType,
    Measurement,
    PredictionConfig,
    Priority,
    SortOrder,
    UnitProfile,
    ensure_utc,
    sort_measurements,
    utc_now,
)
from aquawatch.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class MaintenancePredictionUseCase:
    """Use case for forecasting filter, UVC lamp and general service dates"""

    def __init__(self, config: Optional[PredictionConfig] = None):
        self.config = config or PredictionConfig()

    def predict(
        self,
        unit: UnitProfile,
        measurements: Sequence[Measurement],
        order: SortOrder,
        now: Optional[datetime] = None,
    ) -> List[MaintenancePrediction]:
        """Produce zero to three independent predictions for a unit.

        Predictions are recomputed from scratch on every call and never ranked
        against each other.
        """
        now = ensure_utc(now) if now else utc_now()
        history = list(measurements)
        if order != SortOrder.ASCENDING:
            history = sort_measurements(history, SortOrder.ASCENDING)

        computations = [
            (MaintenanceType.FILTER_CHANGE,
             lambda: self.predict_filter_change(unit, self.average_daily_volume(history), now)),
            (MaintenanceType.UVC_REPLACEMENT,
             lambda: self.predict_uvc_replacement(unit, history, now)),
            (MaintenanceType.GENERAL_SERVICE,
             lambda: self.predict_general_service(unit, now)),
        ]

        predictions: List[MaintenancePrediction] = []
        for maintenance_type, compute in computations:
            try:
                prediction = compute()
            except InvalidInputError as e:
                logger.error(f"Skipping {maintenance_type.value} prediction for {unit.unit_id}: {e.message}")
                continue
            if prediction:
                predictions.append(prediction)

        logger.debug(f"{len(predictions)} maintenance prediction(s) for {unit.unit_id}")
        return predictions

    @staticmethod
    def average_daily_volume(history: Sequence[Measurement]) -> float:
        """Mean over calendar days of the largest volume reported that day.

        Volume readings are cumulative within a day, so the daily maximum is
        that day's usage.
        """
        if not history:
            return 0.0
        frame = pd.DataFrame(
            {
                'timestamp': [m.timestamp for m in history],
                'volume': [m.volume for m in history],
            }
        )
        frame['day'] = pd.to_datetime(frame['timestamp'], utc=True).dt.date
        daily = frame.groupby('day')['volume'].max()
        return float(daily.mean())

    def predict_filter_change(
        self,
        unit: UnitProfile,
        avg_daily_volume: float,
        now: Optional[datetime] = None,
    ) -> Optional[MaintenancePrediction]:
        """Days until the filter reaches its volume threshold at the current usage rate.

        Raises:
            InvalidInputError: if the usage rate is not a finite number
        """
        if not math.isfinite(avg_daily_volume):
            raise InvalidInputError(
                f"Average daily volume for {unit.unit_id} is not finite: {avg_daily_volume}"
            )
        if avg_daily_volume <= 0:
            logger.debug(f"No usage rate for {unit.unit_id}, skipping filter prediction")
            return None
        remaining = self.config.filter_volume_threshold - unit.current_volume
        days = max(0, round_half_up(remaining / avg_daily_volume))
        return self._bounded(
            unit, MaintenanceType.FILTER_CHANGE, days, self.config.filter_confidence, now
        )

    def predict_uvc_replacement(
        self,
        unit: UnitProfile,
        history: Sequence[Measurement],
        now: Optional[datetime] = None,
    ) -> Optional[MaintenancePrediction]:
        """Days until the UVC lamp reaches its hour threshold.

        ``history`` must be chronological. The accumulation rate is the unit's
        current lamp hours spread over the span the history covers, never less
        than one day.
        """
        if not history or unit.current_uvc_hours <= 0:
            return None
        span_days = (history[-1].timestamp - history[0].timestamp).total_seconds() / SECONDS_PER_DAY
        hours_per_day = unit.current_uvc_hours / max(1.0, span_days)
        remaining = self.config.uvc_hours_threshold - unit.current_uvc_hours
        days = max(0, round_half_up(remaining / hours_per_day))
        return self._bounded(
            unit, MaintenanceType.UVC_REPLACEMENT, days, self.config.uvc_confidence, now
        )

    def predict_general_service(
        self,
        unit: UnitProfile,
        now: Optional[datetime] = None,
    ) -> Optional[MaintenancePrediction]:
        """Next service on the fixed calendar cycle anchored at the setup date."""
        if unit.setup_date is None:
            return None
        now = ensure_utc(now) if now else utc_now()
        cycle = self.config.service_cycle_days
        days_since_setup = max(0, (now - unit.setup_date).days)
        days = cycle - (days_since_setup % cycle)
        return self._prediction(
            unit, MaintenanceType.GENERAL_SERVICE, days, self.config.service_confidence, now
        )

    def priority_for(self, days_remaining: int) -> Priority:
        if days_remaining < self.config.high_priority_days:
            return Priority.HIGH
        if days_remaining < self.config.medium_priority_days:
            return Priority.MEDIUM
        return Priority.LOW

    def _bounded(self, unit, maintenance_type, days, confidence, now):
        if not 0 < days < self.config.horizon_days:
            logger.debug(
                f"{maintenance_type.value} for {unit.unit_id} outside horizon ({days} days)"
            )
            return None
        return self._prediction(unit, maintenance_type, days, confidence, now)

    def _prediction(self, unit, maintenance_type, days, confidence, now) -> MaintenancePrediction:
        now = ensure_utc(now) if now else utc_now()
        return MaintenancePrediction(
            unit_id=unit.unit_id,
            unit_name=unit.display_name,
            maintenance_type=maintenance_type,
            predicted_date=now + timedelta(days=days),
            estimated_days_remaining=days,
            confidence=confidence,
            priority=self.priority_for(days),
        )
