"""
Anomaly detection use case for AquaWatch
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from aquawatch.core.domain.models import (
    AnomalyFinding,
    DetectionConfig,
    Measurement,
    MetricType,
    RawDetectionConfig,
    Severity,
    SortOrder,
    UnitProfile,
    sort_measurements,
    utc_now,
)
from aquawatch.core.exceptions import ConfigurationError, InvalidInputError
from aquawatch.core.services.statistics import (
    confidence_level,
    exponential_smoothing,
    moving_average,
    standard_deviation,
)

logger = logging.getLogger(__name__)


class AnomalyStrategy(ABC):
    """A named, stateless way of turning a unit's history into findings."""

    name: str = "base"

    @property
    @abstractmethod
    def minimum_measurements(self) -> int:
        """Fewer measurements than this yields no findings."""

    @abstractmethod
    def _scan(
        self,
        metric: MetricType,
        points: List[Measurement],
        values: List[float],
        unit: UnitProfile,
    ) -> List[AnomalyFinding]:
        """Scan one metric series (chronological) for anomalies."""

    def detect(
        self,
        measurements: Sequence[Measurement],
        order: SortOrder,
        unit: UnitProfile,
    ) -> List[AnomalyFinding]:
        """Detect anomalies in a unit's measurements.

        Args:
            measurements: the unit's recent history
            order: how ``measurements`` is currently sorted
            unit: profile of the unit the history belongs to

        Returns:
            Findings for every metric; an empty list also means "not enough data".
        """
        if len(measurements) < self.minimum_measurements:
            logger.debug(
                f"Insufficient data for {unit.unit_id}: {len(measurements)} measurements, "
                f"{self.minimum_measurements} required by '{self.name}'"
            )
            return []

        ordered = list(measurements)
        if order != SortOrder.ASCENDING:
            ordered = sort_measurements(ordered, SortOrder.ASCENDING)

        findings: List[AnomalyFinding] = []
        for metric, points, values in self._series(ordered):
            try:
                findings.extend(self._scan(metric, points, values, unit))
            except InvalidInputError as e:
                logger.error(f"Skipping {metric.value} detection for {unit.unit_id}: {e.message}")
        return findings

    @staticmethod
    def _series(
        ordered: List[Measurement],
    ) -> Iterator[Tuple[MetricType, List[Measurement], List[float]]]:
        yield MetricType.FLOW, ordered, [m.volume for m in ordered]
        with_temp = [m for m in ordered if m.temperature is not None]
        if with_temp:
            yield MetricType.TEMPERATURE, with_temp, [m.temperature for m in with_temp]

    def _finding(
        self,
        unit: UnitProfile,
        metric: MetricType,
        severity: Severity,
        point: Measurement,
        observed: float,
        expected: float,
        deviation_percent: float,
        confidence: float,
        description: str,
    ) -> AnomalyFinding:
        return AnomalyFinding(
            unit_id=unit.unit_id,
            unit_name=unit.display_name,
            detected_at=utc_now(),
            metric=metric,
            severity=severity,
            observed_value=float(observed),
            expected_value=float(expected),
            deviation_percent=float(deviation_percent),
            confidence=float(confidence),
            strategy=self.name,
            measurement_timestamp=point.timestamp,
            description=description,
        )


class SmoothedBaselineStrategy(AnomalyStrategy):
    """Compare exponentially smoothed readings against their trailing moving average."""

    name = "smoothed"

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()

    @property
    def minimum_measurements(self) -> int:
        return self.config.moving_average_window

    def _scan(self, metric, points, values, unit):
        cfg = self.config
        window = cfg.moving_average_window
        if len(values) < window:
            logger.debug(f"Insufficient {metric.value} readings for {unit.unit_id}: {len(values)} < {window}")
            return []

        smoothed = exponential_smoothing(values, cfg.smoothing_factor)
        baseline = moving_average(smoothed, window)
        spread = standard_deviation(smoothed)
        if spread == 0.0:
            return []

        limit = cfg.standard_deviation_threshold * spread
        floor = (
            cfg.flow_materiality_percent if metric == MetricType.FLOW
            else cfg.temperature_materiality_percent
        )
        confidence = confidence_level(10.0 / window, window)

        findings: List[AnomalyFinding] = []
        for i, (smooth, expected) in enumerate(zip(smoothed, baseline)):
            if abs(smooth - expected) <= limit:
                continue
            if expected == 0.0:
                logger.debug(f"Zero baseline at index {i} for {unit.unit_id}, skipping candidate")
                continue
            observed = values[i]
            deviation_percent = abs(observed - expected) / abs(expected) * 100.0
            if deviation_percent <= floor:
                continue

            severity = self.classify(metric, deviation_percent, observed, expected, unit)
            label = "Flow" if metric == MetricType.FLOW else "Temperature"
            findings.append(self._finding(
                unit, metric, severity, points[i], observed, expected, deviation_percent, confidence,
                f"{label} reading {observed:.2f} deviates {deviation_percent:.1f}% from expected {expected:.2f}",
            ))
        return findings

    def classify(
        self,
        metric: MetricType,
        deviation_percent: float,
        observed: float,
        expected: float,
        unit: UnitProfile,
    ) -> Severity:
        """Severity from deviation breakpoints plus metric-specific adjustment."""
        cfg = self.config
        if metric == MetricType.FLOW:
            severity = _bucket(deviation_percent, cfg.flow_high_percent, cfg.flow_medium_percent)
            if unit.is_uvc_class and deviation_percent > cfg.uvc_flow_escalation_percent:
                severity = Severity.HIGH
            return severity

        severity = _bucket(deviation_percent, cfg.temperature_high_percent, cfg.temperature_medium_percent)
        # under-temperature is less dangerous than over-temperature
        if observed < expected:
            severity = severity.downgrade()
        return severity


class RawThresholdStrategy(AnomalyStrategy):
    """Flag raw readings by z-score, local percentage change and a fixed temperature band."""

    name = "raw"

    def __init__(self, config: Optional[RawDetectionConfig] = None):
        self.config = config or RawDetectionConfig()

    @property
    def minimum_measurements(self) -> int:
        return self.config.min_measurements

    def _scan(self, metric, points, values, unit):
        if metric == MetricType.TEMPERATURE:
            return self._scan_temperature(points, values, unit)
        return self._scan_flow(points, values, unit)

    def _scan_flow(self, points, values, unit) -> List[AnomalyFinding]:
        cfg = self.config
        arr = np.asarray(values, dtype=float)
        mean = float(arr.mean())
        spread = standard_deviation(values)
        z_scores = np.abs(stats.zscore(arr)) if spread > 0 else np.zeros(arr.size)

        findings: List[AnomalyFinding] = []
        for i in range(cfg.min_history, arr.size):
            value = float(arr[i])
            if z_scores[i] > cfg.z_score_threshold:
                deviation = abs(value - mean) / abs(mean) * 100.0 if mean else 0.0
                findings.append(self._finding(
                    unit, MetricType.FLOW, Severity.HIGH, points[i], value, mean, deviation,
                    confidence_level(10.0 / arr.size, arr.size),
                    f"Unusual water volume detected ({value:.2f}) significantly outside normal range",
                ))
                continue

            recent = arr[max(0, i - cfg.recent_window):i]
            if recent.size < cfg.min_history:
                continue
            local_mean = float(recent.mean())
            if local_mean == 0.0:
                continue
            deviation = abs(value - local_mean) / abs(local_mean) * 100.0
            if deviation > cfg.percent_threshold:
                findings.append(self._finding(
                    unit, MetricType.FLOW, Severity.MEDIUM, points[i], value, local_mean, deviation,
                    confidence_level(10.0 / recent.size, int(recent.size)),
                    f"Sudden change in water flow detected ({value:.2f})",
                ))
        return findings

    def _scan_temperature(self, points, values, unit) -> List[AnomalyFinding]:
        cfg = self.config
        findings: List[AnomalyFinding] = []
        for point, temperature in zip(points, values):
            if cfg.temperature_min <= temperature <= cfg.temperature_max:
                continue
            bound = cfg.temperature_min if temperature < cfg.temperature_min else cfg.temperature_max
            deviation = abs(temperature - bound) / abs(bound) * 100.0 if bound else 0.0
            severity = Severity.HIGH if temperature > cfg.temperature_high_limit else Severity.MEDIUM
            findings.append(self._finding(
                unit, MetricType.TEMPERATURE, severity, point, temperature, bound, deviation,
                confidence_level(0.0, len(values)),
                f"Abnormal temperature detected: {temperature:.1f}°C",
            ))
        return findings


def _bucket(deviation_percent: float, high: float, medium: float) -> Severity:
    if deviation_percent > high:
        return Severity.HIGH
    if deviation_percent > medium:
        return Severity.MEDIUM
    return Severity.LOW


STRATEGIES = {
    SmoothedBaselineStrategy.name: SmoothedBaselineStrategy,
    RawThresholdStrategy.name: RawThresholdStrategy,
}


def build_strategy(
    name: str,
    detection_config: Optional[DetectionConfig] = None,
    raw_config: Optional[RawDetectionConfig] = None,
) -> AnomalyStrategy:
    """Resolve a detection strategy by name."""
    key = (name or "").strip().lower()
    if key == SmoothedBaselineStrategy.name:
        return SmoothedBaselineStrategy(detection_config)
    if key == RawThresholdStrategy.name:
        return RawThresholdStrategy(raw_config)
    raise ConfigurationError(
        f"Unknown anomaly strategy '{name}'",
        details={"available": sorted(STRATEGIES)},
    )


class AnomalyDetectionUseCase:
    """Use case for anomaly detection with an explicitly chosen strategy"""

    def __init__(self, strategy: AnomalyStrategy):
        self.strategy = strategy

    @property
    def strategy_name(self) -> str:
        return self.strategy.name

    def detect_anomalies(
        self,
        unit: UnitProfile,
        measurements: Sequence[Measurement],
        order: SortOrder,
    ) -> List[AnomalyFinding]:
        """Run the configured strategy over one unit's history."""
        findings = self.strategy.detect(measurements, order, unit)
        if findings:
            logger.info(
                f"{len(findings)} anomaly finding(s) for {unit.unit_id} using '{self.strategy_name}'"
            )
        return findings
