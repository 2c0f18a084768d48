"""
Orchestration service for AquaWatch

Fetches each unit's history, runs anomaly detection and maintenance
prediction, and hands the results to the alert sink and predictions store.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from aquawatch.application.use_cases.anomaly_detection import AnomalyDetectionUseCase
from aquawatch.application.use_cases.maintenance_prediction import MaintenancePredictionUseCase
from aquawatch.application.use_cases.risk_assessment import assess_risk
from aquawatch.config.settings import OrchestrationSettings
from aquawatch.core.domain.models import (
    AlertRecord,
    AnomalyFinding,
    MaintenancePrediction,
    RiskAssessment,
    Severity,
    SortOrder,
    UnitProfile,
    sort_measurements,
    utc_now,
)
from aquawatch.core.exceptions import AquaWatchError, MeasurementFetchError
from aquawatch.infrastructure.storage import (
    AlertSink,
    MeasurementStore,
    PredictionStore,
    UnitRegistry,
)
from aquawatch.utils.logger import log_performance

logger = logging.getLogger(__name__)

ALERT_SEVERITY = Severity.HIGH


@dataclass
class UnitReport:
    """Outcome of processing one unit."""
    unit_id: str
    unit_name: str = ""
    measurement_count: int = 0
    findings: List[AnomalyFinding] = field(default_factory=list)
    predictions: List[MaintenancePrediction] = field(default_factory=list)
    risk: RiskAssessment = field(default_factory=RiskAssessment)
    alerts_created: int = 0
    alerts_failed: int = 0
    predictions_saved: int = 0
    predictions_failed: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Outcome of one batch run across units."""
    strategy: str
    units: List[UnitReport] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    upcoming_window_days: int = 30

    @property
    def failed_units(self) -> List[str]:
        return [u.unit_id for u in self.units if not u.ok]

    def stats(self) -> Dict[str, Any]:
        processed = [u for u in self.units if u.ok]
        findings = [f for u in processed for f in u.findings]
        predictions = [p for u in processed for p in u.predictions]
        return {
            'monitored_units': len(processed),
            'failed_units': len(self.units) - len(processed),
            'total_anomalies': len(findings),
            'high_severity_anomalies': sum(1 for f in findings if f.severity == Severity.HIGH),
            'predicted_maintenance_tasks': len(predictions),
            'upcoming_maintenance_tasks': sum(
                1 for p in predictions if p.estimated_days_remaining <= self.upcoming_window_days
            ),
            'alerts_created': sum(u.alerts_created for u in processed),
            'write_failures': sum(u.alerts_failed + u.predictions_failed for u in processed),
        }


class OrchestrationService:
    """Service tying the measurement store, detector, predictor and output stores together"""

    def __init__(
        self,
        measurement_store: MeasurementStore,
        unit_registry: UnitRegistry,
        alert_sink: AlertSink,
        prediction_store: PredictionStore,
        detector: AnomalyDetectionUseCase,
        predictor: MaintenancePredictionUseCase,
        settings: Optional[OrchestrationSettings] = None,
    ):
        self.measurements = measurement_store
        self.units = unit_registry
        self.alerts = alert_sink
        self.predictions = prediction_store
        self.detector = detector
        self.predictor = predictor
        self.settings = settings or OrchestrationSettings()

    async def process_unit(self, unit_id: str, now: Optional[datetime] = None) -> UnitReport:
        """Fetch, analyse and persist results for a single unit.

        Raises:
            MeasurementFetchError: if the unit's history cannot be read
            UnitNotFoundError: if the registry does not know the unit
        """
        try:
            fetched = await self.measurements.fetch_measurements(
                unit_id, order=SortOrder.DESCENDING, limit=self.settings.history_limit
            )
        except MeasurementFetchError:
            raise
        except Exception as e:
            raise MeasurementFetchError(f"Failed to fetch measurements for {unit_id}: {e}", cause=e)

        history = sort_measurements(fetched, SortOrder.ASCENDING)
        unit = await self.units.get_unit(unit_id)

        findings = self.detector.detect_anomalies(unit, history, SortOrder.ASCENDING)
        predictions = self.predictor.predict(unit, history, SortOrder.ASCENDING, now=now)

        report = UnitReport(
            unit_id=unit_id,
            unit_name=unit.display_name,
            measurement_count=len(history),
            findings=findings,
            predictions=predictions,
            risk=assess_risk(findings),
        )

        writes = [
            self._raise_alert(report, unit, finding)
            for finding in findings if finding.severity == ALERT_SEVERITY
        ]
        writes += [self._save_prediction(report, prediction) for prediction in predictions]
        await asyncio.gather(*writes)

        logger.info(
            f"Processed {unit_id}: {len(history)} measurements, {len(findings)} findings, "
            f"{report.alerts_created} alerts, {report.predictions_saved}/{len(predictions)} predictions saved"
        )
        return report

    async def _raise_alert(self, report: UnitReport, unit: UnitProfile, finding: AnomalyFinding) -> None:
        alert = AlertRecord(
            unit_id=unit.unit_id,
            message=f"[AI Detection] {unit.display_name}: {finding.description}",
            severity=finding.severity,
            created_at=finding.detected_at,
        )
        try:
            await self.alerts.create_alert(alert)
            report.alerts_created += 1
        except Exception as e:
            report.alerts_failed += 1
            logger.warning(f"Failed to create alert for {unit.unit_id} (finding {finding.id}): {e}")

    async def _save_prediction(self, report: UnitReport, prediction: MaintenancePrediction) -> None:
        try:
            await self.predictions.save_prediction(prediction)
            report.predictions_saved += 1
        except Exception as e:
            report.predictions_failed += 1
            logger.warning(
                f"Failed to save {prediction.maintenance_type.value} prediction "
                f"for {prediction.unit_id}: {e}"
            )

    @log_performance
    async def run_batch(
        self,
        unit_ids: Iterable[str],
        max_units: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        """Process several units concurrently; one unit failing never stops the others."""
        ids = list(dict.fromkeys(unit_ids))
        cap = max_units if max_units is not None else self.settings.max_units
        if cap is not None:
            ids = ids[:cap]

        report = BatchReport(
            strategy=self.detector.strategy_name,
            upcoming_window_days=self.settings.upcoming_window_days,
        )
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def run_one(unit_id: str) -> UnitReport:
            async with semaphore:
                try:
                    return await self.process_unit(unit_id, now=now)
                except AquaWatchError as e:
                    logger.error(f"Processing failed for {unit_id}: {e.message}")
                    return UnitReport(unit_id=unit_id, error=e.message)
                except Exception as e:
                    logger.exception(f"Unexpected error processing {unit_id}")
                    return UnitReport(unit_id=unit_id, error=str(e))

        report.units = list(await asyncio.gather(*(run_one(u) for u in ids)))
        report.finished_at = utc_now()

        stats = report.stats()
        logger.info(
            f"Batch complete ({report.strategy}): {stats['monitored_units']} units, "
            f"{stats['total_anomalies']} anomalies, {stats['predicted_maintenance_tasks']} predictions, "
            f"{stats['failed_units']} failed"
        )
        return report
