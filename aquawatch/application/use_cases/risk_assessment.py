"""
Risk assessment for AquaWatch: a weighted anomaly score per unit
"""

from typing import Dict, Iterable

from aquawatch.core.domain.models import AnomalyFinding, RiskAssessment, Severity

SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 3,
    Severity.HIGH: 5,
}

HIGH_RISK_SCORE = 70
MEDIUM_RISK_SCORE = 30


def assess_risk(findings: Iterable[AnomalyFinding]) -> RiskAssessment:
    """Score 0-100 from severity weights, bucketed into a risk level."""
    total = sum(SEVERITY_WEIGHTS.get(f.severity, 0) for f in findings)
    score = min(100, total)
    if score >= HIGH_RISK_SCORE:
        level = Severity.HIGH
    elif score >= MEDIUM_RISK_SCORE:
        level = Severity.MEDIUM
    else:
        level = Severity.LOW
    return RiskAssessment(score=score, level=level)
