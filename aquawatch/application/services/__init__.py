"""Application services for AquaWatch."""

from .orchestration import BatchReport, OrchestrationService, UnitReport

__all__ = ['BatchReport', 'OrchestrationService', 'UnitReport']
