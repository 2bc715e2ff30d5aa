"""Outbreak Risk Detection & Alerting Engine.

Aggregates recent symptom reports and water-quality tests per village,
scores outbreak risk, and raises outbreak warnings on a recurring sweep.
"""

from .config import EngineSettings, get_settings, load_settings
from .exceptions import (
    CollaboratorError,
    ConfigurationError,
    OutbreakEngineError,
    SchedulerShutdownError,
)
from .models import (
    Alert,
    AlertPriority,
    AlertType,
    GeoUnit,
    ManualAuthor,
    QualityStatus,
    SeverityLevel,
    SymptomReport,
    SystemAuthor,
    WaterTest,
)
from .pipeline import OutbreakAnalyzer, OutcomeStatus, UnitOutcome
from .policy import AlertDecision, AlertDecisionPolicy, water_contamination_alert
from .scheduler import SweepResult, SweepScheduler, SweepStatus
from .scoring import RiskAssessment, RiskScorer
from .sinks import AlertSink, InMemoryAlertSink
from .store import InMemoryObservationStore, ObservationStore

__all__ = [
    "Alert",
    "AlertDecision",
    "AlertDecisionPolicy",
    "AlertPriority",
    "AlertSink",
    "AlertType",
    "CollaboratorError",
    "ConfigurationError",
    "EngineSettings",
    "GeoUnit",
    "InMemoryAlertSink",
    "InMemoryObservationStore",
    "ManualAuthor",
    "ObservationStore",
    "OutbreakAnalyzer",
    "OutbreakEngineError",
    "OutcomeStatus",
    "QualityStatus",
    "RiskAssessment",
    "RiskScorer",
    "SchedulerShutdownError",
    "SeverityLevel",
    "SweepResult",
    "SweepScheduler",
    "SweepStatus",
    "SymptomReport",
    "SystemAuthor",
    "UnitOutcome",
    "WaterTest",
    "get_settings",
    "load_settings",
    "water_contamination_alert",
]
