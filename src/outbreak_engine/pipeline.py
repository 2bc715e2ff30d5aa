"""
Per-unit outbreak analysis pipeline.

Fetches one unit's observations for the analysis window, scores them and
hands any resulting alert to the sink. Each call works only on its own
local state, so units can be analyzed concurrently.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .models import GeoUnit
from .policy import AlertDecision, AlertDecisionPolicy
from .scoring import RiskAssessment, RiskScorer
from .sinks import AlertSink
from .store import ObservationStore, analysis_window

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """Result of evaluating one unit within a sweep."""

    NO_ACTION = "no_action"
    ALERTED = "alerted"
    FAILED = "failed"


@dataclass
class UnitOutcome:
    """What happened to one unit during a sweep."""

    unit_id: str
    status: OutcomeStatus
    score: Optional[float] = None
    decision: Optional[AlertDecision] = None
    alert_id: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "unit_id": self.unit_id,
            "status": self.status.value,
            "score": self.score,
            "decision": self.decision.value if self.decision else None,
            "alert_id": self.alert_id,
            "error": self.error,
            "duration_seconds": self.duration_seconds,
        }


class OutbreakAnalyzer:
    """Runs the fetch, score and decide steps for a single unit."""

    def __init__(
        self,
        store: ObservationStore,
        sink: AlertSink,
        scorer: Optional[RiskScorer] = None,
        policy: Optional[AlertDecisionPolicy] = None,
        window_days: int = 7,
    ):
        self.store = store
        self.sink = sink
        self.scorer = scorer or RiskScorer()
        self.policy = policy or AlertDecisionPolicy()
        self.window_days = window_days

    async def analyze_unit(self, unit: GeoUnit, as_of: datetime) -> RiskAssessment:
        """Fetch a unit's observations in the window ending at ``as_of`` and score them."""
        window_start, window_end = analysis_window(as_of, self.window_days)

        reports = await self.store.recent_symptom_reports(unit.id, self.window_days, as_of)

        # No district means no water signal to correlate with
        if unit.district and unit.district.strip():
            tests = await self.store.recent_water_tests(unit.district, self.window_days, as_of)
        else:
            tests = []

        return self.scorer.assess(unit, reports, tests, window_start, window_end)

    async def evaluate_unit(self, unit: GeoUnit, as_of: datetime) -> UnitOutcome:
        """
        Analyze a unit and emit an outbreak warning if the policy calls for one.

        Store and sink errors propagate; the caller decides how to isolate them.
        """
        start = time.perf_counter()
        assessment = await self.analyze_unit(unit, as_of)
        decision, alert_id = await self.policy.apply(unit, assessment, self.sink)

        return UnitOutcome(
            unit_id=unit.id,
            status=OutcomeStatus.ALERTED if alert_id else OutcomeStatus.NO_ACTION,
            score=assessment.score,
            decision=decision,
            alert_id=alert_id,
            duration_seconds=time.perf_counter() - start,
        )

    async def find_unit(self, unit_id: str) -> Optional[GeoUnit]:
        for unit in await self.store.list_units():
            if unit.id == unit_id:
                return unit
        return None

    async def analyze_unit_id(
        self, unit_id: str, as_of: Optional[datetime] = None
    ) -> Optional[UnitOutcome]:
        """Manually evaluate one unit by id. Unknown units yield None."""
        unit = await self.find_unit(unit_id)
        if unit is None:
            logger.warning(f"[RISK] Unit not found: {unit_id}")
            return None
        return await self.evaluate_unit(unit, as_of or datetime.now(timezone.utc))

    async def outbreak_summary(
        self, unit_id: str, as_of: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Current risk picture for a unit, without emitting any alert."""
        unit = await self.find_unit(unit_id)
        if unit is None:
            return {"error": "Unit not found"}

        assessment = await self.analyze_unit(unit, as_of or datetime.now(timezone.utc))
        return {
            "unitName": unit.name,
            "district": unit.district,
            "totalReports": assessment.total_reports,
            "outbreakRisk": assessment.score,
            "waterRisk": assessment.water_risk,
            "topSymptoms": dict(
                sorted(assessment.symptom_frequency.items(), key=lambda kv: (-kv[1], kv[0]))
            ),
            "mostCommonSymptom": assessment.most_common_symptom,
            "decision": self.policy.decide(assessment.score).value,
        }
