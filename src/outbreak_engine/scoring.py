"""
Composite outbreak risk scoring.

Combines symptom clustering (the strongest single symptom relative to the
outbreak threshold) with the district's water contamination ratio into a
single score in [0, 1].
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .analyzers import most_common_symptom, symptom_frequency, water_risk
from .models import GeoUnit, SymptomReport, WaterTest

logger = logging.getLogger(__name__)


@dataclass
class RiskAssessment:
    """Per-unit result of one scoring pass. Never persisted."""

    unit_id: str
    window_start: datetime
    window_end: datetime
    symptom_frequency: Dict[str, int]
    water_risk: float
    total_reports: int
    score: float
    most_common_symptom: str
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "unit_id": self.unit_id,
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "symptom_frequency": dict(self.symptom_frequency),
            "water_risk": self.water_risk,
            "total_reports": self.total_reports,
            "score": self.score,
            "most_common_symptom": self.most_common_symptom,
            "computed_at": self.computed_at.isoformat(),
        }


class RiskScorer:
    """
    Scores outbreak risk for one unit.

    Configuration:
        outbreak_threshold: Same-symptom report count treated as a full
            clustering signal
    """

    SYMPTOM_WEIGHT = 0.7
    WATER_WEIGHT = 0.3
    # More than this many distinct complaints suggests a broad outbreak
    DIVERSITY_MIN_LABELS = 3
    DIVERSITY_BOOST = 1.2

    def __init__(self, outbreak_threshold: int = 5):
        if outbreak_threshold < 1:
            raise ValueError(f"outbreak_threshold must be >= 1, got {outbreak_threshold}")
        self.outbreak_threshold = outbreak_threshold

    def score(
        self,
        symptom_freq: Dict[str, int],
        water_risk: float,
        total_reports: int,
    ) -> float:
        """
        Compute the composite risk score.

        Args:
            symptom_freq: Normalized symptom label -> report count
            water_risk: Contamination ratio of the district's water tests
            total_reports: Number of reports in the analysis window

        Returns:
            Score clamped to [0.0, 1.0]; 0.0 when there is no symptom data
        """
        if total_reports == 0 or not symptom_freq:
            return 0.0

        max_count = max(symptom_freq.values())
        symptom_risk = min(1.0, max_count / self.outbreak_threshold)

        combined = self.SYMPTOM_WEIGHT * symptom_risk + self.WATER_WEIGHT * water_risk

        if len(symptom_freq) > self.DIVERSITY_MIN_LABELS:
            combined *= self.DIVERSITY_BOOST

        return max(0.0, min(1.0, combined))

    def assess(
        self,
        unit: GeoUnit,
        reports: Iterable[SymptomReport],
        tests: Iterable[WaterTest],
        window_start: datetime,
        window_end: datetime,
        computed_at: Optional[datetime] = None,
    ) -> RiskAssessment:
        """Build a RiskAssessment for a unit from its raw observations."""
        reports: List[SymptomReport] = list(reports)
        frequency = symptom_frequency(reports)
        ratio = water_risk(tests)
        score = self.score(frequency, ratio, len(reports))

        assessment = RiskAssessment(
            unit_id=unit.id,
            window_start=window_start,
            window_end=window_end,
            symptom_frequency=frequency,
            water_risk=ratio,
            total_reports=len(reports),
            score=score,
            most_common_symptom=most_common_symptom(frequency),
            computed_at=computed_at or datetime.now(timezone.utc),
        )

        logger.debug(
            f"[RISK] {unit.id}: score={score:.3f}, water={ratio:.2f}, "
            f"reports={len(reports)}, symptoms={frequency}"
        )
        return assessment
