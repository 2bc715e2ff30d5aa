"""
Alert decision policy.

Maps the latest risk score to an action with no memory across sweeps:
no action, a HIGH priority outbreak warning, or a CRITICAL one. Duplicate
suppression is left to the alert sink.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from .models import (
    Alert,
    AlertPriority,
    AlertType,
    GeoUnit,
    ManualAuthor,
    QualityStatus,
    SystemAuthor,
    WaterTest,
)
from .scoring import RiskAssessment
from .sinks import AlertSink

logger = logging.getLogger(__name__)


class AlertDecision(str, Enum):
    NO_ACTION = "no_action"
    WARN = "warn"
    ESCALATE = "escalate"


OUTBREAK_TITLE = "Potential Disease Outbreak Detected"
WATER_TITLE = "Water Contamination Alert"


def _percent(score: float) -> Decimal:
    """Score as a whole percentage, halves rounded up (0.625 -> 63)."""
    return Decimal(str(score * 100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class AlertDecisionPolicy:
    """Thresholds a risk score into an alerting decision."""

    PRIORITY_BY_DECISION = {
        AlertDecision.WARN: AlertPriority.HIGH,
        AlertDecision.ESCALATE: AlertPriority.CRITICAL,
    }

    def __init__(
        self,
        alert_threshold: float = 0.6,
        critical_threshold: float = 0.8,
    ):
        if not alert_threshold < critical_threshold:
            raise ValueError(
                f"alert_threshold ({alert_threshold}) must be below "
                f"critical_threshold ({critical_threshold})"
            )
        self.alert_threshold = alert_threshold
        self.critical_threshold = critical_threshold

    def decide(self, score: float) -> AlertDecision:
        if score > self.critical_threshold:
            return AlertDecision.ESCALATE
        if score > self.alert_threshold:
            return AlertDecision.WARN
        return AlertDecision.NO_ACTION

    def build_alert(self, unit: GeoUnit, assessment: RiskAssessment) -> Optional[Alert]:
        """Build the outbreak warning for an assessment, or None below threshold."""
        decision = self.decide(assessment.score)
        if decision is AlertDecision.NO_ACTION:
            return None

        message = (
            f"Alert: Potential outbreak in {unit.name} village ({unit.district} district). "
            f"Risk Score: {_percent(assessment.score)}%. "
            f"Most common symptom: {assessment.most_common_symptom}. "
            "Immediate investigation recommended."
        )
        return Alert(
            alert_type=AlertType.OUTBREAK_WARNING,
            priority=self.PRIORITY_BY_DECISION[decision],
            unit_id=unit.id,
            district=unit.district,
            title=OUTBREAK_TITLE,
            message=message,
            created_by=SystemAuthor(),
        )

    async def apply(
        self,
        unit: GeoUnit,
        assessment: RiskAssessment,
        sink: AlertSink,
    ) -> tuple[AlertDecision, Optional[str]]:
        """
        Decide on an assessment and hand any resulting alert to the sink.

        Returns:
            Tuple of (decision, alert id or None)
        """
        decision = self.decide(assessment.score)
        alert = self.build_alert(unit, assessment)
        if alert is None:
            return decision, None

        alert_id = await sink.create_alert(alert)
        logger.info(
            f"[ALERT] {alert.priority.value} outbreak warning for {unit.id} "
            f"({unit.name}): score={assessment.score:.2f}, id={alert_id}"
        )
        return decision, alert_id

    async def report_water_test(
        self,
        unit: GeoUnit,
        test: WaterTest,
        sink: AlertSink,
    ) -> Optional[str]:
        """Raise the immediate contamination alert for a single unsafe test."""
        alert = water_contamination_alert(unit, test)
        if alert is None:
            return None

        alert_id = await sink.create_alert(alert)
        logger.info(
            f"[ALERT] {alert.priority.value} water contamination for {unit.id}: "
            f"source={test.source_name or 'unnamed'}, id={alert_id}"
        )
        return alert_id


def water_contamination_alert(unit: GeoUnit, test: WaterTest) -> Optional[Alert]:
    """
    Build the alert an ingestion path raises for one water test.

    Returns:
        CRITICAL alert for CONTAMINATED, HIGH for HIGH_RISK, None otherwise
    """
    if not test.quality_status.is_unsafe:
        return None

    contaminated = test.quality_status is QualityStatus.CONTAMINATED
    finding = "CONTAMINATED" if contaminated else "HIGH RISK"
    message = (
        f"Warning: Water source '{test.source_name or 'unnamed'}' in {unit.name} village "
        f"has been tested and found to be {finding}. "
        f"Quality Status: {test.quality_status.value}. "
        "Please avoid using this water source until further notice."
    )
    author = ManualAuthor(user_id=test.tester_id) if test.tester_id else SystemAuthor()

    return Alert(
        alert_type=AlertType.WATER_CONTAMINATION,
        priority=AlertPriority.CRITICAL if contaminated else AlertPriority.HIGH,
        unit_id=unit.id,
        district=unit.district,
        title=WATER_TITLE,
        message=message,
        created_by=author,
    )
