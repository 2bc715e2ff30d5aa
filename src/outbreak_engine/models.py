"""Observation and alert records exchanged with the external collaborators."""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SeverityLevel(str, Enum):
    """Severity tag on a field symptom report."""

    MILD = "MILD"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"


class QualityStatus(str, Enum):
    """Classification of a water-quality test."""

    SAFE = "SAFE"
    MODERATE_RISK = "MODERATE_RISK"
    HIGH_RISK = "HIGH_RISK"
    CONTAMINATED = "CONTAMINATED"

    @property
    def is_unsafe(self) -> bool:
        return self in (QualityStatus.HIGH_RISK, QualityStatus.CONTAMINATED)


class AlertType(str, Enum):
    OUTBREAK_WARNING = "OUTBREAK_WARNING"
    WATER_CONTAMINATION = "WATER_CONTAMINATION"
    HEALTH_ADVISORY = "HEALTH_ADVISORY"
    SYSTEM_NOTIFICATION = "SYSTEM_NOTIFICATION"


class AlertPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return list(AlertPriority).index(self)


class GeoUnit(BaseModel):
    """A village-level unit that observations and alerts are scoped to."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    district: str = ""
    state: Optional[str] = None


class SymptomReport(BaseModel):
    """A single field report of symptoms observed in a unit."""

    model_config = ConfigDict(frozen=True)

    unit_id: str
    symptoms: Optional[list[str]] = None
    severity: SeverityLevel = SeverityLevel.MILD
    report_date: date
    suspected_disease: Optional[str] = None


class WaterTest(BaseModel):
    """A water-quality test result, attached to a district and optionally a unit."""

    model_config = ConfigDict(frozen=True)

    district: str
    quality_status: QualityStatus
    tested_at: datetime
    unit_id: Optional[str] = None
    source_name: Optional[str] = None
    tester_id: Optional[str] = None


class SystemAuthor(BaseModel):
    kind: Literal["system"] = "system"


class ManualAuthor(BaseModel):
    kind: Literal["manual"] = "manual"
    user_id: str


AlertAuthor = Annotated[Union[SystemAuthor, ManualAuthor], Field(discriminator="kind")]


class Alert(BaseModel):
    """Alert record handed to the alert sink.

    The engine creates alerts but never mutates them afterwards; read and
    deactivate transitions belong to downstream consumers.
    """

    alert_type: AlertType
    priority: AlertPriority
    unit_id: str
    title: str
    message: str
    district: str = ""
    is_active: bool = True
    is_read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_by: AlertAuthor = Field(default_factory=SystemAuthor)
    id: Optional[str] = None

    @property
    def dedupe_key(self) -> tuple[str, AlertType]:
        return (self.unit_id, self.alert_type)
