"""
Pytest fixtures for outbreak engine tests.
"""
import sys
import pytest
from pathlib import Path
from datetime import date, datetime, timedelta, timezone

# Ensure src/ is on sys.path so tests can import outbreak_engine without installing it.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from outbreak_engine.config import EngineSettings
from outbreak_engine.models import (
    GeoUnit,
    QualityStatus,
    SymptomReport,
    WaterTest,
)
from outbreak_engine.sinks import InMemoryAlertSink
from outbreak_engine.store import InMemoryObservationStore


# Fixed snapshot time used across tests
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Record factories
# ============================================================================

def make_unit(unit_id: str = "v1", name: str = "Rampur", district: str = "Kamrup") -> GeoUnit:
    return GeoUnit(id=unit_id, name=name, district=district, state="Assam")


def make_report(unit_id: str = "v1", symptoms=("fever",), days_ago: int = 1) -> SymptomReport:
    return SymptomReport(
        unit_id=unit_id,
        symptoms=list(symptoms) if symptoms is not None else None,
        report_date=NOW.date() - timedelta(days=days_ago),
    )


def make_water_test(
    district: str = "Kamrup",
    status: QualityStatus = QualityStatus.SAFE,
    hours_ago: int = 24,
    **kwargs,
) -> WaterTest:
    return WaterTest(
        district=district,
        quality_status=status,
        tested_at=NOW - timedelta(hours=hours_ago),
        **kwargs,
    )


def outbreak_reports(unit_id: str = "v1") -> list:
    """5 fever + 2 cough reports: the canonical WARN scenario."""
    return (
        [make_report(unit_id, ["Fever"]) for _ in range(5)]
        + [make_report(unit_id, ["cough "]) for _ in range(2)]
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Engine settings with defaults and a short history."""
    return EngineSettings(max_concurrency=0, history_size=5)


@pytest.fixture
def clock():
    """Frozen clock returning NOW."""
    return lambda: NOW


@pytest.fixture
def store():
    return InMemoryObservationStore()


@pytest.fixture
def sink():
    return InMemoryAlertSink()
