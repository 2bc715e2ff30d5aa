"""Observation store contract and an in-memory implementation.

The store is the read-only source of units, symptom reports and water
tests. Every query is anchored on an explicit ``as_of`` snapshot time so a
sweep reads one consistent window for all of its units.
"""
import threading
from datetime import datetime, time, timedelta, timezone
from typing import Iterable, Optional, Protocol, runtime_checkable

from .models import GeoUnit, SymptomReport, WaterTest


def analysis_window(as_of: datetime, window_days: int) -> tuple[datetime, datetime]:
    """Trailing window ending at ``as_of``.

    The window opens at midnight of its first day, so day-dated reports and
    timestamped water tests cover the same calendar days.
    """
    start_day = (as_of - timedelta(days=window_days)).date()
    return datetime.combine(start_day, time.min, tzinfo=as_of.tzinfo), as_of


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


@runtime_checkable
class ObservationStore(Protocol):
    """Read side of the observation collaborator."""

    async def list_units(self) -> list[GeoUnit]:
        ...

    async def recent_symptom_reports(
        self, unit_id: str, window_days: int, as_of: datetime
    ) -> list[SymptomReport]:
        ...

    async def recent_water_tests(
        self, district: str, window_days: int, as_of: datetime
    ) -> list[WaterTest]:
        ...


class InMemoryObservationStore:
    """In-memory observation store for local runs and tests.

    Symptom reports carry only a date, so they are matched by calendar day
    (window start day through ``as_of`` day, inclusive). Water tests are
    matched by timestamp.
    """

    def __init__(
        self,
        units: Iterable[GeoUnit] = (),
        reports: Iterable[SymptomReport] = (),
        tests: Iterable[WaterTest] = (),
    ):
        self._units: dict[str, GeoUnit] = {u.id: u for u in units}
        self._reports: list[SymptomReport] = list(reports)
        self._tests: list[WaterTest] = list(tests)
        self._lock = threading.Lock()

    def add_unit(self, unit: GeoUnit) -> None:
        with self._lock:
            self._units[unit.id] = unit

    def add_report(self, report: SymptomReport) -> None:
        with self._lock:
            self._reports.append(report)

    def add_water_test(self, test: WaterTest) -> None:
        with self._lock:
            self._tests.append(test)

    def get_unit(self, unit_id: str) -> Optional[GeoUnit]:
        with self._lock:
            return self._units.get(unit_id)

    async def list_units(self) -> list[GeoUnit]:
        with self._lock:
            return list(self._units.values())

    async def recent_symptom_reports(
        self, unit_id: str, window_days: int, as_of: datetime
    ) -> list[SymptomReport]:
        start, end = analysis_window(as_of, window_days)
        with self._lock:
            return [
                r for r in self._reports
                if r.unit_id == unit_id and start.date() <= r.report_date <= end.date()
            ]

    async def recent_water_tests(
        self, district: str, window_days: int, as_of: datetime
    ) -> list[WaterTest]:
        start, end = analysis_window(_aware(as_of), window_days)
        with self._lock:
            return [
                t for t in self._tests
                if t.district == district and start <= _aware(t.tested_at) <= end
            ]
