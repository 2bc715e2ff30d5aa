"""
Outbreak Sweep Scheduler.

Runs the per-unit outbreak pipeline across every known unit, either on
demand or on a recurring background cadence. Failures are isolated per
unit: one unit's store, scoring or sink error is recorded and the sweep
moves on.
"""

import os
import uuid
import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Dict, List, Any

from .config import EngineSettings, get_settings
from .exceptions import SchedulerShutdownError
from .models import GeoUnit
from .pipeline import OutbreakAnalyzer, OutcomeStatus, UnitOutcome
from .policy import AlertDecisionPolicy
from .scoring import RiskScorer
from .sinks import AlertSink
from .store import ObservationStore

logger = logging.getLogger(__name__)


class SweepStatus(str, Enum):
    """Status of a sweep."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SweepResult:
    """Outcome of one full pass over all units."""

    id: str
    started_at: datetime
    as_of: datetime
    status: SweepStatus = SweepStatus.RUNNING
    outcomes: List[UnitOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def alerts(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.ALERTED]

    @property
    def failures(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    def outcome_for(self, unit_id: str) -> Optional[UnitOutcome]:
        for outcome in self.outcomes:
            if outcome.unit_id == unit_id:
                return outcome
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "started_at": self.started_at.isoformat(),
            "as_of": self.as_of.isoformat(),
            "status": self.status.value,
            "units_analyzed": len(self.outcomes),
            "alerts": len(self.alerts),
            "failures": len(self.failures),
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SweepScheduler:
    """
    Manages scheduled and on-demand outbreak sweeps.

    Features:
    - Synchronous trigger for tests and manual runs (run_sweep_once)
    - Background timer for the recurring cadence
    - Bounded concurrency across units within a sweep
    - In-memory history of recent sweep results
    - Graceful shutdown that lets an in-flight sweep finish up to a deadline
    """

    def __init__(
        self,
        store: ObservationStore,
        sink: AlertSink,
        settings: Optional[EngineSettings] = None,
        analyzer: Optional[OutbreakAnalyzer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the sweep scheduler.

        Args:
            store: Observation store to read units and observations from
            sink: Alert sink that receives outbreak warnings
            settings: Engine settings (default from environment)
            analyzer: Pre-built per-unit pipeline (built from settings if omitted)
            clock: Source of the current time (default: UTC wall clock)
        """
        self.settings = settings or get_settings()
        self.analyzer = analyzer or OutbreakAnalyzer(
            store,
            sink,
            scorer=RiskScorer(self.settings.outbreak_threshold),
            policy=AlertDecisionPolicy(
                self.settings.alert_score_threshold,
                self.settings.critical_score_threshold,
            ),
            window_days=self.settings.analysis_window_days,
        )
        self.max_concurrency = self.settings.max_concurrency
        self.history_size = self.settings.history_size
        self._clock = clock or _utcnow

        # Sweep history (most recent first)
        self._history: List[SweepResult] = []
        self._lock = threading.Lock()

        # Held for the duration of every synchronous sweep
        self._sweep_lock = threading.Lock()
        self._last_as_of: Optional[datetime] = None
        self._current: Optional[SweepResult] = None

        # Background scheduler
        self._scheduler_timer: Optional[threading.Timer] = None
        self._scheduler_running = False
        self._interval_seconds: Optional[float] = None
        # Bumped on every start/stop; timers from older chains stand down
        self._generation = 0
        self._shutdown = False

        logger.info(
            f"[SWEEP] Initialized with window={self.settings.analysis_window_days}d, "
            f"max_concurrency={self.max_concurrency or 'auto'}"
        )

    def _next_as_of(self) -> datetime:
        """Snapshot time for the next sweep; never earlier than the previous one."""
        with self._lock:
            now = self._clock()
            if self._last_as_of is not None and now < self._last_as_of:
                logger.warning(
                    f"[SWEEP] Clock moved backwards ({now.isoformat()} < "
                    f"{self._last_as_of.isoformat()}); keeping previous snapshot time"
                )
                now = self._last_as_of
            self._last_as_of = now
            return now

    def worker_limit(self, unit_count: int) -> int:
        """Number of units analyzed concurrently in a sweep."""
        if self.max_concurrency > 0:
            return max(1, min(self.max_concurrency, unit_count))
        return max(1, min(unit_count, (os.cpu_count() or 1) * 4))

    async def _evaluate_isolated(self, unit: GeoUnit, as_of: datetime) -> UnitOutcome:
        start = time.perf_counter()
        try:
            return await self.analyzer.evaluate_unit(unit, as_of)
        except Exception as e:
            logger.error(f"[SWEEP] Unit {unit.id} ({unit.name}) failed: {e}")
            return UnitOutcome(
                unit_id=unit.id,
                status=OutcomeStatus.FAILED,
                error=str(e),
                duration_seconds=time.perf_counter() - start,
            )

    async def sweep(self) -> SweepResult:
        """
        Evaluate every known unit once.

        Returns only after every unit has finished. Callers running sweeps
        directly are responsible for not overlapping them; run_sweep_once
        and the background scheduler serialize sweeps themselves.

        Returns:
            SweepResult with one outcome per unit
        """
        if self._shutdown:
            raise SchedulerShutdownError("Scheduler has been shut down")

        as_of = self._next_as_of()
        result = SweepResult(id=str(uuid.uuid4()), started_at=_utcnow(), as_of=as_of)

        with self._lock:
            self._current = result

        start_time = time.perf_counter()
        logger.info(f"[SWEEP] Starting sweep {result.id} as of {as_of.isoformat()}")

        try:
            try:
                units = await self.analyzer.store.list_units()
            except Exception as e:
                result.status = SweepStatus.FAILED
                result.error = str(e)
                logger.error(f"[SWEEP] Could not list units: {e}")
                return result

            semaphore = asyncio.Semaphore(self.worker_limit(len(units)))

            async def run_unit(unit: GeoUnit) -> UnitOutcome:
                async with semaphore:
                    return await self._evaluate_isolated(unit, as_of)

            result.outcomes = list(await asyncio.gather(*(run_unit(u) for u in units)))
            result.status = SweepStatus.COMPLETED

            logger.info(
                f"[SWEEP] Completed {result.id}: units={len(result.outcomes)}, "
                f"alerts={len(result.alerts)}, failures={len(result.failures)}"
            )
            return result

        finally:
            result.duration_seconds = time.perf_counter() - start_time
            with self._lock:
                self._history.insert(0, result)
                while len(self._history) > self.history_size:
                    self._history.pop()
                self._current = None

    def run_sweep_once(self) -> SweepResult:
        """
        Run one sweep synchronously.

        Blocks while another synchronous or scheduled sweep is in flight.
        Must not be called from inside a running event loop; await sweep()
        there instead.
        """
        return self._run_serialized()

    def _is_current(self, generation: int) -> bool:
        return self._scheduler_running and generation == self._generation

    def _run_serialized(self, generation: Optional[int] = None) -> Optional[SweepResult]:
        with self._sweep_lock:
            if generation is not None and not self._is_current(generation):
                return None
            if self._shutdown:
                raise SchedulerShutdownError("Scheduler has been shut down")
            return asyncio.run(self.sweep())

    def get_latest_sweep(self) -> Optional[SweepResult]:
        """Get the most recent sweep result, or None."""
        with self._lock:
            return self._history[0] if self._history else None

    def get_history(self) -> List[Dict]:
        """Get all cached sweep results."""
        with self._lock:
            return [r.to_dict() for r in self._history]

    def get_status(self) -> Dict[str, Any]:
        """Get scheduler status."""
        with self._lock:
            return {
                "cached_sweeps": len(self._history),
                "history_size": self.history_size,
                "current_sweep": self._current.id if self._current else None,
                "last_as_of": self._last_as_of.isoformat() if self._last_as_of else None,
                "scheduler_running": self._scheduler_running,
                "interval_seconds": self._interval_seconds,
                "shutdown": self._shutdown,
            }

    def start_scheduler(self, interval_seconds: Optional[float] = None) -> None:
        """
        Start the recurring background sweep.

        Args:
            interval_seconds: Seconds between sweeps (default from settings)
        """
        if self._shutdown:
            raise SchedulerShutdownError("Scheduler has been shut down")
        if self._scheduler_running:
            logger.warning("[SWEEP] Scheduler already running")
            return

        interval = (
            self.settings.sweep_interval_seconds if interval_seconds is None else interval_seconds
        )
        if interval <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval}")

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._interval_seconds = interval
            self._scheduler_running = True
        self._schedule_next(interval, generation)
        logger.info(f"[SWEEP] Scheduler started with interval={interval}s")

    def stop_scheduler(self, timeout: Optional[float] = None) -> bool:
        """
        Stop the background scheduler.

        No new sweep starts after this returns. An in-flight sweep is
        waited on for up to ``timeout`` seconds (forever if None) and
        abandoned after that. An abandoned sweep never reschedules itself,
        even if the scheduler is started again before it finishes.

        Returns:
            True if no sweep was still running when this returned
        """
        with self._lock:
            self._scheduler_running = False
            self._generation += 1
            if self._scheduler_timer:
                self._scheduler_timer.cancel()
                self._scheduler_timer = None

        acquired = self._sweep_lock.acquire(timeout=-1 if timeout is None else timeout)
        if acquired:
            self._sweep_lock.release()
            logger.info("[SWEEP] Scheduler stopped")
        else:
            logger.warning(
                f"[SWEEP] Scheduler stopped; in-flight sweep abandoned after {timeout}s"
            )
        return acquired

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Stop the scheduler and refuse any further sweeps."""
        self._shutdown = True
        return self.stop_scheduler(timeout)

    def _schedule_next(self, interval_seconds: float, generation: int) -> None:
        """Schedule the next sweep of the given timer chain."""

        def run_and_reschedule():
            if not self._is_current(generation):
                return

            try:
                self._run_serialized(generation)
            except Exception as e:
                logger.error(f"[SWEEP] Scheduled sweep failed: {e}")

            # Next sweep is only scheduled once this one has finished
            self._schedule_next(interval_seconds, generation)

        with self._lock:
            if not self._is_current(generation):
                return
            self._scheduler_timer = threading.Timer(interval_seconds, run_and_reschedule)
            self._scheduler_timer.daemon = True
            self._scheduler_timer.start()
