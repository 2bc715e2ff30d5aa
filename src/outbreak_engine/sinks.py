"""Alert sink contract and a thread-safe in-memory implementation.

The engine may hand the same condition to the sink on every sweep, so
sinks must be safe to call repeatedly. The in-memory sink suppresses a
repeat while an alert for the same (unit, type) is still active, unless
the new alert raises the priority.
"""
import logging
import threading
import uuid
from typing import Optional, Protocol, runtime_checkable

from .models import Alert

logger = logging.getLogger(__name__)


@runtime_checkable
class AlertSink(Protocol):
    """Write side of the alerting collaborator."""

    async def create_alert(self, alert: Alert) -> str:
        """Persist or dispatch an alert and return its id."""
        ...


class InMemoryAlertSink:
    """Thread-safe in-memory alert store with active-alert deduplication.

    Alerts are kept in insertion order. Read and deactivate transitions are
    exposed for downstream consumers; the engine itself only creates.
    """

    def __init__(self):
        self._alerts: dict[str, Alert] = {}
        self._lock = threading.Lock()
        self._stats = {
            "total_created": 0,
            "total_suppressed": 0,
            "alerts_by_type": {},
        }

    async def create_alert(self, alert: Alert) -> str:
        """Store an alert unless an equal-or-higher active one already covers it.

        Args:
            alert: The alert to store.

        Returns:
            Id of the stored alert, or of the existing alert that covers it.
        """
        with self._lock:
            covering = self._covering_alert(alert)
            if covering is not None:
                self._stats["total_suppressed"] += 1
                logger.debug(
                    f"[ALERT] Suppressed duplicate {alert.alert_type.value} "
                    f"for {alert.unit_id}; active alert {covering.id}"
                )
                return covering.id

            alert_id = alert.id or str(uuid.uuid4())
            self._alerts[alert_id] = alert.model_copy(update={"id": alert_id})

            self._stats["total_created"] += 1
            alert_type = alert.alert_type.value
            self._stats["alerts_by_type"][alert_type] = \
                self._stats["alerts_by_type"].get(alert_type, 0) + 1

        return alert_id

    def _covering_alert(self, alert: Alert) -> Optional[Alert]:
        """Newest active alert with the same key and at least the same priority."""
        for existing in reversed(self._alerts.values()):
            if (
                existing.is_active
                and existing.dedupe_key == alert.dedupe_key
                and existing.priority.rank >= alert.priority.rank
            ):
                return existing
        return None

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            return self._alerts.get(alert_id)

    def all_alerts(self) -> list[Alert]:
        """All stored alerts, oldest first."""
        with self._lock:
            return list(self._alerts.values())

    def active_alerts(self, unit_id: Optional[str] = None) -> list[Alert]:
        """Active alerts, optionally for one unit, newest first."""
        with self._lock:
            alerts = [
                a for a in self._alerts.values()
                if a.is_active and (unit_id is None or a.unit_id == unit_id)
            ]
        return alerts[::-1]

    def unread_count(self, unit_id: str) -> int:
        with self._lock:
            return sum(
                1 for a in self._alerts.values()
                if a.unit_id == unit_id and a.is_active and not a.is_read
            )

    def mark_read(self, alert_id: str) -> bool:
        return self._update(alert_id, is_read=True)

    def deactivate(self, alert_id: str) -> bool:
        """Deactivate an alert so the next occurrence of its condition alerts again."""
        return self._update(alert_id, is_active=False)

    def _update(self, alert_id: str, **changes) -> bool:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return False
            self._alerts[alert_id] = alert.model_copy(update=changes)
            return True

    def get_stats(self) -> dict:
        """Get sink statistics."""
        with self._lock:
            return {
                **self._stats,
                "alerts_by_type": dict(self._stats["alerts_by_type"]),
                "stored": len(self._alerts),
                "active": sum(1 for a in self._alerts.values() if a.is_active),
            }

    def clear(self) -> None:
        """Drop all stored alerts and reset the statistics."""
        with self._lock:
            self._alerts.clear()
            self._stats["total_created"] = 0
            self._stats["total_suppressed"] = 0
            self._stats["alerts_by_type"] = {}
