"""
HTTP adapters for the observation store and alert sink.

Talk to the CRUD backend that owns units, observations and alerts. A
fresh ``httpx.AsyncClient`` is opened per call because every scheduled
sweep runs in its own event loop.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import CollaboratorError
from .models import Alert, GeoUnit, SymptomReport, WaterTest

logger = logging.getLogger(__name__)

_units = TypeAdapter(List[GeoUnit])
_reports = TypeAdapter(List[SymptomReport])
_tests = TypeAdapter(List[WaterTest])


class _HttpCollaborator:
    service_name = "backend"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Root URL of the backend API
            timeout: Per-request timeout in seconds
            transport: Optional transport override (e.g. httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise CollaboratorError(
                f"{method} {path} failed: {e}", service=self.service_name
            ) from e

        if not response.is_success:
            raise CollaboratorError(
                f"{method} {path} returned status {response.status_code}: {response.text}",
                service=self.service_name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise CollaboratorError(
                f"{method} {path} returned invalid JSON", service=self.service_name
            ) from e

    def _parse(self, adapter: TypeAdapter, payload: Any, what: str):
        # Backends commonly wrap payloads as {"data": [...]}
        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]
        try:
            return adapter.validate_python(payload)
        except ValidationError as e:
            raise CollaboratorError(
                f"Malformed {what} payload: {e.error_count()} validation errors",
                service=self.service_name,
            ) from e


class HttpObservationStore(_HttpCollaborator):
    """Observation store backed by the REST API."""

    service_name = "observation_store"

    @staticmethod
    def _window_params(window_days: int, as_of: datetime) -> Dict[str, str]:
        return {"windowDays": str(window_days), "asOf": as_of.isoformat()}

    async def list_units(self) -> List[GeoUnit]:
        payload = await self._request("GET", "/api/units")
        units = self._parse(_units, payload, "unit")
        logger.debug(f"[STORE] Listed {len(units)} units")
        return units

    async def recent_symptom_reports(
        self, unit_id: str, window_days: int, as_of: datetime
    ) -> List[SymptomReport]:
        payload = await self._request(
            "GET",
            f"/api/units/{quote(unit_id, safe='')}/symptom-reports",
            params=self._window_params(window_days, as_of),
        )
        return self._parse(_reports, payload, "symptom report")

    async def recent_water_tests(
        self, district: str, window_days: int, as_of: datetime
    ) -> List[WaterTest]:
        payload = await self._request(
            "GET",
            f"/api/districts/{quote(district, safe='')}/water-tests",
            params=self._window_params(window_days, as_of),
        )
        return self._parse(_tests, payload, "water test")


class HttpAlertSink(_HttpCollaborator):
    """Alert sink that posts alerts to the REST API.

    The backend owns deduplication; it answers a repeat with the id of the
    alert that already covers it.
    """

    service_name = "alert_sink"

    async def create_alert(self, alert: Alert) -> str:
        payload = await self._request(
            "POST",
            "/api/alerts",
            json=alert.model_dump(mode="json", exclude_none=True),
        )
        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]

        alert_id = payload.get("id") if isinstance(payload, dict) else None
        if alert_id is None:
            raise CollaboratorError("No alert id returned from backend", service=self.service_name)
        return str(alert_id)
