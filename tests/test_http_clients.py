"""
Unit tests for the HTTP observation store and alert sink.

Requests are answered by httpx.MockTransport; no backend is needed.

Usage:
    pytest tests/test_http_clients.py -v
"""
import json
import pytest
import httpx

from conftest import NOW, make_unit
from outbreak_engine.exceptions import CollaboratorError
from outbreak_engine.http_clients import HttpAlertSink, HttpObservationStore
from outbreak_engine.models import Alert, AlertPriority, AlertType, ManualAuthor, QualityStatus
from outbreak_engine.sinks import AlertSink
from outbreak_engine.store import ObservationStore


BASE_URL = "http://backend.test"


def recording_transport(responses):
    """MockTransport that answers by path and records every request."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = responses[request.url.path]
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler), seen


class TestHttpObservationStore:
    """Test the REST observation store."""

    def test_satisfies_store_protocol(self):
        assert isinstance(HttpObservationStore(BASE_URL), ObservationStore)

    @pytest.mark.asyncio
    async def test_list_units(self):
        transport, _ = recording_transport({
            "/api/units": (200, [{"id": "v1", "name": "Rampur", "district": "Kamrup"}]),
        })
        store = HttpObservationStore(BASE_URL, transport=transport)

        units = await store.list_units()

        assert units == [make_unit().model_copy(update={"state": None})]

    @pytest.mark.asyncio
    async def test_symptom_reports_window_params(self):
        transport, seen = recording_transport({
            "/api/units/v1/symptom-reports": (200, {"data": [
                {"unit_id": "v1", "symptoms": ["fever"], "report_date": "2025-03-09"},
                {"unit_id": "v1", "symptoms": None, "severity": "SEVERE", "report_date": "2025-03-08"},
            ]}),
        })
        store = HttpObservationStore(BASE_URL, transport=transport)

        reports = await store.recent_symptom_reports("v1", 7, NOW)

        assert len(reports) == 2
        assert reports[1].symptoms is None
        params = seen[0].url.params
        assert params["windowDays"] == "7"
        assert params["asOf"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_water_tests_by_district(self):
        transport, seen = recording_transport({
            "/api/districts/East Khasi Hills/water-tests": (200, [
                {
                    "district": "East Khasi Hills",
                    "quality_status": "CONTAMINATED",
                    "tested_at": "2025-03-09T08:00:00+00:00",
                },
            ]),
        })
        store = HttpObservationStore(BASE_URL, transport=transport)

        tests = await store.recent_water_tests("East Khasi Hills", 7, NOW)

        assert tests[0].quality_status == QualityStatus.CONTAMINATED
        assert "East%20Khasi%20Hills" in str(seen[0].url)

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        transport, _ = recording_transport({"/api/units": (503, {"error": "down"})})
        store = HttpObservationStore(BASE_URL, transport=transport)

        with pytest.raises(CollaboratorError) as exc_info:
            await store.list_units()

        assert exc_info.value.status_code == 503
        assert exc_info.value.service == "observation_store"

    @pytest.mark.asyncio
    async def test_malformed_payload_raises(self):
        transport, _ = recording_transport({"/api/units": (200, [{"name": "no id"}])})
        store = HttpObservationStore(BASE_URL, transport=transport)

        with pytest.raises(CollaboratorError):
            await store.list_units()

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = HttpObservationStore(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(CollaboratorError):
            await store.list_units()


class TestHttpAlertSink:
    """Test the REST alert sink."""

    def make_alert(self) -> Alert:
        return Alert(
            alert_type=AlertType.OUTBREAK_WARNING,
            priority=AlertPriority.HIGH,
            unit_id="v1",
            title="Potential Disease Outbreak Detected",
            message="test",
            district="Kamrup",
            created_at=NOW,
        )

    def test_satisfies_sink_protocol(self):
        assert isinstance(HttpAlertSink(BASE_URL), AlertSink)

    @pytest.mark.asyncio
    async def test_create_alert_returns_id(self):
        transport, seen = recording_transport({"/api/alerts": (201, {"id": 42})})
        sink = HttpAlertSink(BASE_URL, transport=transport)

        alert_id = await sink.create_alert(self.make_alert())

        assert alert_id == "42"
        body = json.loads(seen[0].content)
        assert seen[0].method == "POST"
        assert body["alert_type"] == "OUTBREAK_WARNING"
        assert body["priority"] == "HIGH"
        assert body["created_by"] == {"kind": "system"}
        assert "id" not in body

    @pytest.mark.asyncio
    async def test_manual_author_serialized(self):
        transport, seen = recording_transport({"/api/alerts": (200, {"data": {"id": "a-1"}})})
        sink = HttpAlertSink(BASE_URL, transport=transport)
        alert = self.make_alert().model_copy(update={"created_by": ManualAuthor(user_id="asha-42")})

        assert await sink.create_alert(alert) == "a-1"
        assert json.loads(seen[0].content)["created_by"] == {"kind": "manual", "user_id": "asha-42"}

    @pytest.mark.asyncio
    async def test_missing_id_raises(self):
        transport, _ = recording_transport({"/api/alerts": (200, {"ok": True})})
        sink = HttpAlertSink(BASE_URL, transport=transport)

        with pytest.raises(CollaboratorError):
            await sink.create_alert(self.make_alert())
