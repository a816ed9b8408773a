"""
Integration Tests for the FastAPI Backend

Tests for API endpoints: health, registry browsing, analysis and progress.
Uses async httpx for ASGI app testing with offline collaborators.
"""
import base64
import pytest
import httpx

from oncovector.core.pipeline import PipelineStage
from oncovector.main import app, get_controller
from oncovector.utils import RegistryUnavailableError, SynthesisError

from conftest import RecordingSynthesizer, StaticProbe


@pytest.fixture
async def async_client():
    """Create async test client."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def override_controller():
    """Swap the process-wide controller for the duration of a test."""

    def _override(controller):
        app.dependency_overrides[get_controller] = lambda: controller
        return controller

    yield _override
    app.dependency_overrides.clear()


@pytest.mark.asyncio
class TestHealthEndpoints:

    async def test_root_endpoint(self, async_client):
        response = await async_client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["mode"] == "demo"
        assert data["registry_size"] == 12

    async def test_health_endpoint(self, async_client):
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["registry_source"] == "builtin"

    async def test_registry_health(self, async_client):
        response = await async_client.get("/api/v1/registry/health")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 12
        assert data["online"] == 12
        assert data["nodes"][0]["status"] == "online"


@pytest.mark.asyncio
class TestCaseEndpoints:

    async def test_list_cases(self, async_client):
        response = await async_client.get("/api/v1/cases")
        assert response.status_code == 200
        assert response.json()["count"] == 12

    async def test_filter_cases_by_diagnosis(self, async_client):
        response = await async_client.get("/api/v1/cases", params={"diagnosis": "lung"})
        ids = {c["id"] for c in response.json()["cases"]}
        assert ids == {"TCIA-LUNG-0103", "TCIA-LUNG-0287"}

    async def test_get_case(self, async_client):
        response = await async_client.get("/api/v1/cases/ISIC-MEL-0417")
        assert response.status_code == 200
        assert response.json()["diagnosis"] == "Melanoma"

    async def test_get_nonexistent_case(self, async_client):
        response = await async_client.get("/api/v1/cases/NONEXISTENT")
        assert response.status_code == 404


@pytest.mark.asyncio
class TestAnalyzeEndpoint:

    async def test_symptom_analysis(self, async_client):
        response = await async_client.post("/api/v1/analyze", json={
            "age": 55,
            "gender": "Female",
            "symptoms": "irregular mole",
        })
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "done"
        assert data["error"] is None
        assert data["analysis"]["potential_diagnoses"][0] == "Melanoma"
        assert data["analysis"]["high_confidence_match"] is True
        assert data["progress"]["percent"] == 100

    async def test_imaging_analysis(self, async_client):
        image = base64.b64encode(b"fake-png-bytes").decode("ascii")
        response = await async_client.post("/api/v1/analyze", json={
            "age": 40,
            "gender": "male",
            "images": [{"data_base64": image, "mime_type": "image/png", "filename": "lung_ct.png"}],
        })
        assert response.status_code == 200

        data = response.json()
        assert data["anatomy_context"] == "Lung"
        assert data["retrieval_query"] == "[PATIENT IMAGING ANATOMY: Lung] "
        assert data["query"]["image_count"] == 1

    async def test_missing_age(self, async_client):
        response = await async_client.post("/api/v1/analyze", json={"symptoms": "cough"})
        assert response.status_code == 400

        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["message"] == "Please provide patient age."

    async def test_no_symptoms_or_imagery(self, async_client):
        response = await async_client.post("/api/v1/analyze", json={"age": 30})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "symptoms"

    async def test_invalid_gender(self, async_client):
        response = await async_client.post("/api/v1/analyze", json={"age": 30, "symptoms": "cough", "gender": "x"})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "gender"

    async def test_invalid_image_encoding(self, async_client):
        response = await async_client.post("/api/v1/analyze", json={
            "age": 30,
            "images": [{"data_base64": "%%% not base64 %%%"}],
        })
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "images"

    async def test_registry_outage(self, async_client, make_controller, override_controller):
        override_controller(make_controller(probe=StaticProbe(error=RegistryUnavailableError("All nodes down"))))

        response = await async_client.post("/api/v1/analyze", json={"age": 55, "symptoms": "irregular mole"})
        assert response.status_code == 503

        data = response.json()
        assert data["status"] == "failed"
        assert data["failed_stage"] == "registry"
        assert data["error"]["error"] == "REGISTRY_UNAVAILABLE"
        assert data["progress"]["percent"] == 45
        assert data["query"]["symptoms"] == "irregular mole"
        assert data["ranked_cases"] == []

    async def test_synthesis_outage_reports_candidates(self, async_client, make_controller, override_controller):
        override_controller(make_controller(synthesizer=RecordingSynthesizer(error=SynthesisError("Model refused"))))

        response = await async_client.post("/api/v1/analyze", json={"age": 55, "symptoms": "irregular mole"})
        assert response.status_code == 502

        data = response.json()
        assert data["failed_stage"] == "synthesis"
        assert data["analysis"] is None
        assert data["ranked_cases"][0]["id"] == "ISIC-MEL-0417"

    async def test_busy_controller(self, async_client, make_controller, override_controller):
        controller = override_controller(make_controller())
        controller._state = PipelineStage.VISION

        response = await async_client.post("/api/v1/analyze", json={"age": 55, "symptoms": "irregular mole"})
        assert response.status_code == 409


@pytest.mark.asyncio
class TestProgressEndpoints:

    async def test_progress_after_run(self, async_client, make_controller, override_controller):
        override_controller(make_controller())
        await async_client.post("/api/v1/analyze", json={"age": 55, "symptoms": "irregular mole"})

        response = await async_client.get("/api/v1/progress")
        assert response.status_code == 200

        data = response.json()
        assert data["state"] == "done"
        assert data["running"] is False
        assert data["percent"] == 100
        assert len(data["log"]) <= 4

    async def test_cancel_when_idle(self, async_client, make_controller, override_controller):
        override_controller(make_controller())

        response = await async_client.post("/api/v1/analyze/cancel")
        assert response.status_code == 200
        assert response.json()["cancelled"] is False
