"""Unit tests for go-live router endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rivnitz_live.api.errors import app_error_handler
from rivnitz_live.api.v1.dependency import get_orchestrator
from rivnitz_live.api.v1.routers.go_live import router
from rivnitz_live.domain.live.broadcast.errors import (
    CaptureDenied,
    CommandInFlight,
    SetupIncomplete,
)
from rivnitz_live.domain.live.broadcast.models import OrchestratorState
from rivnitz_live.domain.live.broadcast.orchestrator import LiveSessionOrchestrator
from rivnitz_live.schemas.live_state import LivePhase
from rivnitz_live.utils.app_errors import AppError, AppErrorCode


def state(phase: LivePhase = LivePhase.SETUP, **kwargs) -> OrchestratorState:
    return OrchestratorState(phase=phase, title="Evening shiur", channel_name="test-live-1", **kwargs)


@pytest.fixture
def mock_orchestrator() -> AsyncMock:
    """Create a mock orchestrator."""
    orchestrator = AsyncMock(spec=LiveSessionOrchestrator)
    orchestrator.snapshot = MagicMock(return_value=state())
    orchestrator.mount_display = MagicMock()
    return orchestrator


@pytest.fixture
def test_app(mock_orchestrator: AsyncMock) -> FastAPI:
    """Create FastAPI test app with dependency overrides."""
    app = FastAPI()
    app.dependency_overrides[get_orchestrator] = lambda: mock_orchestrator
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    return TestClient(test_app)


class TestState:
    def test_get_state(self, client: TestClient):
        """Should return the state projection in the API envelope."""
        response = client.get("/go-live/state")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"]["phase"] == "setup"
        assert body["results"]["elapsed_display"] == "00:00"

    def test_orchestrator_not_running(self):
        """Should return 503 when the app has no orchestrator."""
        app = FastAPI()
        app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
        app.include_router(router)

        response = TestClient(app).get("/go-live/state")

        assert response.status_code == 503
        assert response.json()["success"] is False


class TestPreview:
    def test_start_preview(self, client: TestClient, mock_orchestrator: AsyncMock):
        # Arrange
        mock_orchestrator.start_preview.return_value = state(LivePhase.PREVIEW)

        # Act
        response = client.post(
            "/go-live/preview", json={"title": "Evening shiur", "channel_name": "test-live-1"}
        )

        # Assert
        assert response.status_code == 200
        assert response.json()["results"]["phase"] == "preview"
        mock_orchestrator.start_preview.assert_awaited_once_with(
            title="Evening shiur", channel_name="test-live-1"
        )

    def test_blank_title(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.start_preview.side_effect = SetupIncomplete("Session title is required")

        response = client.post("/go-live/preview", json={"title": ""})

        assert response.status_code == 400
        body = response.json()
        assert body["errcode"] == AppErrorCode.E_SETUP_INCOMPLETE.value
        assert body["errmesg"] == "Session title is required"

    def test_camera_denied(self, client: TestClient, mock_orchestrator: AsyncMock):
        """Should surface the capture error message verbatim."""
        mock_orchestrator.start_preview.side_effect = CaptureDenied("Permission denied: /dev/video0")

        response = client.post("/go-live/preview", json={})

        assert response.status_code == 403
        assert response.json()["errmesg"] == "Permission denied: /dev/video0"

    def test_cancel_preview(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.cancel_preview.return_value = state()

        response = client.post("/go-live/preview/cancel")

        assert response.status_code == 200
        mock_orchestrator.cancel_preview.assert_awaited_once()


class TestGoLive:
    def test_start(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.go_live.return_value = state(
            LivePhase.LIVE, session_id="sess-1", notice="You are live!"
        )

        response = client.post("/go-live/start")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["phase"] == "live"
        assert results["session_id"] == "sess-1"

    def test_command_in_flight(self, client: TestClient, mock_orchestrator: AsyncMock):
        """Should reject a second command while one is pending."""
        mock_orchestrator.go_live.side_effect = CommandInFlight("go_live is already in progress")

        response = client.post("/go-live/start")

        assert response.status_code == 409
        assert response.json()["errcode"] == AppErrorCode.E_COMMAND_IN_FLIGHT.value

    def test_end(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.end_session.return_value = state(notice="Session ended")

        response = client.post("/go-live/end")

        assert response.status_code == 200
        assert response.json()["results"]["notice"] == "Session ended"


class TestConsultation:
    def test_admit(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.admit.return_value = state(LivePhase.LIVE)

        response = client.post("/go-live/admit", json={"entry_id": "entry-1"})

        assert response.status_code == 200
        mock_orchestrator.admit.assert_awaited_once_with("entry-1")

    def test_admit_requires_entry_id(self, client: TestClient, mock_orchestrator: AsyncMock):
        response = client.post("/go-live/admit", json={"entry_id": ""})

        assert response.status_code == 422
        mock_orchestrator.admit.assert_not_awaited()

    def test_end_consultation(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.end_consultation.return_value = state(LivePhase.LIVE)

        response = client.post("/go-live/end-consultation")

        assert response.status_code == 200
        mock_orchestrator.end_consultation.assert_awaited_once()


class TestControls:
    def test_toggle_mic(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.toggle_mic.return_value = state(LivePhase.LIVE, mic_muted=True)

        response = client.post("/go-live/toggle-mic")

        assert response.json()["results"]["mic_muted"] is True

    def test_toggle_camera(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.toggle_camera.return_value = state(LivePhase.LIVE, camera_off=True)

        response = client.post("/go-live/toggle-camera")

        assert response.json()["results"]["camera_off"] is True

    def test_display_mounted(self, client: TestClient, mock_orchestrator: AsyncMock):
        response = client.post("/go-live/display/camera-preview/mounted")

        assert response.status_code == 200
        mock_orchestrator.mount_display.assert_called_once_with("camera-preview")

    def test_sign_out(self, client: TestClient, mock_orchestrator: AsyncMock):
        mock_orchestrator.sign_out.return_value = state()

        response = client.post("/go-live/sign-out")

        assert response.status_code == 200
        mock_orchestrator.sign_out.assert_awaited_once()
