"""Unit tests for the token issuer endpoint."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rivnitz_live.api.v1.dependency import get_livekit_service
from rivnitz_live.api.v1.routers.token import router
from rivnitz_live.app_config import AppEnvironConfig
from rivnitz_live.services.integrations.livekit_service import LivekitService


def make_client(cfg: AppEnvironConfig) -> TestClient:
    app = FastAPI()
    app.dependency_overrides[get_livekit_service] = lambda: LivekitService(cfg)
    app.include_router(router)
    return TestClient(app)


@pytest.fixture
def client() -> TestClient:
    return make_client(AppEnvironConfig(DEMO_MODE=True))


class TestIssueToken:
    def test_success(self, client: TestClient):
        """Should return bare JSON with camelCase fields."""
        response = client.get("/token", params={"channel": "test-live-1", "uid": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["token"] == "DEMO_RTC_TOKEN::5::test-live-1"
        assert body["uid"] == 5
        assert body["channelName"] == "test-live-1"
        assert isinstance(body["expiresAt"], int)

    def test_uid_defaults_to_one(self, client: TestClient):
        response = client.get("/token", params={"channel": "test-live-1"})

        assert response.json()["uid"] == 1

    def test_missing_channel(self, client: TestClient):
        response = client.get("/token")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing ?channel= parameter"}

    def test_unconfigured_credentials(self):
        """Should return 500 with the configuration error."""
        client = make_client(
            AppEnvironConfig(DEMO_MODE=False, LIVEKIT_API_KEY=None, LIVEKIT_API_SECRET=None)
        )

        response = client.get("/token", params={"channel": "test-live-1"})

        assert response.status_code == 500
        assert "error" in response.json()
