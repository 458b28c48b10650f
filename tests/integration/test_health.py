from fastapi.testclient import TestClient

from recommender.api.dependencies import get_key_value_store
from recommender.main import app


class UnreachableStore:
    async def ping(self) -> bool:
        return False


def test_health(test_client: TestClient):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_readiness_reports_store_backend(test_client: TestClient):
    response = test_client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["store"] == {"backend": "memory"}
    assert data["providers"]["youtube_configured"] is True


def test_readiness_fails_when_store_is_down(test_client: TestClient):
    app.dependency_overrides[get_key_value_store] = lambda: UnreachableStore()

    response = test_client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"
