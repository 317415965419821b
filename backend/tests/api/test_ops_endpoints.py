import pytest

from academyhub.obs import health
from academyhub.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
	response = await api_client.get("/health/live")

	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_degrades_without_redis(api_client, monkeypatch):
	async def _postgres_ok(timeout: float = 0.3):
		return {"ok": True, "latency_ms": 1.0}

	async def _redis_down(timeout: float = 0.2):
		return {"ok": False, "error": "connection refused"}

	monkeypatch.setattr(health, "_postgres_status", _postgres_ok)
	monkeypatch.setattr(health, "_redis_status", _redis_down)

	response = await api_client.get("/health/ready")
	payload = response.json()

	assert response.status_code == 200
	assert payload["status"] == "degraded"
	assert payload["checks"]["search_tier"] == "unknown"


@pytest.mark.asyncio
async def test_readiness_fails_without_postgres(api_client, monkeypatch):
	async def _postgres_down(timeout: float = 0.3):
		return {"ok": False, "error": "pool closed"}

	monkeypatch.setattr(health, "_postgres_status", _postgres_down)

	response = await api_client.get("/health/ready")

	assert response.status_code == 503
	assert response.json()["status"] == "unavailable"


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret-token")

	denied = await api_client.get("/metrics")
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "secret-token"})
	assert allowed.status_code == 200
	assert "academyhub_search_queries_total" in allowed.text
