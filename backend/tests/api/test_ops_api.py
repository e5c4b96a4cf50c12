import pytest


@pytest.mark.asyncio
async def test_health_reports_service(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.headers["X-Request-Id"]


@pytest.mark.asyncio
async def test_metrics_exposes_prometheus_text(api_client):
    await api_client.get("/health")
    response = await api_client.get("/metrics")

    assert response.status_code == 200
    assert "studymatch_http_requests_total" in response.text


@pytest.mark.asyncio
async def test_validation_errors_carry_request_id(api_client):
    response = await api_client.get("/matches", params={"page": 0}, headers={"X-User-Id": "alice"})

    assert response.status_code == 422
    assert response.json()["detail"] == "validation_error"
    assert response.json()["request_id"]
