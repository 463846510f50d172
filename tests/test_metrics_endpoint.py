from fastapi.testclient import TestClient

from app.main import create_app


def test_metrics_endpoint_requires_token_when_configured(client, app_settings):
    app_settings.metrics_token = "secret-token"

    unauthorized = client.get("/metrics")
    assert unauthorized.status_code == 401

    authorized = client.get("/metrics", headers={"Authorization": "Bearer secret-token"})
    assert authorized.status_code == 200


def test_metrics_count_backend_and_function_calls(client, fake_backend):
    fake_backend.functions["process-refund"] = (500, {"error": "nope"})
    client.get("/v1/admin/refunds")
    client.post("/v1/admin/refunds/b1/process")

    body = client.get("/metrics").text

    assert 'backend_requests_total{kind="select",result="ok"} 2.0' in body
    assert 'function_calls_total{function="process-refund",result="error"} 1.0' in body


def test_metrics_disabled_returns_404(app_settings, backend_client):
    app_settings.metrics_enabled = False
    app = create_app(app_settings, backend=backend_client)

    with TestClient(app) as test_client:
        assert test_client.get("/metrics").status_code == 404


def test_unhandled_error_counts_5xx(client_no_raise, monkeypatch):
    from app.domain.refunds import service as refund_service

    async def explode(client):
        raise RuntimeError("boom")

    monkeypatch.setattr(refund_service, "load_refund_queue", explode)

    response = client_no_raise.get("/v1/admin/refunds")

    assert response.status_code == 500
    assert response.json()["title"] == "Internal Server Error"
    body = client_no_raise.get("/metrics").text
    assert 'http_5xx_total{method="GET",path="/v1/admin/refunds"} 1.0' in body
