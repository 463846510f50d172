def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_readyz_reports_reachable_backend(client, fake_backend):
    response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json()["backend"]["ok"] is True
    assert fake_backend.calls("GET", "/rest/v1/tours")[0].param("limit") == ["1"]


def test_readyz_unhealthy_when_backend_fails(client, fake_backend):
    fake_backend.failures["tours"] = (503, {"message": "maintenance"})

    response = client.get("/readyz")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["backend"]["status_code"] == 503
