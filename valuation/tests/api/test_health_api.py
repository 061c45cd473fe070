def test_health_echoes_request_id(client):
    r = client.get("/api/v1/health", headers={"X-Request-Id": "req-123"})
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "request_id": "req-123"}
    assert r.headers["X-Request-Id"] == "req-123"


def test_request_id_generated_when_missing(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.headers["X-Request-Id"]
    assert r.json()["request_id"] == r.headers["X-Request-Id"]
