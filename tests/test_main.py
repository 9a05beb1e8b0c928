def test_root_has_security_headers(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_health_is_excluded_from_security_headers(client):
    response = client.get("/health")

    assert response.json() == {"status": "healthy"}
    assert "X-Frame-Options" not in response.headers


def test_redis_health_without_redis(client):
    assert client.get("/health/redis").json() == {"status": "disabled", "redis": {"connected": False}}


def test_validation_errors_are_422(client):
    response = client.post("/api/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 422
