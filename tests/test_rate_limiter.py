from homeservice.rate_limiter import record_hit, reset_rate_limits


def test_local_window_counts_per_key():
    reset_rate_limits()
    assert record_hit("rl:test:1.2.3.4", 60)[0] == 1
    assert record_hit("rl:test:1.2.3.4", 60)[0] == 2
    count, retry_after = record_hit("rl:test:5.6.7.8", 60)
    assert count == 1
    assert 0 < retry_after <= 60


def test_forgot_password_is_throttled(client):
    payload = {"email": "nobody@example.com"}
    for _ in range(3):
        assert client.post("/api/auth/forgot-password", json=payload).status_code == 200

    response = client.post("/api/auth/forgot-password", json=payload)

    assert response.status_code == 429
    assert response.json()["detail"]["limit"] == 3
    assert int(response.headers["Retry-After"]) > 0
