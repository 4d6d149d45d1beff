import pytest

from wellvisit import rate_limiter


@pytest.fixture
def memory_limits(monkeypatch):
    """Rate limiting switched on with in-memory counters only"""
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limiter, "get_redis_client_or_none", lambda: None)
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def test_check_rate_limit_counts_within_window(memory_limits):
    results = [rate_limiter.check_rate_limit("test:1.2.3.4", 3, 60, None) for _ in range(4)]

    assert [allowed for allowed, _, _ in results] == [True, True, True, False]
    assert results[-1][1] == 3
    assert 0 < results[-1][2] <= 60


def test_limits_are_per_key(memory_limits):
    for _ in range(2):
        rate_limiter.check_rate_limit("test:a", 2, 60, None)
    assert rate_limiter.check_rate_limit("test:a", 2, 60, None)[0] is False
    assert rate_limiter.check_rate_limit("test:b", 2, 60, None)[0] is True


def test_login_is_rate_limited(client, memory_limits):
    body = {"email": "nobody@example.com", "password": "wrong-password"}
    statuses = [client.post("/auth/login", json=body).status_code for _ in range(11)]

    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429

    blocked = client.post("/auth/login", json=body)
    assert blocked.json()["detail"]["limit"] == 10
    assert int(blocked.headers["Retry-After"]) > 0


def test_security_headers(client):
    response = client.get("/")
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate"
    assert "camera=(self)" in response.headers["Permissions-Policy"]
    assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")


def test_health_check_skips_security_headers(client):
    response = client.get("/health")
    assert response.json() == {"status": "healthy"}
    assert "X-Frame-Options" not in response.headers


def test_missing_bearer_token_is_401(client):
    response = client.get("/patients/me/dashboard")
    assert response.status_code == 401
