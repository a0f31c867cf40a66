"""Tests for the admin auth router."""


def test_login_returns_session(client, admin):
    response = client.post("/api/auth/login", json={"username": "dj", "password": "s3cret"})

    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "dj"
    assert data["sessionId"]


def test_login_requires_both_fields(client):
    response = client.post("/api/auth/login", json={"username": "dj"})
    assert response.status_code == 400


def test_wrong_password(client, admin):
    response = client.post("/api/auth/login", json={"username": "dj", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_rate_limited_after_repeated_failures(client, admin, config):
    for _ in range(config.auth.max_login_attempts):
        client.post("/api/auth/login", json={"username": "dj", "password": "nope"})

    response = client.post("/api/auth/login", json={"username": "dj", "password": "s3cret"})

    assert response.status_code == 429
    assert "Too many failed login attempts" in response.json()["detail"]


def test_me_and_logout(client, auth_headers):
    assert client.get("/api/auth/me", headers=auth_headers).json() == {"username": "dj"}

    assert client.post("/api/auth/logout", headers=auth_headers).status_code == 200
    assert client.get("/api/auth/me", headers=auth_headers).status_code == 401


def test_me_without_token(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_logout_without_token_is_harmless(client):
    assert client.post("/api/auth/logout").status_code == 200
