from __future__ import annotations

from gst_invoicer.core.settings import settings


def _signup(api, email="meera@example.com", password="secret123"):
    return api.post("/api/auth/signup", json={"email": email, "password": password, "full_name": "Meera"})


def _login(api, email="meera@example.com", password="secret123"):
    return api.post("/api/auth/login", data={"username": email, "password": password})


def test_signup_login_me_logout(api):
    signup = _signup(api, email="Meera@Example.com")
    assert signup.status_code == 201, signup.text
    assert signup.json()["email"] == "meera@example.com"
    assert "hashed_password" not in signup.json()

    login = _login(api)
    assert login.status_code == 200, login.text
    body = login.json()
    assert body["token_type"] == "bearer"
    headers = {"Authorization": f"Bearer {body['access_token']}"}

    me = api.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["full_name"] == "Meera"

    assert api.post("/api/auth/logout", headers=headers).status_code == 200
    assert api.get("/api/auth/me", headers=headers).status_code == 401


def test_duplicate_signup_conflicts(api):
    assert _signup(api).status_code == 201
    assert _signup(api).status_code == 409


def test_short_password_rejected(api):
    assert _signup(api, password="12345").status_code == 422


def test_bad_credentials(api):
    _signup(api)
    response = _login(api, password="wrong-password")
    assert response.status_code == 400
    assert response.json()["detail"] == "Incorrect email or password"


def test_login_rate_limited(api, monkeypatch):
    monkeypatch.setattr(settings, "login_max_attempts", 2)
    _signup(api)

    assert _login(api, password="nope").status_code == 400
    assert _login(api, password="nope").status_code == 400
    assert _login(api, password="nope").status_code == 429


def test_protected_routes_require_token(api):
    assert api.get("/api/invoices").status_code == 401
    assert api.get("/api/companies", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_user_data_is_isolated_with_real_tokens(api):
    _signup(api, email="one@example.com")
    _signup(api, email="two@example.com")
    one = {"Authorization": f"Bearer {_login(api, email='one@example.com').json()['access_token']}"}
    two = {"Authorization": f"Bearer {_login(api, email='two@example.com').json()['access_token']}"}

    created = api.post("/api/companies", json={"name": "One Pvt Ltd"}, headers=one)
    assert created.status_code == 201

    assert api.get("/api/companies", headers=two).json() == []
    assert api.get(f"/api/companies/{created.json()['id']}", headers=two).status_code == 404
