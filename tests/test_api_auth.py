"""HTTP flows for /api/v1/auth and the error envelope."""

from api import create_app
from services import EXTENSION_KEY
from tests.conftest import PASSWORD, auth_header


def _login(client, email="admin@acme.io", password=PASSWORD, **headers):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password}, headers=headers)


class TestRegister:
    def test_register_returns_identity_and_tokens(self, admin):
        assert admin["user"]["email"] == "admin@acme.io"
        assert admin["user"]["role"] == "admin"
        assert admin["token_type"] == "bearer"
        assert admin["access_token"] and admin["refresh_token"]
        assert admin["expires_in"] > 0

    def test_duplicate_email(self, client, admin):
        resp = client.post(
            "/api/v1/auth/register",
            json={
                "email": "ADMIN@acme.io",
                "password": PASSWORD,
                "first_name": "Dup",
                "last_name": "User",
                "company_name": "Other",
            },
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "EMAIL_TAKEN"

    def test_validation_errors(self, client):
        resp = client.post("/api/v1/auth/register", json={"email": "not-an-email", "password": "short"})
        body = resp.get_json()
        assert resp.status_code == 422
        assert body["status"] == "error"
        assert body["code"] == "VALIDATION_ERROR"
        assert {"email", "password", "first_name", "last_name", "company_name"} <= set(body["errors"])


class TestLogin:
    def test_success(self, client, admin):
        resp = _login(client, **{"User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/121.0"})
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["status"] == "success"
        assert body["data"]["user"]["id"] == admin["user"]["id"]
        assert "password_hash" not in body["data"]["user"]

    def test_failures_share_one_envelope(self, client, admin):
        wrong = _login(client, password="wrong-password")
        unknown = _login(client, email="nobody@acme.io")

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()
        assert wrong.get_json()["code"] == "INVALID_CREDENTIALS"
        assert wrong.headers["WWW-Authenticate"] == "Bearer"

    def test_missing_fields(self, client):
        assert _login(client, email="", password="").status_code == 422

    def test_unencodable_password_is_plain_bad_credentials(self, client, admin):
        known = _login(client, password="\ud800abcdefgh")
        unknown = _login(client, email="nobody@acme.io", password="\ud800abcdefgh")
        assert known.status_code == unknown.status_code == 401
        assert known.get_json()["code"] == "INVALID_CREDENTIALS"

    def test_register_rejects_unencodable_password(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={
                "email": "odd@acme.io",
                "password": "\ud800abcdefgh",
                "first_name": "Odd",
                "last_name": "Chars",
                "company_name": "Acme",
            },
        )
        assert resp.status_code == 422
        assert "password" in resp.get_json()["errors"]


class TestRefreshAndRevoke:
    def test_refresh(self, client, admin):
        resp = client.post("/api/v1/auth/refresh-token", json={"refresh_token": admin["refresh_token"]})
        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert data["user_id"] == admin["user"]["id"]
        assert "refresh_token" not in data
        assert client.get("/api/v1/users/me", headers=auth_header(data["access_token"])).status_code == 200

    def test_revoked_token_cannot_refresh(self, client, admin):
        revoke = client.post("/api/v1/auth/revoke-token", json={"refresh_token": admin["refresh_token"]})
        assert revoke.status_code == 200

        resp = client.post("/api/v1/auth/refresh-token", json={"refresh_token": admin["refresh_token"]})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "INVALID_TOKEN"

    def test_revoke_twice_is_fine(self, client, admin):
        for _ in range(2):
            resp = client.post("/api/v1/auth/revoke-token", json={"refresh_token": admin["refresh_token"]})
            assert resp.status_code == 200

    def test_access_token_cannot_refresh(self, client, admin):
        resp = client.post("/api/v1/auth/refresh-token", json={"refresh_token": admin["access_token"]})
        assert resp.status_code == 401

    def test_rotation_returns_new_refresh_token(self):
        app = create_app("test", overrides={"ROTATE_REFRESH_TOKENS": True})
        try:
            client = app.test_client()
            reg = client.post(
                "/api/v1/auth/register",
                json={
                    "email": "spin@acme.io",
                    "password": PASSWORD,
                    "first_name": "Rita",
                    "last_name": "Rotate",
                    "company_name": "Spin",
                },
            ).get_json()["data"]

            first = client.post("/api/v1/auth/refresh-token", json={"refresh_token": reg["refresh_token"]})
            new_refresh = first.get_json()["data"]["refresh_token"]
            assert new_refresh != reg["refresh_token"]

            replay = client.post("/api/v1/auth/refresh-token", json={"refresh_token": reg["refresh_token"]})
            assert replay.status_code == 401
        finally:
            app.extensions[EXTENSION_KEY].shutdown()


class TestSessions:
    def test_lists_devices_without_tokens(self, client, admin):
        _login(client, **{"User-Agent": "Mozilla/5.0 (Macintosh; Mac OS X 14_0) Safari/605.1"})
        resp = client.get("/api/v1/auth/sessions", headers=auth_header(admin["access_token"]))
        sessions = resp.get_json()["data"]["sessions"]

        assert resp.status_code == 200
        assert len(sessions) == 2
        assert all("token" not in s for s in sessions)
        assert "Mac" in {s["os"] for s in sessions}

    def test_forged_forwarded_for_is_not_recorded(self, client, admin):
        _login(client, **{"X-Forwarded-For": "6.6.6.6"})
        resp = client.get("/api/v1/auth/sessions", headers=auth_header(admin["access_token"]))
        ips = {s["ip_address"] for s in resp.get_json()["data"]["sessions"]}
        assert ips == {"127.0.0.1"}

    def test_forwarded_for_honored_behind_trusted_proxy(self):
        app = create_app("test", overrides={"TRUSTED_PROXY_HOPS": 1})
        try:
            client = app.test_client()
            reg = client.post(
                "/api/v1/auth/register",
                json={
                    "email": "proxy@acme.io",
                    "password": PASSWORD,
                    "first_name": "Pro",
                    "last_name": "Xy",
                    "company_name": "Edge",
                },
                headers={"X-Forwarded-For": "203.0.113.7"},
            ).get_json()["data"]
            resp = client.get("/api/v1/auth/sessions", headers=auth_header(reg["access_token"]))
            assert [s["ip_address"] for s in resp.get_json()["data"]["sessions"]] == ["203.0.113.7"]
        finally:
            app.extensions[EXTENSION_KEY].shutdown()

    def test_requires_bearer(self, client):
        resp = client.get("/api/v1/auth/sessions")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "MISSING_TOKEN"

    def test_garbage_bearer(self, client):
        resp = client.get("/api/v1/auth/sessions", headers=auth_header("garbage"))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "INVALID_TOKEN"


class TestPasswordReset:
    def test_forgot_password_does_not_reveal_accounts(self, client, admin):
        known = client.post("/api/v1/auth/forgot-password", json={"email": "admin@acme.io"})
        unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@acme.io"})
        assert known.status_code == unknown.status_code == 200
        assert known.get_json() == unknown.get_json()

    def test_reset_with_issued_token(self, app, client, admin):
        token = app.extensions[EXTENSION_KEY].sessions.request_password_reset("admin@acme.io")

        resp = client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "Recovered789!"})
        assert resp.status_code == 200
        assert _login(client, password="Recovered789!").status_code == 200
        assert _login(client).status_code == 401

    def test_reset_with_bad_token(self, client, admin):
        resp = client.post("/api/v1/auth/reset-password", json={"token": "nope", "new_password": "Recovered789!"})
        assert resp.status_code == 401


def test_missing_signing_secret_is_a_server_error():
    app = create_app("test", overrides={"ACCESS_TOKEN_SECRET": None})
    try:
        resp = app.test_client().post(
            "/api/v1/auth/register",
            json={
                "email": "x@acme.io",
                "password": PASSWORD,
                "first_name": "No",
                "last_name": "Secret",
                "company_name": "Broken",
            },
        )
        assert resp.status_code == 500
        assert resp.get_json()["code"] == "CONFIGURATION_ERROR"
    finally:
        app.extensions[EXTENSION_KEY].shutdown()
