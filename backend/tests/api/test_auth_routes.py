"""HTTP tests for the /api/auth endpoints."""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from api import create_app
from api.dependencies import (
    get_auth_service,
    get_broker,
    get_oauth_config,
    get_password_auth_service,
    get_session_issuer,
)
from modules.auth.models import Flow, Provider
from modules.auth.passwords import PasswordAuthService
from modules.auth.service import AuthService
from providers import github, google
from tests.conftest import CALLBACK_URI, BrokerHarness


@pytest.fixture
def harness():
    return BrokerHarness()


@pytest.fixture
def client(harness):
    app = create_app()
    app.dependency_overrides[get_oauth_config] = lambda: harness.config
    app.dependency_overrides[get_broker] = lambda: harness.broker
    app.dependency_overrides[get_session_issuer] = lambda: harness.issuer
    app.dependency_overrides[get_password_auth_service] = lambda: PasswordAuthService(
        harness.users, harness.issuer
    )
    app.dependency_overrides[get_auth_service] = lambda: AuthService(harness.users, harness.issuer)
    return TestClient(app, follow_redirects=False)


def register(client, email="ivy@example.com") -> dict:
    response = client.post("/api/auth/register", json={
        "email": email,
        "password": "Secret123",
        "first_name": "Ivy",
        "last_name": "Investor",
    })
    assert response.status_code == 201
    return response.json()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestRedirectFlow:

    def test_start_redirects_to_provider(self, client, harness):
        response = client.get("/api/auth/google/start")

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(google.AUTHORIZE_URL)
        assert parse_qs(urlparse(location).query)["redirect_uri"] == [CALLBACK_URI]

    def test_start_unknown_provider(self, client):
        response = client.get("/api/auth/myspace/start")

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_start_mobile_without_target(self, client):
        response = client.get("/api/auth/github/start", params={"flow": "mobile"})
        assert response.status_code == 400
        assert "redirect_target" in response.json()["message"]

    def test_start_mobile_records_redirect_target(self, client, harness):
        response = client.get(
            "/api/auth/google/start", params={"flow": "mobile", "redirect_target": "myapp://auth"}
        )

        assert response.status_code == 302
        state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
        decoded = harness.codec.decode(state)
        assert decoded.provider == Provider.GOOGLE
        assert decoded.flow == Flow.MOBILE
        assert decoded.redirect_target == "myapp://auth"

    def test_start_accepts_app_redirect_uri(self, client, harness):
        response = client.get(
            "/api/auth/github/start", params={"flow": "mobile", "app_redirect_uri": "myapp://auth"}
        )

        assert response.status_code == 302
        state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
        assert harness.codec.decode(state).redirect_target == "myapp://auth"

    def test_callback_landing(self, client, harness):
        harness.stub.json("POST", google.TOKEN_URL, {"access_token": "ya29"})
        harness.stub.json("GET", google.USERINFO_URL, {"sub": "1", "email": "ivy@example.com"})
        state = harness.codec.encode(Provider.GOOGLE)

        response = client.get("/api/auth/callback", params={"code": "abc", "state": state})

        assert response.status_code == 302
        assert "token=" in response.headers["location"]

    def test_callback_bad_state(self, client):
        response = client.get("/api/auth/callback", params={"code": "abc", "state": "forged.state"})

        assert response.status_code == 400
        assert "text/html" in response.headers["content-type"]

    @pytest.mark.parametrize("params,text", [
        ({"token": "t"}, "Authentication successful"),
        ({"error": "<denied>"}, "Authentication failed: &lt;denied&gt;"),
        ({}, "Authentication in progress"),
    ])
    def test_mobile_callback_page(self, client, params, text):
        response = client.get("/api/auth/mobile-callback", params=params)
        assert response.status_code == 200
        assert text in response.text

    def test_oauth_debug(self, client):
        response = client.get(
            "/api/auth/oauth-debug",
            headers={"x-forwarded-proto": "https", "x-forwarded-host": "preview.medinvest.test"},
        )

        data = response.json()
        assert data["origin"] == "https://preview.medinvest.test"
        assert data["callbackUri"] == CALLBACK_URI
        assert data["callbackUrisToRegister"] == [
            CALLBACK_URI,
            "https://preview.medinvest.test/api/auth/callback",
        ]
        assert data["providers"] == {"google": True, "github": True, "facebook": True, "apple": True}
        assert "secret" not in response.text


class TestNativeSignIn:

    def test_social_login(self, client, harness):
        harness.stub.json("GET", google.USERINFO_URL, {
            "sub": "1", "email": "Ivy@Example.com", "given_name": "Ivy", "family_name": "Investor",
        })

        response = client.post("/api/auth/social", json={"provider": "google", "token": "ya29"})

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "ivy@example.com"
        assert data["user"]["firstName"] == "Ivy"
        assert data["user"]["fullName"] == "Ivy Investor"

    def test_social_login_missing_token(self, client):
        response = client.post("/api/auth/social", json={"provider": "google"})

        assert response.status_code == 400
        assert response.json()["message"] == "Provider and token are required"

    def test_social_login_no_email(self, client, harness):
        harness.stub.json("GET", github.USER_URL, {"id": 5, "email": None})
        harness.stub.json("GET", github.EMAILS_URL, [])

        response = client.post("/api/auth/social", json={"provider": "github", "token": "gho"})

        assert response.status_code == 400
        assert response.json()["error"] == "EMAIL_UNAVAILABLE"

    def test_social_login_provider_down(self, client, harness):
        harness.stub.fail("GET", google.USERINFO_URL)

        response = client.post("/api/auth/social", json={"provider": "google", "token": "ya29"})

        assert response.status_code == 502
        assert response.json()["error"] == "NETWORK_ERROR"

    def test_code_exchange(self, client, harness):
        harness.stub.json("POST", github.TOKEN_URL, {"access_token": "gho_abc"})

        response = client.post(
            "/api/auth/github/token",
            json={"code": "abc", "redirectUri": "medinvest://auth", "platform": "ios"},
        )

        assert response.status_code == 200
        assert response.json() == {"access_token": "gho_abc"}

    def test_code_exchange_rejected(self, client, harness):
        harness.stub.json("POST", github.TOKEN_URL, {
            "error": "bad_verification_code",
            "error_description": "The code passed is incorrect or expired.",
        })

        response = client.post("/api/auth/github/token", json={"code": "stale"})

        assert response.status_code == 401
        assert "incorrect or expired" in response.json()["message"]


class TestPasswordAccounts:

    def test_register(self, client):
        data = register(client)
        assert data["user"]["provider"] == "email"
        assert data["user"]["isVerified"] is False

    def test_register_duplicate(self, client):
        register(client)

        response = client.post("/api/auth/register", json={
            "email": "IVY@example.com", "password": "Secret123", "first_name": "I", "last_name": "I",
        })

        assert response.status_code == 409
        assert response.json()["message"] == "An account with this email already exists"

    def test_register_weak_password(self, client):
        response = client.post("/api/auth/register", json={
            "email": "ivy@example.com", "password": "short", "first_name": "Ivy", "last_name": "Investor",
        })
        assert response.status_code == 400

    def test_login(self, client):
        register(client)

        response = client.post("/api/auth/login", json={"email": "ivy@example.com", "password": "Secret123"})

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "ivy@example.com"

    def test_login_wrong_password(self, client):
        register(client)

        response = client.post("/api/auth/login", json={"email": "ivy@example.com", "password": "Wrong1234"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_demo(self, client):
        response = client.post("/api/auth/demo")

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "demo@medinvest.com"


class TestCurrentUser:

    def test_me(self, client):
        token = register(client)["token"]

        response = client.get("/api/auth/me", headers=auth_header(token))

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "ivy@example.com"
        assert "phone" in data
        assert "passwordHash" not in data

    def test_me_without_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["detail"] == "No token provided"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_update_me(self, client):
        token = register(client)["token"]

        response = client.patch(
            "/api/auth/me",
            json={"firstName": "Ivy-Rose", "phone": "+15550100"},
            headers=auth_header(token),
        )

        assert response.status_code == 200
        assert response.json()["firstName"] == "Ivy-Rose"
        assert response.json()["phone"] == "+15550100"

    def test_logout(self, client):
        token = register(client)["token"]

        response = client.post("/api/auth/logout", headers=auth_header(token))

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        after = client.get("/api/auth/me", headers=auth_header(token))
        assert after.status_code == 401
        assert after.json()["detail"] == "Session expired"

    def test_logout_all(self, client):
        token = register(client)["token"]
        second = client.post(
            "/api/auth/login", json={"email": "ivy@example.com", "password": "Secret123"}
        ).json()["token"]

        response = client.post("/api/auth/logout-all", headers=auth_header(token))

        assert response.json() == {"message": "Logged out from all devices"}
        assert client.get("/api/auth/me", headers=auth_header(second)).status_code == 401
