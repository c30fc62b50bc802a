"""
tests/test_captain_routes.py -- Integration tests for the /captains endpoints.

These tests exercise the full stack: FastAPI routing -> request validation ->
resolver dependency -> AuthService -> SQLite stores -> response serialization.

Coverage:
  - Register: 201 with token, duplicate 400, validation 400 {errors}
  - Login: 200 with cookie, no password in body, identical 401 bodies
  - Profile: Bearer and cookie transport, 401 missing, 400 expired/wrong kind,
    404 unknown captain
  - Logout: clears cookie; replaying the token afterwards is 401 blacklisted

Fixtures used (from conftest.py):
  - api_client: (client, service)
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from auth.models import PrincipalKind
from auth.service import AuthService
from payloads import captain_payload, user_payload


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _set_cookie_headers(resp) -> list[str]:
    return [v for k, v in resp.headers.multi_items() if k.lower() == "set-cookie"]


class TestCaptainRegister:
    def test_register_returns_201_with_token(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.post("/captains/register", json=captain_payload())
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["message"] == "Captain registered successfully"
        assert isinstance(data["token"], str) and data["token"]

    def test_register_duplicate_returns_400(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        assert client.post("/captains/register", json=captain_payload()).status_code == 201
        resp = client.post("/captains/register", json=captain_payload())
        assert resp.status_code == 400
        assert resp.json() == {"message": "Captain already exists"}

    def test_register_invalid_vehicle_type_returns_errors(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.post("/captains/register", json=captain_payload(vehicleType="spaceship"))
        assert resp.status_code == 400
        errors = resp.json()["errors"]
        assert any(e["path"] == "vehicle.vehicleType" for e in errors)
        assert all(e["location"] == "body" for e in errors)

    def test_register_bad_email_and_missing_vehicle(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        body = captain_payload(email="not-an-email")
        del body["vehicle"]
        resp = client.post("/captains/register", json=body)
        assert resp.status_code == 400
        paths = {e["path"] for e in resp.json()["errors"]}
        assert {"email", "vehicle"} <= paths


class TestCaptainLogin:
    def test_login_sets_cookie_and_hides_password(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        client.post("/captains/register", json=captain_payload())

        resp = client.post("/captains/login", json={"email": "d1@x.com", "password": "pw1"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["token"]
        assert resp.cookies.get("token") == data["token"]
        assert resp.headers["cache-control"] == "no-store"

        captain = data["captain"]
        assert captain["email"] == "d1@x.com"
        assert captain["_id"]
        assert captain["vehicle"] == {"color": "red", "plate": "AB123", "capacity": 4, "vehicleType": "car"}
        assert "password" not in captain
        assert "pw1" not in resp.text

    def test_wrong_password_matches_unknown_email(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        client.post("/captains/register", json=captain_payload())

        wrong_pw = client.post("/captains/login", json={"email": "d1@x.com", "password": "nope"})
        unknown = client.post("/captains/login", json={"email": "ghost@x.com", "password": "pw1"})
        assert wrong_pw.status_code == unknown.status_code == 401
        assert wrong_pw.json() == unknown.json() == {"message": "Invalid email or password"}


class TestCaptainProfile:
    def test_profile_with_bearer(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        token = client.post("/captains/register", json=captain_payload()).json()["token"]
        resp = client.get("/captains/profile", headers=_bearer(token))
        assert resp.status_code == 200, resp.text
        assert resp.json()["captain"]["email"] == "d1@x.com"
        assert resp.json()["captain"]["status"] == "inactive"

    def test_profile_with_login_cookie(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        client.post("/captains/register", json=captain_payload())
        client.post("/captains/login", json={"email": "d1@x.com", "password": "pw1"})
        # The client's cookie jar now carries "token".
        resp = client.get("/captains/profile")
        assert resp.status_code == 200, resp.text

    def test_profile_without_token(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.get("/captains/profile")
        assert resp.status_code == 401
        assert resp.json() == {"message": "Access denied. No token provided."}

    def test_expired_token_rejected_before_handler(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        client.post("/captains/register", json=captain_payload())
        captain = service.store.get_by_email(PrincipalKind.DRIVER, "d1@x.com")
        expired = service.codec.issue(captain.id, PrincipalKind.DRIVER, expire_seconds=-10)

        resp = client.get("/captains/profile", headers=_bearer(expired))
        assert resp.status_code == 400
        assert resp.json() == {"message": "Unauthorized access. Invalid token."}

    def test_rider_token_rejected_on_captain_route(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        rider_token = client.post("/users/register", json=user_payload()).json()["token"]
        resp = client.get("/captains/profile", headers=_bearer(rider_token))
        assert resp.status_code == 400

    def test_unknown_captain_returns_404(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        token = service.codec.issue("no-such-captain", PrincipalKind.DRIVER)
        resp = client.get("/captains/profile", headers=_bearer(token))
        assert resp.status_code == 404
        assert resp.json() == {"message": "Captain not found."}


class TestCaptainLogout:
    def test_logout_then_replay_is_revoked(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        client.post("/captains/register", json=captain_payload())
        token = client.post("/captains/login", json={"email": "d1@x.com", "password": "pw1"}).json()["token"]
        client.cookies.clear()

        resp = client.post("/captains/logout", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Logged out successfully"}
        assert any(h.startswith("token=") for h in _set_cookie_headers(resp))

        service.codec.verify(token)  # signature and expiry still fine
        replay = client.get("/captains/profile", headers=_bearer(token))
        assert replay.status_code == 401
        assert replay.json() == {"message": "Token is blacklisted. Please login again."}

    def test_logout_with_cookie_clears_it(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        client.post("/captains/register", json=captain_payload())
        client.post("/captains/login", json={"email": "d1@x.com", "password": "pw1"})

        resp = client.post("/captains/logout")
        assert resp.status_code == 200
        assert not client.cookies.get("token")
        assert client.get("/captains/profile").status_code == 401

    def test_logout_requires_token(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        assert client.post("/captains/logout").status_code == 401
