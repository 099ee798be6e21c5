from unittest.mock import patch

import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from sqlmodel import Session

from todo_api.core.deps import authenticate
from todo_api.core.errors import AuthenticationFailed
from todo_api.core.security import TokenService
from todo_api.core.settings import Settings
from todo_api.models.User import User
from todo_api.services.RevocationStore import RevocationStore
from conftest import bearer

GENERIC = {"error": "Invalid or expired token"}


def test_me_with_valid_token(client: TestClient, alice: dict):
    response = client.get("/user/me/info", headers=bearer(alice["accessToken"]))
    assert response.status_code == 200
    assert response.json() == alice["user"]


def test_missing_header(client: TestClient):
    response = client.get("/user/me/info")
    assert response.status_code == 401
    assert response.json() == {"error": "Authorization header required"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.parametrize("header", ["Token abc", "bearer abc", "Basic dXNlcjpwYXNz", "Bearer"])
def test_wrong_scheme(client: TestClient, header: str):
    response = client.get("/user/me/info", headers={"Authorization": header})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid authorization format. Use: Bearer <token>"}


def test_failure_causes_share_one_response(client: TestClient, alice: dict, tokens: TokenService):
    expired = tokens.issue_access(alice["user"]["id"], "alice@example.com", expires_delta=timedelta(seconds=-5))
    forged = TokenService(Settings(JWT_SECRET="forger-secret-" + "z" * 50)).issue_access(alice["user"]["id"], "alice@example.com")
    revoked = alice["accessToken"]
    client.post("/auth/logout", headers=bearer(revoked))

    responses = [
        client.get("/user/me/info", headers=bearer(token))
        for token in ("garbage", expired, forged, revoked)
    ]

    assert {r.status_code for r in responses} == {401}
    assert all(r.json() == GENERIC for r in responses)
    assert len({r.content for r in responses}) == 1


def test_authenticate_returns_identity(session: Session, tokens: TokenService):
    token = tokens.issue_access(3, "carol@example.com")
    user = authenticate(f"Bearer {token}", tokens, RevocationStore(session))

    assert (user.user_id, user.email, user.token) == (3, "carol@example.com", token)


@pytest.mark.parametrize("header", [None, "", "Bearer ", "Bearer not.a.jwt"])
def test_authenticate_only_raises_auth_failure(session: Session, tokens: TokenService, header):
    with pytest.raises(AuthenticationFailed):
        authenticate(header, tokens, RevocationStore(session))


def test_me_for_removed_user(client: TestClient, session: Session, alice: dict):
    session.delete(session.get(User, alice["user"]["id"]))
    session.commit()

    response = client.get("/user/me/info", headers=bearer(alice["accessToken"]))
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_health(client: TestClient):
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json() == {"status": "ok"}


def test_unexpected_error_is_opaque(app, alice: dict):
    client = TestClient(app, raise_server_exceptions=False)
    with patch.object(RevocationStore, "is_revoked", side_effect=RuntimeError("database exploded")):
        response = client.get("/user/me/info", headers=bearer(alice["accessToken"]))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "exploded" not in response.text
