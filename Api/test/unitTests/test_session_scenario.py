import statistics
import time

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from todo_api.core.errors import AuthenticationFailed
from todo_api.core.security import PasswordHasher, TokenService
from todo_api.core.settings import Settings
from todo_api.models.User import UserLogin, UserRegister
from todo_api.services.AuthService import AuthService
from conftest import bearer


def test_full_session_lifecycle(client: TestClient):
    registered = client.post("/auth/register", json={"email": "alice@example.com", "password": "Passw0rd"})
    assert registered.status_code == 201

    wrong = client.post("/auth/login", json={"email": "alice@example.com", "password": "Passw0rd1"})
    assert wrong.status_code == 401
    assert wrong.json() == {"error": "Invalid credentials"}

    login = client.post("/auth/login", json={"email": "alice@example.com", "password": "Passw0rd"})
    assert login.status_code == 200
    pair = login.json()
    assert pair["accessToken"] != registered.json()["accessToken"]
    assert pair["refreshToken"] != registered.json()["refreshToken"]

    refreshed = client.post("/auth/refresh", json={"refreshToken": pair["refreshToken"]})
    assert refreshed.status_code == 200

    reused = client.post("/auth/refresh", json={"refreshToken": pair["refreshToken"]})
    assert reused.status_code == 401
    assert reused.json() == {"error": "Invalid refresh token"}

    current = refreshed.json()
    me = client.get("/user/me/info", headers=bearer(current["accessToken"]))
    assert me.json()["email"] == "alice@example.com"

    logout = client.post(
        "/auth/logout",
        json={"refreshToken": current["refreshToken"]},
        headers=bearer(current["accessToken"]),
    )
    assert logout.status_code == 200
    assert client.get("/user/me/info", headers=bearer(current["accessToken"])).status_code == 401
    assert client.post("/auth/refresh", json={"refreshToken": current["refreshToken"]}).status_code == 401


def _median_rejection_time(service: AuthService, session: Session, email: str, runs: int = 7) -> float:
    samples = []
    for _ in range(runs):
        started = time.perf_counter()
        with pytest.raises(AuthenticationFailed):
            service.login(session, UserLogin(email=email, password="Wr0ngPass"))
        samples.append(time.perf_counter() - started)
    return statistics.median(samples)


def test_login_rejection_timing_is_uniform(settings: Settings, session: Session, tokens: TokenService):
    hasher = PasswordHasher(iterations=2, lanes=1, memory_cost=8192)
    service = AuthService(settings, hasher, tokens)
    service.register(session, UserRegister(email="alice@example.com", password="Passw0rd"))

    wrong_password = _median_rejection_time(service, session, "alice@example.com")
    unknown_email = _median_rejection_time(service, session, "nobody@example.com")

    assert 1 / 3 < wrong_password / unknown_email < 3
