import pytest
from sqlmodel import Session
from sqlmodel.pool import StaticPool
from fastapi.testclient import TestClient

from todo_api.core.db import create_db_engine, init_db
from todo_api.core.deps import get_db
from todo_api.core.security import PasswordHasher, TokenService
from todo_api.core.settings import Settings
from todo_api.main import create_app
from todo_api.services.AuthService import AuthService

TEST_SECRET = "test-secret-" + "x" * 52
PASSWORD = "Passw0rd"


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(
        JWT_SECRET=TEST_SECRET,
        DATABASE_URL=None,
        SQLITE_FILE_PATH=":memory:",
        PASSWORD_HASH_ITERATIONS=1,
        PASSWORD_HASH_LANES=1,
        PASSWORD_HASH_MEMORY_COST=1024,
        LOG_JSON=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture(name="engine")
def engine_fixture(settings: Settings):
    engine = create_db_engine(settings, poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="hasher")
def hasher_fixture(settings: Settings):
    return PasswordHasher.from_settings(settings)


@pytest.fixture(name="tokens")
def tokens_fixture(settings: Settings):
    return TokenService(settings)


@pytest.fixture(name="auth_service")
def auth_service_fixture(settings: Settings, hasher: PasswordHasher, tokens: TokenService):
    return AuthService(settings, hasher, tokens)


@pytest.fixture(name="app")
def app_fixture(settings: Settings, session: Session):
    app = create_app(settings)

    def get_db_override():
        yield session

    app.dependency_overrides[get_db] = get_db_override
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(app):
    return TestClient(app)


def register(client: TestClient, email: str = "alice@example.com", password: str = PASSWORD) -> dict:
    response = client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture(name="alice")
def alice_fixture(client: TestClient):
    return register(client)
