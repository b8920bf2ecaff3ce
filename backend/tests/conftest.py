import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.main import app
from app.models.user import ADMIN_ROLE_ID, USER_ROLE_ID, User, UserRole
from app.seed import seed_reference_data
from app.services import temporal_token_pool, users_service
from app.services.passwords import hash_password

TEST_DATABASE_URL = "sqlite:///:memory:"

TEST_PASSWORD = "secret123"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables and reference data are created per test and dropped afterwards
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session with seeded reference data"""
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(test_engine)
    with Session(test_engine) as session:
        seed_reference_data(session)
        yield session

    SQLModel.metadata.drop_all(test_engine)
    temporal_token_pool.reset_pool()


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """
    Provide a test client with overridden database session.

    The client is not entered as a context manager so startup hooks
    (init_db on the configured engine, token cleanup loop) do not run.
    """
    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# User helpers
# ============================================================================


@pytest.fixture
def make_user(session: Session):
    """Factory creating an active user with the base `user` role"""
    counter = {"n": 0}

    def _make(name=None, phone=None, email=None, status="active", roles=(USER_ROLE_ID,), password=TEST_PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"User {n}",
            phone=phone or f"+5068800{n:04d}",
            email=email,
            password=hash_password(password),
            status=status,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        for role_id in roles:
            session.add(UserRole(user_id=user.id, role_id=role_id))
        session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(session: Session):
    """Factory building a bearer header for a user from current DB state"""

    def _headers(user: User) -> dict:
        access_token, _ = users_service.issue_tokens(session, user)
        return {"Authorization": f"Bearer {access_token}"}

    return _headers


@pytest.fixture
def user(make_user):
    return make_user(name="Ana")


@pytest.fixture
def user_headers(user, auth_headers):
    return auth_headers(user)


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", roles=(ADMIN_ROLE_ID, USER_ROLE_ID))


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def band(client: TestClient, user, user_headers):
    """A band created through the API; `user` is its admin"""
    response = client.post("/api/bands", json={"name": "Alabanza Central"}, headers=user_headers)
    assert response.status_code == 201
    return response.json()["band"]
