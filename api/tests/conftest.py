import os

os.environ.setdefault("BUGFLOW_SESSION_SECRET", "test-secret-value-123456")
os.environ.setdefault("BUGFLOW_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from bugflow.api import deps  # noqa: E402
from bugflow.db.base import Base  # noqa: E402
from bugflow import models  # noqa: E402,F401
from main import app  # noqa: E402

DEFAULT_PASSWORD = "supersecret"


def create_sqlite_engine():
    return create_async_engine("sqlite+aiosqlite:///:memory:", future=True)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client_session():
    engine = create_sqlite_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client, TestingSessionLocal

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def client(client_session):
    test_client, _ = client_session
    return test_client


@pytest.fixture
def session_factory(client_session):
    _, session_factory = client_session
    return session_factory


async def register_and_login(
    client: AsyncClient,
    email: str,
    name: str | None = None,
    password: str = DEFAULT_PASSWORD,
) -> dict[str, str]:
    """Cadastra o usuário e devolve os headers com o bearer token dele."""
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text

    login_response = await client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
    )
    assert login_response.status_code == 200, login_response.text
    return {"Authorization": f"Bearer {login_response.json()['access_token']}"}


async def create_project(client: AsyncClient, headers: dict[str, str], name: str = "Projeto") -> dict:
    response = await client.post("/api/projects", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def invite_and_accept(
    client: AsyncClient,
    owner_headers: dict[str, str],
    member_headers: dict[str, str],
    project_id: int,
    email: str,
    role: str = "developer",
) -> dict:
    invite = await client.post(
        f"/api/projects/{project_id}/invitations",
        json={"email": email, "role": role},
        headers=owner_headers,
    )
    assert invite.status_code == 201, invite.text

    accept = await client.post(
        f"/api/invitations/{invite.json()['id']}/accept",
        headers=member_headers,
    )
    assert accept.status_code == 200, accept.text
    return accept.json()
