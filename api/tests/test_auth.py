import pytest
from httpx import AsyncClient

from conftest import register_and_login


@pytest.mark.anyio
async def test_register_returns_user_with_normalised_email(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json={"email": "Owner@Example.com", "password": "supersecret", "name": "Owner"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "owner@example.com"
    assert data["name"] == "Owner"
    assert "password_hash" not in data


@pytest.mark.anyio
async def test_register_duplicate_email_conflicts(client: AsyncClient):
    payload = {"email": "owner@example.com", "password": "supersecret"}
    assert (await client.post("/api/auth/register", json=payload)).status_code == 201

    response = await client.post(
        "/api/auth/register",
        json={"email": "OWNER@example.com", "password": "anothersecret"},
    )
    assert response.status_code == 409
    assert "error" in response.json()


@pytest.mark.anyio
async def test_register_rejects_short_password(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json={"email": "owner@example.com", "password": "short"},
    )
    assert response.status_code == 400
    assert "password" in response.json()["error"]


@pytest.mark.anyio
async def test_login_returns_bearer_token_and_sets_session(client: AsyncClient):
    await client.post(
        "/api/auth/register",
        json={"email": "owner@example.com", "password": "supersecret", "name": "Owner"},
    )

    login_response = await client.post(
        "/api/auth/login",
        json={"email": "owner@example.com", "password": "supersecret"},
    )
    assert login_response.status_code == 200
    data = login_response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == "owner@example.com"

    # Sessão por cookie
    me_response = await client.get("/api/me")
    assert me_response.status_code == 200
    assert me_response.json()["email"] == "owner@example.com"


@pytest.mark.anyio
async def test_login_with_wrong_password_is_unauthorized(client: AsyncClient):
    await client.post(
        "/api/auth/register",
        json={"email": "owner@example.com", "password": "supersecret"},
    )

    response = await client.post(
        "/api/auth/login",
        json={"email": "owner@example.com", "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Credenciais inválidas"}


@pytest.mark.anyio
async def test_me_requires_authentication(client: AsyncClient):
    response = await client.get("/api/me")
    assert response.status_code == 401


@pytest.mark.anyio
async def test_invalid_bearer_token_is_rejected_even_with_session(client: AsyncClient):
    await register_and_login(client, "owner@example.com")

    response = await client.get("/api/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.anyio
async def test_logout_revokes_token_and_clears_session(client: AsyncClient):
    headers = await register_and_login(client, "owner@example.com")
    assert (await client.get("/api/me", headers=headers)).status_code == 200

    logout_response = await client.post("/api/auth/logout", headers=headers)
    assert logout_response.status_code == 204

    assert (await client.get("/api/me", headers=headers)).status_code == 401
    assert (await client.get("/api/me")).status_code == 401
