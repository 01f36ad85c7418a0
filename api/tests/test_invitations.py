from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from bugflow.models.invitation import Invitation
from bugflow.models.team import TeamMember
from bugflow.utils.time import utcnow
from conftest import create_project, register_and_login


async def _invite(client: AsyncClient, headers, project_id: int, email: str, **extra):
    return await client.post(
        f"/api/projects/{project_id}/invitations",
        json={"email": email, **extra},
        headers=headers,
    )


async def _expire(session_factory, invitation_id: int) -> None:
    async with session_factory() as session:
        await session.execute(
            update(Invitation)
            .where(Invitation.id == invitation_id)
            .values(expires_at=utcnow() - timedelta(minutes=1))
        )
        await session.commit()


@pytest.mark.anyio
async def test_invitation_round_trip_grants_role(client: AsyncClient, session_factory):
    owner = await register_and_login(client, "owner@example.com", name="Olga")
    project = await create_project(client, owner, "Portal")

    invite = await _invite(client, owner, project["id"], "Dev@Example.com", role="developer", name="Dev")
    assert invite.status_code == 201
    invitation = invite.json()
    assert invitation["email"] == "dev@example.com"
    assert invitation["status"] == "pending"
    assert invitation["project_name"] == "Portal"

    dev = await register_and_login(client, "dev@example.com")
    received = await client.get("/api/invitations", headers=dev)
    assert received.status_code == 200
    [listed] = received.json()
    assert listed["id"] == invitation["id"]
    assert listed["project_name"] == "Portal"
    assert listed["invited_by_name"] == "Olga"

    accept = await client.put(
        f"/api/invitations/{invitation['id']}",
        json={"action": "accept"},
        headers=dev,
    )
    assert accept.status_code == 200
    membership = accept.json()
    assert membership["role"] == "developer"
    assert membership["project_id"] == project["id"]
    assert membership["team_name"] == "Default"

    detail = await client.get(f"/api/projects/{project['id']}", headers=dev)
    assert detail.json()["role"] == "developer"

    assert (await client.get("/api/invitations", headers=dev)).json() == []

    async with session_factory() as session:
        stored = await session.get(Invitation, invitation["id"])
        assert stored.status == "accepted"
        members = (await session.execute(select(TeamMember))).scalars().all()
        assert len(members) == 1


@pytest.mark.anyio
async def test_second_accept_conflicts_and_creates_no_extra_membership(client: AsyncClient, session_factory):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    dev = await register_and_login(client, "dev@example.com")

    first = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)
    assert first.status_code == 200

    second = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)
    assert second.status_code == 409
    assert second.json() == {"error": "Convite já foi accepted"}

    async with session_factory() as session:
        members = (await session.execute(select(TeamMember))).scalars().all()
        assert len(members) == 1


@pytest.mark.anyio
async def test_expired_invitation_is_hidden_and_rejected(client: AsyncClient, session_factory):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    await _expire(session_factory, invitation["id"])

    dev = await register_and_login(client, "dev@example.com")
    assert (await client.get("/api/invitations", headers=dev)).json() == []

    accept = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)
    assert accept.status_code == 410

    decline = await client.post(f"/api/invitations/{invitation['id']}/decline", headers=dev)
    assert decline.status_code == 410

    listing = await client.get(f"/api/projects/{project['id']}/invitations", headers=owner)
    assert listing.json()[0]["status"] == "expired"

    async with session_factory() as session:
        assert (await session.execute(select(TeamMember))).scalars().all() == []


@pytest.mark.anyio
async def test_duplicate_pending_invitation_conflicts(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)

    assert (await _invite(client, owner, project["id"], "dev@example.com")).status_code == 201
    duplicate = await _invite(client, owner, project["id"], "DEV@example.com")
    assert duplicate.status_code == 409


@pytest.mark.anyio
async def test_reinvite_after_expiry_replaces_stale_invitation(client: AsyncClient, session_factory):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    stale = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    await _expire(session_factory, stale["id"])

    fresh = await _invite(client, owner, project["id"], "dev@example.com")
    assert fresh.status_code == 201

    async with session_factory() as session:
        old = await session.get(Invitation, stale["id"])
        assert old.status == "expired"


@pytest.mark.anyio
async def test_inviting_existing_member_conflicts(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    dev = await register_and_login(client, "dev@example.com")
    await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)

    again = await _invite(client, owner, project["id"], "dev@example.com")
    assert again.status_code == 409

    own_address = await _invite(client, owner, project["id"], "owner@example.com")
    assert own_address.status_code == 409


@pytest.mark.anyio
async def test_only_owner_can_invite(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    dev = await register_and_login(client, "dev@example.com")
    await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)
    stranger = await register_and_login(client, "stranger@example.com")

    as_member = await _invite(client, dev, project["id"], "friend@example.com")
    assert as_member.status_code == 403

    as_stranger = await _invite(client, stranger, project["id"], "friend@example.com")
    assert as_stranger.status_code == 404


@pytest.mark.anyio
async def test_invitation_for_another_email_is_not_found(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    intruder = await register_and_login(client, "intruder@example.com")

    owner_view = await client.get(f"/api/invitations/{invitation['id']}", headers=owner)
    assert owner_view.status_code == 200
    assert owner_view.json()["project_name"] == project["name"]
    assert (await client.get(f"/api/invitations/{invitation['id']}", headers=intruder)).status_code == 404
    accept = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=intruder)
    assert accept.status_code == 404


@pytest.mark.anyio
async def test_decline_then_accept_conflicts(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    dev = await register_and_login(client, "dev@example.com")

    decline = await client.put(
        f"/api/invitations/{invitation['id']}",
        json={"action": "decline"},
        headers=dev,
    )
    assert decline.status_code == 200
    assert decline.json()["status"] == "declined"

    accept = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)
    assert accept.status_code == 409
    assert (await client.get(f"/api/projects/{project['id']}", headers=dev)).status_code == 404


@pytest.mark.anyio
async def test_invalid_action_is_rejected(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    dev = await register_and_login(client, "dev@example.com")

    response = await client.put(
        f"/api/invitations/{invitation['id']}",
        json={"action": "maybe"},
        headers=dev,
    )
    assert response.status_code == 400


@pytest.mark.anyio
async def test_accept_uses_requested_team(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    await client.post(f"/api/projects/{project['id']}/teams", json={"name": "Core"}, headers=owner)
    qa_team = (
        await client.post(f"/api/projects/{project['id']}/teams", json={"name": "QA"}, headers=owner)
    ).json()

    invitation = (
        await _invite(client, owner, project["id"], "tester@example.com", role="tester", team_id=qa_team["id"])
    ).json()
    tester = await register_and_login(client, "tester@example.com")

    accept = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=tester)
    assert accept.status_code == 200
    assert accept.json()["team_id"] == qa_team["id"]
    assert accept.json()["role"] == "tester"


@pytest.mark.anyio
async def test_owner_cancels_pending_invitation(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()

    cancel = await client.delete(f"/api/invitations/{invitation['id']}", headers=owner)
    assert cancel.status_code == 204

    dev = await register_and_login(client, "dev@example.com")
    assert (await client.get("/api/invitations", headers=dev)).json() == []
    accept = await client.post(f"/api/invitations/{invitation['id']}/accept", headers=dev)
    assert accept.status_code == 409

    again = await client.delete(f"/api/invitations/{invitation['id']}", headers=owner)
    assert again.status_code == 409


@pytest.mark.anyio
async def test_expired_invitation_cannot_be_cancelled(client: AsyncClient, session_factory):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "dev@example.com")).json()
    await _expire(session_factory, invitation["id"])

    cancel = await client.delete(f"/api/invitations/{invitation['id']}", headers=owner)
    assert cancel.status_code == 410

    listed = (await client.get(f"/api/projects/{project['id']}/invitations", headers=owner)).json()
    assert [item["status"] for item in listed] == ["expired"]


@pytest.mark.anyio
async def test_register_with_invite_token_joins_project(client: AsyncClient, session_factory):
    owner = await register_and_login(client, "owner@example.com")
    project = await create_project(client, owner)
    invitation = (await _invite(client, owner, project["id"], "new@example.com", role="guest")).json()

    async with session_factory() as session:
        token = (await session.get(Invitation, invitation["id"])).token

    wrong_email = await client.post(
        "/api/auth/register",
        json={"email": "other@example.com", "password": "supersecret", "invite_token": token},
    )
    assert wrong_email.status_code == 400

    response = await client.post(
        "/api/auth/register",
        json={"email": "new@example.com", "password": "supersecret", "invite_token": token},
    )
    assert response.status_code == 201

    login = await client.post(
        "/api/auth/login",
        json={"email": "new@example.com", "password": "supersecret"},
    )
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}
    detail = await client.get(f"/api/projects/{project['id']}", headers=headers)
    assert detail.status_code == 200
    assert detail.json()["role"] == "guest"


@pytest.mark.anyio
async def test_register_with_unknown_invite_token_is_not_found(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json={"email": "new@example.com", "password": "supersecret", "invite_token": "nope"},
    )
    assert response.status_code == 404
