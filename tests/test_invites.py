"""Tests for the project invite lifecycle."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from teamfeed.core.config import settings
from teamfeed.models.base import utcnow
from teamfeed.models.invite import ProjectInvite
from teamfeed.models.user import User
from teamfeed.services.invites import InviteOutcome, accept_project_invite


async def _create_project(client: AsyncClient, owner) -> int:
    resp = await client.post(
        "/api/v1/projects", json={"name": "Roadmap"}, headers=owner.headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def _invite(client: AsyncClient, pid: int, actor, email: str, role="editor"):
    return await client.post(
        f"/api/v1/projects/{pid}/invite",
        json={"email": email, "role": role},
        headers=actor.headers,
    )


async def _expire(db_session, token: str) -> None:
    await db_session.execute(
        update(ProjectInvite)
        .where(ProjectInvite.token == token)
        .values(expires_at=utcnow() - timedelta(minutes=1))
    )
    await db_session.commit()


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invite_then_accept_grants_editor(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    before = await client.get(f"/api/v1/projects/{pid}", headers=bob.headers)
    assert before.status_code == 404

    resp = await _invite(client, pid, owner, bob.email)
    assert resp.status_code == 201
    body = resp.json()
    assert body["temporary_password"] is None
    invite = body["invite"]
    assert invite["status"] == "pending"
    assert invite["email"] == bob.email
    assert len(invite["token"]) >= 40

    accept = await client.post(
        f"/api/v1/project-invites/{invite['token']}/accept", headers=bob.headers
    )
    assert accept.status_code == 200
    assert accept.json()["status"] == "accepted"
    assert accept.json()["project_id"] == pid

    project = await client.get(f"/api/v1/projects/{pid}", headers=bob.headers)
    assert project.json()["role"] == "editor"

    post = await client.post(
        "/api/v1/updates",
        json={"project_id": pid, "content": "Shipped the beta"},
        headers=bob.headers,
    )
    assert post.status_code == 201

    delete = await client.delete(f"/api/v1/projects/{pid}", headers=bob.headers)
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_invite_matches_email_case_insensitively(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    resp = await _invite(client, pid, owner, "BOB@Example.com", role="viewer")
    token = resp.json()["invite"]["token"]
    assert resp.json()["invite"]["email"] == "bob@example.com"

    accept = await client.post(
        f"/api/v1/project-invites/{token}/accept", headers=bob.headers
    )
    assert accept.status_code == 200
    assert accept.json()["role"] == "viewer"


@pytest.mark.asyncio
async def test_duplicate_pending_invite_conflicts(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    assert (await _invite(client, pid, owner, bob.email)).status_code == 201
    resp = await _invite(client, pid, owner, bob.email.upper(), role="viewer")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cannot_invite_owner_or_existing_collaborator(
    client: AsyncClient, make_user
):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    assert (await _invite(client, pid, owner, owner.email)).status_code == 400

    await client.post(
        f"/api/v1/projects/{pid}/collaborators",
        json={"email": bob.email, "role": "viewer"},
        headers=owner.headers,
    )
    assert (await _invite(client, pid, owner, bob.email)).status_code == 409


@pytest.mark.asyncio
async def test_viewer_cannot_invite(client: AsyncClient, make_user):
    owner, viewer = await make_user("owner"), await make_user("viewer")
    pid = await _create_project(client, owner)
    await client.post(
        f"/api/v1/projects/{pid}/collaborators",
        json={"email": viewer.email, "role": "viewer"},
        headers=owner.headers,
    )

    resp = await _invite(client, pid, viewer, "friend@example.com")
    assert resp.status_code == 403

    listing = await client.get(f"/api/v1/projects/{pid}/invites", headers=viewer.headers)
    assert listing.status_code == 403


@pytest.mark.asyncio
async def test_invite_provisions_account(client: AsyncClient, make_user):
    owner = await make_user("owner")
    pid = await _create_project(client, owner)

    resp = await _invite(client, pid, owner, "new.person@example.com")
    assert resp.status_code == 201
    body = resp.json()
    password = body["temporary_password"]
    assert password and len(password) == settings.TEMP_PASSWORD_LENGTH
    assert body["username"] == "newperson"

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "new.person@example.com", "password": password},
    )
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    accept = await client.post(
        f"/api/v1/project-invites/{body['invite']['token']}/accept", headers=headers
    )
    assert accept.status_code == 200


@pytest.mark.asyncio
async def test_invite_without_provisioning(client: AsyncClient, make_user, monkeypatch):
    monkeypatch.setattr(settings, "AUTO_PROVISION_INVITEES", False)
    owner = await make_user("owner")
    pid = await _create_project(client, owner)

    resp = await _invite(client, pid, owner, "later@example.com")
    assert resp.status_code == 201
    assert resp.json()["temporary_password"] is None

    later = await make_user("later")
    accept = await client.post(
        f"/api/v1/project-invites/{resp.json()['invite']['token']}/accept",
        headers=later.headers,
    )
    assert accept.status_code == 200


@pytest.mark.asyncio
async def test_team_project_rejects_project_invites(client: AsyncClient, make_user):
    owner = await make_user("owner")
    team = await client.post("/api/v1/teams", json={"name": "Core"}, headers=owner.headers)
    project = await client.post(
        f"/api/v1/teams/{team.json()['id']}/projects",
        json={"name": "Team project"},
        headers=owner.headers,
    )

    resp = await _invite(client, project.json()["id"], owner, "x@example.com")
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Accept / decline preconditions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_accept_unknown_token(client: AsyncClient, make_user):
    bob = await make_user("bob")
    resp = await client.post(
        "/api/v1/project-invites/not-a-real-token/accept", headers=bob.headers
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_accept_with_other_email_is_forbidden(client: AsyncClient, make_user):
    owner, bob, mallory = (
        await make_user("owner"),
        await make_user("bob"),
        await make_user("mallory"),
    )
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]

    resp = await client.post(
        f"/api/v1/project-invites/{token}/accept", headers=mallory.headers
    )
    assert resp.status_code == 403

    preview = await client.get(f"/api/v1/project-invites/{token}")
    assert preview.json()["status"] == "pending"

    denied = await client.get(f"/api/v1/projects/{pid}", headers=mallory.headers)
    assert denied.status_code == 404


@pytest.mark.asyncio
async def test_double_accept_conflicts(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]

    first = await client.post(f"/api/v1/project-invites/{token}/accept", headers=bob.headers)
    assert first.status_code == 200

    second = await client.post(f"/api/v1/project-invites/{token}/accept", headers=bob.headers)
    assert second.status_code == 409
    assert second.json()["message"] == "Invite has already been accepted"

    collaborators = await client.get(
        f"/api/v1/projects/{pid}/collaborators", headers=owner.headers
    )
    assert [c["user_id"] for c in collaborators.json()].count(bob.id) == 1


@pytest.mark.asyncio
async def test_expired_invite_is_flipped_and_rejected(
    client: AsyncClient, make_user, db_session
):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]
    await _expire(db_session, token)

    resp = await client.post(f"/api/v1/project-invites/{token}/accept", headers=bob.headers)
    assert resp.status_code == 409
    assert resp.json()["message"] == "Invite has expired"

    status_after = await db_session.scalar(
        select(ProjectInvite.status).where(ProjectInvite.token == token)
    )
    await db_session.commit()
    assert status_after == "expired"

    again = await client.post(f"/api/v1/project-invites/{token}/accept", headers=bob.headers)
    assert again.status_code == 409
    assert again.json()["message"] == "Invite has already been expired"

    project = await client.get(f"/api/v1/projects/{pid}", headers=bob.headers)
    assert project.status_code == 404


@pytest.mark.asyncio
async def test_stale_pending_invite_does_not_block_reinvite(
    client: AsyncClient, make_user, db_session
):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    old_token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]
    await _expire(db_session, old_token)

    resp = await _invite(client, pid, owner, bob.email, role="viewer")
    assert resp.status_code == 201
    assert resp.json()["invite"]["token"] != old_token

    invites = await client.get(f"/api/v1/projects/{pid}/invites", headers=owner.headers)
    assert sorted(i["status"] for i in invites.json()) == ["expired", "pending"]


@pytest.mark.asyncio
async def test_preview_expires_lazily(client: AsyncClient, make_user, db_session):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]

    preview = await client.get(f"/api/v1/project-invites/{token}")
    assert preview.status_code == 200
    assert preview.json()["target_name"] == "Roadmap"
    assert preview.json()["status"] == "pending"

    await _expire(db_session, token)
    preview = await client.get(f"/api/v1/project-invites/{token}")
    assert preview.json()["status"] == "expired"

    missing = await client.get("/api/v1/project-invites/unknown")
    assert missing.status_code == 404


@pytest.mark.parametrize("method", ["POST", "DELETE"])
@pytest.mark.asyncio
async def test_decline(client: AsyncClient, make_user, method):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]

    resp = await client.request(
        method, f"/api/v1/project-invites/{token}/decline", headers=bob.headers
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "declined"

    accept = await client.post(f"/api/v1/project-invites/{token}/accept", headers=bob.headers)
    assert accept.status_code == 409
    assert accept.json()["message"] == "Invite has already been declined"


@pytest.mark.asyncio
async def test_decline_requires_matching_email(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]

    resp = await client.post(
        f"/api/v1/project-invites/{token}/decline", headers=owner.headers
    )
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_inbox_lists_only_pending_unexpired(
    client: AsyncClient, make_user, db_session
):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid_a = await _create_project(client, owner)
    pid_b = await _create_project(client, owner)
    await _invite(client, pid_a, owner, bob.email)
    stale = (await _invite(client, pid_b, owner, bob.email)).json()["invite"]["token"]
    await _expire(db_session, stale)

    team = await client.post("/api/v1/teams", json={"name": "Crew"}, headers=owner.headers)
    await client.post(
        f"/api/v1/teams/{team.json()['id']}/invites",
        json={"email": bob.email, "role": "member"},
        headers=owner.headers,
    )

    inbox = await client.get("/api/v1/invites", headers=bob.headers)
    assert inbox.status_code == 200
    body = inbox.json()
    assert [i["project_id"] for i in body["project_invites"]] == [pid_a]
    assert [i["team_name"] for i in body["team_invites"]] == ["Crew"]


# ---------------------------------------------------------------------------
# Service level
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_second_accept_reports_not_pending(
    client: AsyncClient, make_user, db_session
):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    token = (await _invite(client, pid, owner, bob.email)).json()["invite"]["token"]

    user = await db_session.get(User, bob.id)
    first = await accept_project_invite(db_session, token, user)
    second = await accept_project_invite(db_session, token, user)
    await db_session.commit()

    assert first.outcome is InviteOutcome.OK
    assert second.outcome is InviteOutcome.NOT_PENDING
    assert second.invite.status == "accepted"
