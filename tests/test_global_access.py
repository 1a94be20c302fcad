"""Tests for administrator account creation and account-wide global access."""

import pytest
from httpx import AsyncClient

from teamfeed.core.config import settings


@pytest.fixture
def admin_emails(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", ["admin@example.com"])


async def _set_access(client: AsyncClient, admin, user_id: int, access):
    return await client.put(
        f"/api/v1/users/{user_id}/global-access",
        json={"access": access},
        headers=admin.headers,
    )


@pytest.mark.asyncio
async def test_global_view_floor_reaches_every_project(
    client: AsyncClient, make_user, admin_emails
):
    admin, owner, auditor = (
        await make_user("admin"),
        await make_user("owner"),
        await make_user("auditor"),
    )
    pid = (
        await client.post("/api/v1/projects", json={"name": "Ops"}, headers=owner.headers)
    ).json()["id"]

    assert (await client.get(f"/api/v1/projects/{pid}", headers=auditor.headers)).status_code == 404

    resp = await _set_access(client, admin, auditor.id, "view")
    assert resp.status_code == 200
    assert resp.json()["global_project_access"] == "view"

    project = await client.get(f"/api/v1/projects/{pid}", headers=auditor.headers)
    assert project.json()["role"] == "viewer"
    listing = await client.get("/api/v1/projects", headers=auditor.headers)
    assert [p["id"] for p in listing.json()] == [pid]

    post = await client.post(
        "/api/v1/updates", json={"project_id": pid, "content": "hi"}, headers=auditor.headers
    )
    assert post.status_code == 403

    # Projects created later are covered too.
    later = (
        await client.post("/api/v1/projects", json={"name": "Later"}, headers=owner.headers)
    ).json()["id"]
    assert (await client.get(f"/api/v1/projects/{later}", headers=auditor.headers)).status_code == 200


@pytest.mark.asyncio
async def test_global_edit_does_not_grant_owner_operations(
    client: AsyncClient, make_user, admin_emails
):
    admin, owner, lead = (
        await make_user("admin"),
        await make_user("owner"),
        await make_user("lead"),
    )
    pid = (
        await client.post("/api/v1/projects", json={"name": "Ops"}, headers=owner.headers)
    ).json()["id"]
    await _set_access(client, admin, lead.id, "edit")

    post = await client.post(
        "/api/v1/updates", json={"project_id": pid, "content": "hi"}, headers=lead.headers
    )
    assert post.status_code == 201
    assert (await client.delete(f"/api/v1/projects/{pid}", headers=lead.headers)).status_code == 403


@pytest.mark.asyncio
async def test_clearing_global_access(client: AsyncClient, make_user, admin_emails):
    admin, owner, user = (
        await make_user("admin"),
        await make_user("owner"),
        await make_user("user"),
    )
    pid = (
        await client.post("/api/v1/projects", json={"name": "Ops"}, headers=owner.headers)
    ).json()["id"]
    await _set_access(client, admin, user.id, "edit")

    listing = await client.get("/api/v1/users/global-access/list", headers=user.headers)
    assert [u["id"] for u in listing.json()["users"]] == [user.id]

    resp = await _set_access(client, admin, user.id, None)
    assert resp.json()["global_project_access"] == "none"
    assert (await client.get(f"/api/v1/projects/{pid}", headers=user.headers)).status_code == 404

    listing = await client.get("/api/v1/users/global-access/list", headers=user.headers)
    assert listing.json()["users"] == []


@pytest.mark.asyncio
async def test_non_admin_cannot_change_access(client: AsyncClient, make_user, admin_emails):
    user, other = await make_user("user"), await make_user("other")
    resp = await _set_access(client, user, other.id, "edit")
    assert resp.status_code == 403

    resp = await client.post(
        "/api/v1/users", json={"email": "x@example.com"}, headers=user.headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_set_access_for_unknown_user(client: AsyncClient, make_user, admin_emails):
    admin = await make_user("admin")
    assert (await _set_access(client, admin, 4242, "view")).status_code == 404


@pytest.mark.asyncio
async def test_admin_creates_account(client: AsyncClient, make_user, admin_emails):
    admin = await make_user("admin")
    resp = await client.post(
        "/api/v1/users",
        json={"email": "Viewer.One@example.com", "global_project_access": "view"},
        headers=admin.headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "viewer.one@example.com"
    assert body["user"]["global_project_access"] == "view"
    assert len(body["temporary_password"]) == settings.TEMP_PASSWORD_LENGTH

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "viewer.one@example.com", "password": body["temporary_password"]},
    )
    assert login.status_code == 200

    dup = await client.post(
        "/api/v1/users", json={"email": "viewer.one@example.com"}, headers=admin.headers
    )
    assert dup.status_code == 409
