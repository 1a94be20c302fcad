"""Tests for collaborator management and the 404/403 enforcement policy."""

import pytest
from httpx import AsyncClient


async def _create_project(client: AsyncClient, owner, **extra) -> int:
    resp = await client.post(
        "/api/v1/projects", json={"name": "Shared", **extra}, headers=owner.headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def _add(client: AsyncClient, pid: int, actor, target, role="editor"):
    return await client.post(
        f"/api/v1/projects/{pid}/collaborators",
        json={"email": target.email, "role": role},
        headers=actor.headers,
    )


@pytest.mark.asyncio
async def test_owner_adds_collaborator(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    resp = await _add(client, pid, owner, bob, role="viewer")
    assert resp.status_code == 201
    assert resp.json()["user_id"] == bob.id
    assert resp.json()["role"] == "viewer"

    listing = await client.get(
        f"/api/v1/projects/{pid}/collaborators", headers=bob.headers
    )
    assert listing.status_code == 200
    assert [(c["user_id"], c["role"]) for c in listing.json()] == [
        (owner.id, "owner"),
        (bob.id, "viewer"),
    ]

    project = await client.get(f"/api/v1/projects/{pid}", headers=bob.headers)
    assert project.json()["role"] == "viewer"


@pytest.mark.asyncio
async def test_add_collaborator_twice_conflicts(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    assert (await _add(client, pid, owner, bob)).status_code == 201
    resp = await _add(client, pid, owner, bob, role="viewer")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cannot_add_owner_or_unknown_email(client: AsyncClient, make_user):
    owner = await make_user("owner")
    pid = await _create_project(client, owner)

    assert (await _add(client, pid, owner, owner)).status_code == 400

    resp = await client.post(
        f"/api/v1/projects/{pid}/collaborators",
        json={"email": "ghost@example.com", "role": "editor"},
        headers=owner.headers,
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_owner_role_cannot_be_granted(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)

    resp = await _add(client, pid, owner, bob, role="owner")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_editor_can_add_but_not_change_roles(client: AsyncClient, make_user):
    owner = await make_user("owner")
    editor, carol = await make_user("editor"), await make_user("carol")
    pid = await _create_project(client, owner)
    await _add(client, pid, owner, editor, role="editor")

    assert (await _add(client, pid, editor, carol, role="viewer")).status_code == 201

    resp = await client.patch(
        f"/api/v1/projects/{pid}/collaborators/{carol.id}",
        json={"role": "editor"},
        headers=editor.headers,
    )
    assert resp.status_code == 403

    resp = await client.delete(
        f"/api/v1/projects/{pid}/collaborators/{carol.id}", headers=editor.headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_viewer_cannot_add_collaborators(client: AsyncClient, make_user):
    owner, viewer, carol = (
        await make_user("owner"),
        await make_user("viewer"),
        await make_user("carol"),
    )
    pid = await _create_project(client, owner)
    await _add(client, pid, owner, viewer, role="viewer")

    resp = await _add(client, pid, viewer, carol)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Forbidden"


@pytest.mark.asyncio
async def test_owner_promotes_and_removes(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    await _add(client, pid, owner, bob, role="viewer")

    resp = await client.patch(
        f"/api/v1/projects/{pid}/collaborators/{bob.id}",
        json={"role": "editor"},
        headers=owner.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "editor"

    resp = await client.delete(
        f"/api/v1/projects/{pid}/collaborators/{bob.id}", headers=owner.headers
    )
    assert resp.status_code == 204

    resp = await client.get(f"/api/v1/projects/{pid}", headers=bob.headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_viewer_can_remove_themself(client: AsyncClient, make_user):
    owner, bob = await make_user("owner"), await make_user("bob")
    pid = await _create_project(client, owner)
    await _add(client, pid, owner, bob, role="viewer")

    resp = await client.delete(
        f"/api/v1/projects/{pid}/collaborators/{bob.id}", headers=bob.headers
    )
    assert resp.status_code == 204

    again = await client.delete(
        f"/api/v1/projects/{pid}/collaborators/{bob.id}", headers=owner.headers
    )
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_outsider_gets_404_everywhere(client: AsyncClient, make_user):
    owner, outsider = await make_user("owner"), await make_user("outsider")
    pid = await _create_project(client, owner)

    for method, path in [
        ("GET", f"/api/v1/projects/{pid}"),
        ("GET", f"/api/v1/projects/{pid}/collaborators"),
        ("DELETE", f"/api/v1/projects/{pid}"),
        ("GET", f"/api/v1/projects/{pid}/feed"),
        ("POST", f"/api/v1/projects/{pid}/public-share"),
    ]:
        resp = await client.request(method, path, headers=outsider.headers)
        assert resp.status_code == 404, (method, path, resp.text)


@pytest.mark.asyncio
async def test_editor_cannot_change_access_or_delete(client: AsyncClient, make_user):
    owner, editor = await make_user("owner"), await make_user("editor")
    pid = await _create_project(client, owner)
    await _add(client, pid, owner, editor, role="editor")

    resp = await client.patch(
        f"/api/v1/projects/{pid}", json={"name": "Renamed"}, headers=editor.headers
    )
    assert resp.status_code == 200

    resp = await client.patch(
        f"/api/v1/projects/{pid}",
        json={"all_users_access": "edit"},
        headers=editor.headers,
    )
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/projects/{pid}", headers=editor.headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_all_users_edit_floor_allows_patch_not_delete(
    client: AsyncClient, make_user
):
    owner, stranger = await make_user("owner"), await make_user("stranger")
    pid = await _create_project(client, owner)

    resp = await client.patch(
        f"/api/v1/projects/{pid}",
        json={"all_users_access": "edit"},
        headers=owner.headers,
    )
    assert resp.status_code == 200

    resp = await client.patch(
        f"/api/v1/projects/{pid}",
        json={"name": "Renamed by anyone"},
        headers=stranger.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed by anyone"
    assert resp.json()["role"] == "editor"

    resp = await client.delete(f"/api/v1/projects/{pid}", headers=stranger.headers)
    assert resp.status_code == 403

    still_there = await client.get(f"/api/v1/projects/{pid}", headers=owner.headers)
    assert still_there.status_code == 200


@pytest.mark.asyncio
async def test_viewer_cannot_edit_project(client: AsyncClient, make_user):
    owner, viewer = await make_user("owner"), await make_user("viewer")
    pid = await _create_project(client, owner)
    await _add(client, pid, owner, viewer, role="viewer")

    resp = await client.patch(
        f"/api/v1/projects/{pid}", json={"name": "Nope"}, headers=viewer.headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_all_users_access_floor_lists_project(client: AsyncClient, make_user):
    owner, anyone = await make_user("owner"), await make_user("anyone")
    pid = await _create_project(client, owner, all_users_access="view")

    listing = await client.get("/api/v1/projects", headers=anyone.headers)
    assert [(p["id"], p["role"]) for p in listing.json()] == [(pid, "viewer")]


@pytest.mark.asyncio
async def test_public_project_readable_but_not_listed(client: AsyncClient, make_user):
    owner, anyone = await make_user("owner"), await make_user("anyone")
    pid = await _create_project(client, owner, visibility="public")

    resp = await client.get(f"/api/v1/projects/{pid}", headers=anyone.headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "viewer"

    listing = await client.get("/api/v1/projects", headers=anyone.headers)
    assert listing.json() == []
