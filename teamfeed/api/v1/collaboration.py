from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import authorize_project, forbidden, get_project_or_404, project_not_found
from teamfeed.core.database import get_db
from teamfeed.core.permissions import (
    Operation,
    ProjectRole,
    can_remove_collaborator,
)
from teamfeed.core.security import get_current_user
from teamfeed.models.collaborator import ProjectCollaborator
from teamfeed.models.project import Project
from teamfeed.models.user import User
from teamfeed.schemas.collaboration import (
    CollaboratorAdd,
    CollaboratorResponse,
    CollaboratorUpdate,
)
from teamfeed.services.access import resolve_role
from teamfeed.services.accounts import get_user_by_email
from teamfeed.services.membership import (
    add_collaborator,
    remove_collaborator,
    set_collaborator_role,
)

router = APIRouter(prefix="/projects", tags=["collaboration"])


def _reject_team_scoped(project: Project) -> None:
    if project.is_team_scoped:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Team projects are shared through team membership",
        )


async def _load_collaborator(
    db: AsyncSession, project_id: int, user_id: int
) -> ProjectCollaborator | None:
    result = await db.execute(
        select(ProjectCollaborator)
        .where(
            ProjectCollaborator.project_id == project_id,
            ProjectCollaborator.user_id == user_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _collaborator_response(collab: ProjectCollaborator) -> CollaboratorResponse:
    return CollaboratorResponse(
        user_id=collab.user_id,
        role=collab.role,
        added_at=collab.added_at,
        username=collab.user.username,
        display_name=collab.user.display_name,
        email=collab.user.email,
    )


# ---------------------------------------------------------------------------
# GET /projects/{id}/collaborators
# ---------------------------------------------------------------------------
@router.get(
    "/{project_id}/collaborators",
    response_model=List[CollaboratorResponse],
)
async def list_collaborators(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CollaboratorResponse]:
    """List the owner followed by every collaborator of a project."""
    project, _ = await authorize_project(db, current_user, project_id, Operation.VIEW)
    _reject_team_scoped(project)

    owner = project.owner
    members = [
        CollaboratorResponse(
            user_id=owner.id,
            role=ProjectRole.OWNER.value,
            added_at=project.created_at,
            username=owner.username,
            display_name=owner.display_name,
            email=owner.email,
        )
    ]

    result = await db.execute(
        select(ProjectCollaborator)
        .where(ProjectCollaborator.project_id == project.id)
        .order_by(ProjectCollaborator.added_at)
        .execution_options(populate_existing=True)
    )
    members.extend(_collaborator_response(c) for c in result.scalars().all())
    return members


# ---------------------------------------------------------------------------
# POST /projects/{id}/collaborators
# ---------------------------------------------------------------------------
@router.post(
    "/{project_id}/collaborators",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_project_collaborator(
    project_id: int,
    body: CollaboratorAdd,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CollaboratorResponse:
    """Add an existing user as a collaborator by email. Editors and owners."""
    project, _ = await authorize_project(db, current_user, project_id, Operation.INVITE)
    _reject_team_scoped(project)

    target_user = await get_user_by_email(db, body.email)
    if target_user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found with that email",
        )

    if target_user.id == project.owner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The project owner already has full access",
        )

    added = await add_collaborator(
        db,
        project.id,
        target_user.id,
        ProjectRole(body.role),
        added_by=current_user.id,
    )
    if not added:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a collaborator",
        )

    collab = await _load_collaborator(db, project.id, target_user.id)
    return _collaborator_response(collab)


# ---------------------------------------------------------------------------
# PATCH /projects/{id}/collaborators/{user_id}
# ---------------------------------------------------------------------------
@router.patch(
    "/{project_id}/collaborators/{user_id}",
    response_model=CollaboratorResponse,
)
async def update_collaborator_role(
    project_id: int,
    user_id: int,
    body: CollaboratorUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CollaboratorResponse:
    """Promote or demote a collaborator. Owner only."""
    project, _ = await authorize_project(
        db, current_user, project_id, Operation.MANAGE_COLLABORATORS
    )
    _reject_team_scoped(project)

    if not await set_collaborator_role(db, project.id, user_id, ProjectRole(body.role)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collaborator not found")

    collab = await _load_collaborator(db, project.id, user_id)
    return _collaborator_response(collab)


# ---------------------------------------------------------------------------
# DELETE /projects/{id}/collaborators/{user_id}
# ---------------------------------------------------------------------------
@router.delete(
    "/{project_id}/collaborators/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_project_collaborator(
    project_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Remove a collaborator. Owner can remove anyone; collaborators can remove themselves."""
    project = await get_project_or_404(db, project_id)
    role = await resolve_role(db, current_user, project)
    if role is None:
        raise project_not_found()
    _reject_team_scoped(project)
    if not can_remove_collaborator(role, current_user.id, user_id):
        raise forbidden("Only the owner can remove other collaborators")

    if not await remove_collaborator(db, project.id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collaborator not found")
