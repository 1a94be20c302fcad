from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import authorize_project, enforce
from teamfeed.core.database import get_db
from teamfeed.core.permissions import Operation, ProjectRole
from teamfeed.core.security import get_current_user
from teamfeed.models.collaborator import ProjectCollaborator
from teamfeed.models.invite import ProjectInvite
from teamfeed.models.project import Project
from teamfeed.models.update import Update
from teamfeed.models.user import User
from teamfeed.schemas.project import (
    ACCESS_FIELDS,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from teamfeed.services.access import accessible_projects_query, resolve_roles

router = APIRouter(prefix="/projects", tags=["projects"])

_NULLABLE_FIELDS = frozenset({"description", "color"})


def project_response(project: Project, role: ProjectRole | None) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    response.role = role.value if role is not None else None
    return response


# ---------------------------------------------------------------------------
# POST /projects
# ---------------------------------------------------------------------------
@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    body: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Create a personal project owned by the current user."""

    project = Project(
        owner_id=current_user.id,
        name=body.name,
        description=body.description,
        visibility=body.visibility,
        color=body.color,
        tags=body.tags,
        all_users_access=body.all_users_access,
    )
    db.add(project)
    await db.flush()
    await db.refresh(project)
    return project_response(project, ProjectRole.OWNER)


# ---------------------------------------------------------------------------
# GET /projects
# ---------------------------------------------------------------------------
@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectResponse]:
    """List every project the current user holds a grant on."""

    result = await db.execute(
        accessible_projects_query(current_user).order_by(Project.updated_at.desc())
    )
    projects = list(result.scalars().all())
    roles = await resolve_roles(db, current_user, projects)
    return [
        project_response(project, roles[project.id])
        for project in projects
        if roles[project.id] is not None
    ]


# ---------------------------------------------------------------------------
# GET /projects/{id}
# ---------------------------------------------------------------------------
@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Get a single project together with the caller's resolved role."""
    project, role = await authorize_project(db, current_user, project_id, Operation.VIEW)
    return project_response(project, role)


# ---------------------------------------------------------------------------
# PATCH /projects/{id}
# ---------------------------------------------------------------------------
@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    body: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Update project content; visibility and all-users access need the owner."""

    project, role = await authorize_project(
        db, current_user, project_id, Operation.EDIT_CONTENT
    )

    update_data = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field in _NULLABLE_FIELDS
    }
    if ACCESS_FIELDS & update_data.keys():
        enforce(Operation.CHANGE_ACCESS, role)

    for field, value in update_data.items():
        setattr(project, field, value)

    await db.flush()
    await db.refresh(project)
    return project_response(project, role)


# ---------------------------------------------------------------------------
# DELETE /projects/{id}
# ---------------------------------------------------------------------------
@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a project. Owner only."""

    project, _ = await authorize_project(
        db, current_user, project_id, Operation.DELETE_PROJECT
    )
    for model in (Update, ProjectInvite, ProjectCollaborator):
        await db.execute(
            delete(model)
            .where(model.project_id == project.id)
            .execution_options(synchronize_session=False)
        )
    await db.delete(project)
    await db.flush()
