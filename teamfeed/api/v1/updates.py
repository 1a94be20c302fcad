from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import authorize_project, enforce, forbidden, get_project_or_404
from teamfeed.core.config import settings
from teamfeed.core.database import get_db
from teamfeed.core.permissions import Operation, ProjectRole
from teamfeed.core.security import get_current_user
from teamfeed.models.update import Update
from teamfeed.models.user import User
from teamfeed.schemas.update import UpdateCreate, UpdateEdit, UpdateResponse
from teamfeed.services.access import resolve_role

router = APIRouter(tags=["updates"])


def update_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Update not found")


async def _load_update(
    db: AsyncSession, update_id: int, user: User
) -> tuple[Update, ProjectRole]:
    """Load an update and the caller's role on its project.

    Updates on projects the caller cannot see are reported as missing.
    """
    result = await db.execute(
        select(Update)
        .where(Update.id == update_id)
        .execution_options(populate_existing=True)
    )
    update = result.scalar_one_or_none()
    if update is None:
        raise update_not_found()

    project = await get_project_or_404(db, update.project_id)
    role = await resolve_role(db, user, project)
    if role is None:
        raise update_not_found()
    return update, role


# ---------------------------------------------------------------------------
# POST /updates
# ---------------------------------------------------------------------------
@router.post(
    "/updates",
    response_model=UpdateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_update(
    body: UpdateCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Update:
    """Post an update to a project feed. Editors and owners."""
    project, _ = await authorize_project(
        db, current_user, body.project_id, Operation.POST_UPDATE
    )

    update = Update(
        project_id=project.id,
        author_id=current_user.id,
        content=body.content,
        category=body.category,
        mood=body.mood,
    )
    db.add(update)
    await db.flush()
    await db.refresh(update)
    return update


# ---------------------------------------------------------------------------
# GET /projects/{id}/feed
# ---------------------------------------------------------------------------
@router.get("/projects/{project_id}/feed", response_model=List[UpdateResponse])
async def project_feed(
    project_id: int,
    limit: int = Query(settings.PUBLIC_FEED_LIMIT, ge=1, le=settings.PUBLIC_FEED_LIMIT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[Update]:
    """Newest-first page of a project's updates."""
    project, _ = await authorize_project(db, current_user, project_id, Operation.VIEW)
    result = await db.execute(
        select(Update)
        .where(Update.project_id == project.id)
        .order_by(Update.created_at.desc(), Update.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# PATCH /updates/{id}
# ---------------------------------------------------------------------------
@router.patch("/updates/{update_id}", response_model=UpdateResponse)
async def edit_update(
    update_id: int,
    body: UpdateEdit,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Update:
    """Edit an update. Only its author, and only while still an editor."""
    update, role = await _load_update(db, update_id, current_user)
    if update.author_id != current_user.id:
        raise forbidden("Only the author can edit this update")
    enforce(Operation.POST_UPDATE, role)

    changes = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None
    }
    for field, value in changes.items():
        setattr(update, field, value)
    if changes:
        update.is_edited = True

    await db.flush()
    await db.refresh(update)
    return update


# ---------------------------------------------------------------------------
# DELETE /updates/{id}
# ---------------------------------------------------------------------------
@router.delete("/updates/{update_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_update(
    update_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an update. Its author or the project owner."""
    update, role = await _load_update(db, update_id, current_user)
    if update.author_id != current_user.id and role is not ProjectRole.OWNER:
        raise forbidden("Only the author or the project owner can delete this update")

    await db.delete(update)
    await db.flush()
