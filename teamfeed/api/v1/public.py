from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.config import settings
from teamfeed.core.database import get_db
from teamfeed.models.project import Project
from teamfeed.models.update import Update
from teamfeed.schemas.public import PublicProjectResponse, PublicUpdateResponse
from teamfeed.services.sharing import resolve_by_token

router = APIRouter(prefix="/public", tags=["public"])


async def _shared_project(db: AsyncSession, token: str) -> Project:
    project = await resolve_by_token(db, token)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shared project not found",
        )
    return project


# ---------------------------------------------------------------------------
# GET /public/projects/{token}
# ---------------------------------------------------------------------------
@router.get("/projects/{token}", response_model=PublicProjectResponse)
async def get_shared_project(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> PublicProjectResponse:
    """Read-only project view for anyone holding an enabled share link."""
    project = await _shared_project(db, token)
    return PublicProjectResponse.from_project(project)


# ---------------------------------------------------------------------------
# GET /public/projects/{token}/feed
# ---------------------------------------------------------------------------
@router.get("/projects/{token}/feed", response_model=List[PublicUpdateResponse])
async def get_shared_feed(
    token: str,
    limit: int = Query(settings.PUBLIC_FEED_LIMIT, ge=1, le=settings.PUBLIC_FEED_LIMIT),
    db: AsyncSession = Depends(get_db),
) -> list[PublicUpdateResponse]:
    project = await _shared_project(db, token)
    result = await db.execute(
        select(Update)
        .where(Update.project_id == project.id)
        .order_by(Update.created_at.desc(), Update.id.desc())
        .limit(limit)
    )
    return [PublicUpdateResponse.from_update(u) for u in result.scalars().all()]
