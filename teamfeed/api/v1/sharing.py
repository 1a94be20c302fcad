from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import authorize_project
from teamfeed.core.database import get_db
from teamfeed.core.permissions import Operation
from teamfeed.core.security import get_current_user
from teamfeed.models.project import Project
from teamfeed.models.user import User
from teamfeed.schemas.project import ShareSettingsResponse
from teamfeed.services import sharing

router = APIRouter(prefix="/projects", tags=["sharing"])


# ---------------------------------------------------------------------------
# GET /projects/{id}/public-share
# ---------------------------------------------------------------------------
@router.get("/{project_id}/public-share", response_model=ShareSettingsResponse)
async def get_share_settings(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Project:
    project, _ = await authorize_project(
        db, current_user, project_id, Operation.MANAGE_SHARE
    )
    return project


# ---------------------------------------------------------------------------
# POST /projects/{id}/public-share
# ---------------------------------------------------------------------------
@router.post("/{project_id}/public-share", response_model=ShareSettingsResponse)
async def enable_public_share(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Project:
    """Enable the share link, reusing the existing token if there is one."""
    project, _ = await authorize_project(
        db, current_user, project_id, Operation.MANAGE_SHARE
    )
    return await sharing.enable_share(db, project)


# ---------------------------------------------------------------------------
# DELETE /projects/{id}/public-share
# ---------------------------------------------------------------------------
@router.delete("/{project_id}/public-share", response_model=ShareSettingsResponse)
async def disable_public_share(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Project:
    project, _ = await authorize_project(
        db, current_user, project_id, Operation.MANAGE_SHARE
    )
    return await sharing.disable_share(db, project)


# ---------------------------------------------------------------------------
# POST /projects/{id}/public-share/regenerate
# ---------------------------------------------------------------------------
@router.post(
    "/{project_id}/public-share/regenerate",
    response_model=ShareSettingsResponse,
)
async def regenerate_public_share(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Project:
    """Rotate the share token. Links using the previous token stop working."""
    project, _ = await authorize_project(
        db, current_user, project_id, Operation.MANAGE_SHARE
    )
    return await sharing.regenerate_share(db, project)
