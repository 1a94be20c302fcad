"""Public share links.

A project carries at most one share token. While ``public_share_enabled``
is set the token grants anonymous read access to an allow-listed view of
the project and its feed. A disabled token resolves exactly like an unknown
one.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.config import settings
from teamfeed.core.security import generate_token
from teamfeed.models.project import Project

logger = logging.getLogger(__name__)


def new_share_token() -> str:
    return generate_token(settings.SHARE_TOKEN_BYTES)


async def _apply(db: AsyncSession, project: Project, **values) -> Project:
    await db.execute(
        update(Project)
        .where(Project.id == project.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(project)
    return project


async def enable_share(db: AsyncSession, project: Project) -> Project:
    """Turn sharing on, keeping an existing token if the project has one."""
    project = await _apply(
        db,
        project,
        public_share_token=func.coalesce(Project.public_share_token, new_share_token()),
        public_share_enabled=True,
    )
    logger.info("Public share enabled for project=%s", project.id)
    return project


async def disable_share(db: AsyncSession, project: Project) -> Project:
    """Turn sharing off; the token is kept but no longer resolves."""
    project = await _apply(db, project, public_share_enabled=False)
    logger.info("Public share disabled for project=%s", project.id)
    return project


async def regenerate_share(db: AsyncSession, project: Project) -> Project:
    """Issue a fresh token and enable sharing, invalidating every old link."""
    previous = project.public_share_token
    token = new_share_token()
    while token == previous:
        token = new_share_token()

    project = await _apply(db, project, public_share_token=token, public_share_enabled=True)
    logger.info("Public share token regenerated for project=%s", project.id)
    return project


async def resolve_by_token(db: AsyncSession, token: str) -> Project | None:
    result = await db.execute(
        select(Project)
        .where(
            Project.public_share_token == token,
            Project.public_share_enabled.is_(True),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
