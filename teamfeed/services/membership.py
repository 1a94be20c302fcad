"""Atomic collaborator and team-member set operations.

Each mutation is one statement keyed by (parent id, user id), so two
concurrent invite acceptances on the same project cannot lose each other's
writes. Adds are idempotent: adding someone who is already present is a
no-op reported as ``False``.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.permissions import ProjectRole, TeamRole
from teamfeed.models.base import utcnow
from teamfeed.models.collaborator import ProjectCollaborator
from teamfeed.models.team import TeamMember

logger = logging.getLogger(__name__)


def insert_ignoring_conflicts(db: AsyncSession, model):
    """Return an ``INSERT ... ON CONFLICT DO NOTHING`` for the session's dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model.__table__).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite_insert(model.__table__).on_conflict_do_nothing()
    raise RuntimeError(f"Unsupported database dialect: {dialect}")


# ---------------------------------------------------------------------------
# Project collaborators
# ---------------------------------------------------------------------------

async def add_collaborator(
    db: AsyncSession,
    project_id: int,
    user_id: int,
    role: ProjectRole,
    *,
    added_by: int | None = None,
) -> bool:
    """Insert a collaborator entry unless one already exists."""
    stmt = (
        insert_ignoring_conflicts(db, ProjectCollaborator)
        .values(
            project_id=project_id,
            user_id=user_id,
            role=role.value,
            added_by=added_by,
            added_at=utcnow(),
        )
        .returning(ProjectCollaborator.__table__.c.id)
    )
    result = await db.execute(stmt)
    inserted = result.scalar_one_or_none() is not None
    if inserted:
        logger.info(
            "Collaborator added: project=%s user=%s role=%s",
            project_id, user_id, role.value,
        )
    return inserted


async def set_collaborator_role(
    db: AsyncSession,
    project_id: int,
    user_id: int,
    role: ProjectRole,
) -> bool:
    result = await db.execute(
        update(ProjectCollaborator)
        .where(
            ProjectCollaborator.project_id == project_id,
            ProjectCollaborator.user_id == user_id,
        )
        .values(role=role.value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def remove_collaborator(db: AsyncSession, project_id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(ProjectCollaborator)
        .where(
            ProjectCollaborator.project_id == project_id,
            ProjectCollaborator.user_id == user_id,
        )
        .execution_options(synchronize_session=False)
    )
    removed = result.rowcount == 1
    if removed:
        logger.info("Collaborator removed: project=%s user=%s", project_id, user_id)
    return removed


# ---------------------------------------------------------------------------
# Team members
# ---------------------------------------------------------------------------

async def add_team_member(
    db: AsyncSession,
    team_id: int,
    user_id: int,
    role: TeamRole,
) -> bool:
    """Insert a team membership unless one already exists."""
    stmt = (
        insert_ignoring_conflicts(db, TeamMember)
        .values(
            team_id=team_id,
            user_id=user_id,
            role=role.value,
            joined_at=utcnow(),
        )
        .returning(TeamMember.__table__.c.id)
    )
    result = await db.execute(stmt)
    inserted = result.scalar_one_or_none() is not None
    if inserted:
        logger.info(
            "Team member added: team=%s user=%s role=%s", team_id, user_id, role.value
        )
    return inserted


async def set_team_member_role(
    db: AsyncSession,
    team_id: int,
    user_id: int,
    role: TeamRole,
) -> bool:
    result = await db.execute(
        update(TeamMember)
        .where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        .values(role=role.value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def remove_team_member(db: AsyncSession, team_id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(TeamMember)
        .where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    removed = result.rowcount == 1
    if removed:
        logger.info("Team member removed: team=%s user=%s", team_id, user_id)
    return removed
