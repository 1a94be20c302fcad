"""Effective project role resolution.

A user's role on a project is derived from five independent grant sources,
checked in a fixed order so ties always resolve the same way:

1. ownership (unconditional ``owner``),
2. team membership, for team-scoped projects,
3. the project's collaborator list, for personal projects,
4. the user's account-wide ``global_project_access`` floor,
5. the project's ``all_users_access`` floor,

and finally ``public`` visibility, which yields ``viewer`` only when nothing
else matched. Floors only ever raise a role, never lower it.

:func:`compute_role` is pure over a snapshot of the sources;
:func:`resolve_role` loads that snapshot from the database. Neither raises
for "no access": they return ``None`` and the caller decides between 403
and 404.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.permissions import (
    AccessLevel,
    ProjectRole,
    TeamRole,
    Visibility,
    higher_role,
)
from teamfeed.models.collaborator import ProjectCollaborator
from teamfeed.models.project import Project
from teamfeed.models.team import TeamMember
from teamfeed.models.user import User


def compute_role(
    user: User | None,
    project: Project,
    *,
    team_role: TeamRole | None = None,
    collaborator_role: ProjectRole | None = None,
) -> ProjectRole | None:
    """Resolve *user*'s role on *project* from an already loaded snapshot.

    ``team_role`` is the user's role in ``project.team_id`` (ignored for
    personal projects) and ``collaborator_role`` their entry in the
    project's collaborator list (ignored for team-scoped projects). Pass
    ``user=None`` for anonymous callers.
    """
    if user is not None and project.owner_id == user.id:
        return ProjectRole.OWNER

    role: ProjectRole | None = None
    if user is not None:
        if project.team_id is not None:
            if team_role is not None:
                role = team_role.to_project_role()
        elif collaborator_role is not None:
            role = collaborator_role

        role = higher_role(role, user.global_access.floor_role())
        role = higher_role(role, project.all_users_level.floor_role())

    if role is None and project.visibility == Visibility.PUBLIC.value:
        role = ProjectRole.VIEWER
    return role


async def get_team_role(db: AsyncSession, team_id: int, user_id: int) -> TeamRole | None:
    result = await db.execute(
        select(TeamMember.role).where(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
        )
    )
    role = result.scalar_one_or_none()
    return TeamRole(role) if role is not None else None


async def get_collaborator_role(
    db: AsyncSession, project_id: int, user_id: int
) -> ProjectRole | None:
    result = await db.execute(
        select(ProjectCollaborator.role).where(
            ProjectCollaborator.project_id == project_id,
            ProjectCollaborator.user_id == user_id,
        )
    )
    role = result.scalar_one_or_none()
    return ProjectRole(role) if role is not None else None


async def resolve_role(
    db: AsyncSession,
    user: User | None,
    project: Project,
) -> ProjectRole | None:
    """Load the grant sources for (*user*, *project*) and resolve the role.

    Always reads the current state; results are never cached across calls.
    """
    if user is None:
        return compute_role(None, project)
    if project.owner_id == user.id:
        return ProjectRole.OWNER

    team_role = None
    collaborator_role = None
    if project.team_id is not None:
        team_role = await get_team_role(db, project.team_id, user.id)
    else:
        collaborator_role = await get_collaborator_role(db, project.id, user.id)

    return compute_role(
        user,
        project,
        team_role=team_role,
        collaborator_role=collaborator_role,
    )


async def resolve_roles(
    db: AsyncSession,
    user: User,
    projects: Sequence[Project],
) -> dict[int, ProjectRole | None]:
    """Batch form of :func:`resolve_role` for project listings."""
    if not projects:
        return {}

    project_ids = [p.id for p in projects]
    team_ids = {p.team_id for p in projects if p.team_id is not None}

    collab_result = await db.execute(
        select(ProjectCollaborator.project_id, ProjectCollaborator.role).where(
            ProjectCollaborator.user_id == user.id,
            ProjectCollaborator.project_id.in_(project_ids),
        )
    )
    collaborator_roles = {pid: ProjectRole(role) for pid, role in collab_result.all()}

    team_roles: dict[int, TeamRole] = {}
    if team_ids:
        team_result = await db.execute(
            select(TeamMember.team_id, TeamMember.role).where(
                TeamMember.user_id == user.id,
                TeamMember.team_id.in_(team_ids),
            )
        )
        team_roles = {tid: TeamRole(role) for tid, role in team_result.all()}

    return {
        p.id: compute_role(
            user,
            p,
            team_role=team_roles.get(p.team_id) if p.team_id is not None else None,
            collaborator_role=collaborator_roles.get(p.id),
        )
        for p in projects
    }


def accessible_projects_query(user: User):
    """SELECT for the projects *user* holds a grant on.

    Covers ownership, collaborator entries, team membership and both
    floors. Projects reachable only through ``public`` visibility are not
    listed; they are still readable by id.
    """
    if user.global_access is not AccessLevel.NONE:
        return select(Project)

    collab_project_ids = (
        select(ProjectCollaborator.project_id)
        .where(ProjectCollaborator.user_id == user.id)
        .scalar_subquery()
    )
    member_team_ids = (
        select(TeamMember.team_id)
        .where(TeamMember.user_id == user.id)
        .scalar_subquery()
    )
    return select(Project).where(
        or_(
            Project.owner_id == user.id,
            Project.id.in_(collab_project_ids),
            Project.team_id.in_(member_team_ids),
            Project.all_users_access != AccessLevel.NONE.value,
        )
    )
