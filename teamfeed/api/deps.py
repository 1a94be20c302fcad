"""Authorization enforcement shared by the v1 routers.

Every guarded route calls one of these helpers before touching data. The
role is resolved fresh on each call. The status policy is:

* the target does not exist, or the caller holds no role on it -> 404
  (existence is not confirmed to outsiders);
* the caller holds a role that is too weak for the operation -> 403.
"""

from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.permissions import (
    Operation,
    ProjectRole,
    TeamRole,
    can_perform,
    team_role_at_least,
)
from teamfeed.models.project import Project
from teamfeed.models.team import Team
from teamfeed.models.user import User
from teamfeed.services.access import get_team_role, resolve_role
from teamfeed.services.invites import InviteOutcome, InviteResult

_OPERATION_DENIED = {
    Operation.VIEW: "You do not have access to this project",
    Operation.POST_UPDATE: "Editor access is required to post updates",
    Operation.EDIT_CONTENT: "Editor access is required to edit this project",
    Operation.INVITE: "Editor access is required to invite collaborators",
    Operation.MANAGE_SHARE: "Editor access is required to manage public sharing",
    Operation.MANAGE_COLLABORATORS: "Only the project owner can manage collaborators",
    Operation.CHANGE_ACCESS: "Only the project owner can change access settings",
    Operation.DELETE_PROJECT: "Only the project owner can delete this project",
}


def project_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")


def forbidden(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


async def get_project_or_404(db: AsyncSession, project_id: int) -> Project:
    result = await db.execute(
        select(Project)
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise project_not_found()
    return project


def enforce(operation: Operation, role: ProjectRole | None) -> None:
    """Raise the policy error for *role* attempting *operation*, if any."""
    if role is None:
        raise project_not_found()
    if not can_perform(operation, role):
        raise forbidden(_OPERATION_DENIED[operation])


async def authorize_project(
    db: AsyncSession,
    user: User,
    project_id: int,
    operation: Operation,
) -> tuple[Project, ProjectRole]:
    """Load a project and check *user* may perform *operation* on it."""
    project = await get_project_or_404(db, project_id)
    role = await resolve_role(db, user, project)
    enforce(operation, role)
    return project, role


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

def team_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")


async def authorize_team(
    db: AsyncSession,
    user: User,
    team_id: int,
    minimum: TeamRole = TeamRole.VIEWER,
) -> tuple[Team, TeamRole]:
    """Load a team and check *user* is a member with at least *minimum*."""
    team = await db.get(Team, team_id)
    if team is None:
        raise team_not_found()

    role = await get_team_role(db, team.id, user.id)
    if role is None:
        raise team_not_found()
    if not team_role_at_least(role, minimum):
        raise forbidden(f"Requires {minimum.value} role or higher in this team")
    return team, role


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

async def raise_for_invite_outcome(db: AsyncSession, result: InviteResult) -> None:
    """Translate a refused invite transition into its HTTP error."""
    outcome = result.outcome
    if outcome is InviteOutcome.OK:
        return
    if outcome is InviteOutcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")
    if outcome is InviteOutcome.NOT_PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invite has already been {result.invite.status}",
        )
    if outcome is InviteOutcome.EXPIRED:
        # Keep the lazy flip to "expired"; get_db rolls back on errors.
        await db.commit()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Invite has expired")
    if outcome is InviteOutcome.EMAIL_MISMATCH:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This invite was sent to a different email address",
        )
    if outcome is InviteOutcome.DUPLICATE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A pending invite already exists for this email",
        )
    if outcome is InviteOutcome.ALREADY_MEMBER:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already has access",
        )
    if outcome is InviteOutcome.IS_OWNER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The project owner cannot be invited",
        )
    raise RuntimeError(f"Unhandled invite outcome: {outcome}")
