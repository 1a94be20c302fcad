from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import authorize_team, forbidden, raise_for_invite_outcome
from teamfeed.api.v1.projects import project_response
from teamfeed.core.database import get_db
from teamfeed.core.permissions import ProjectRole, TeamRole, team_role_at_least
from teamfeed.core.security import get_current_user
from teamfeed.models.collaborator import ProjectCollaborator
from teamfeed.models.invite import ProjectInvite, TeamInvite
from teamfeed.models.project import Project
from teamfeed.models.team import Team, TeamMember
from teamfeed.models.update import Update
from teamfeed.models.user import User
from teamfeed.schemas.invite import TeamInviteCreate, TeamInviteResponse
from teamfeed.schemas.project import ProjectCreate, ProjectResponse
from teamfeed.schemas.team import (
    TeamCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
    TeamResponse,
    TeamUpdate,
)
from teamfeed.services import invites as invite_service
from teamfeed.services.access import resolve_roles
from teamfeed.services.membership import (
    add_team_member,
    remove_team_member,
    set_team_member_role,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams", tags=["teams"])


def team_response(team: Team, role: TeamRole) -> TeamResponse:
    response = TeamResponse.model_validate(team)
    response.role = role.value
    return response


def member_response(member: TeamMember) -> TeamMemberResponse:
    return TeamMemberResponse(
        user_id=member.user_id,
        role=member.role,
        joined_at=member.joined_at,
        username=member.user.username,
        display_name=member.user.display_name,
    )


def member_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")


# ---------------------------------------------------------------------------
# POST /teams
# ---------------------------------------------------------------------------
@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamResponse:
    """Create a team. The creator becomes its owner and first admin."""
    team = Team(name=body.name, description=body.description, owner_id=current_user.id)
    db.add(team)
    await db.flush()
    await add_team_member(db, team.id, current_user.id, TeamRole.ADMIN)
    await db.refresh(team)
    return team_response(team, TeamRole.ADMIN)


# ---------------------------------------------------------------------------
# GET /teams
# ---------------------------------------------------------------------------
@router.get("", response_model=List[TeamResponse])
async def list_teams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamResponse]:
    result = await db.execute(
        select(Team, TeamMember.role)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == current_user.id)
        .order_by(Team.created_at.desc())
    )
    return [team_response(team, TeamRole(role)) for team, role in result.all()]


# ---------------------------------------------------------------------------
# GET /teams/{id}
# ---------------------------------------------------------------------------
@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamResponse:
    team, role = await authorize_team(db, current_user, team_id)
    return team_response(team, role)


# ---------------------------------------------------------------------------
# PATCH /teams/{id}
# ---------------------------------------------------------------------------
@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    body: TeamUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamResponse:
    """Rename or re-describe a team. Admins only."""
    team, role = await authorize_team(db, current_user, team_id, TeamRole.ADMIN)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)
    for field, value in update_data.items():
        setattr(team, field, value)

    await db.flush()
    await db.refresh(team)
    return team_response(team, role)


# ---------------------------------------------------------------------------
# DELETE /teams/{id}
# ---------------------------------------------------------------------------
@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a team with its projects, their updates and the team's invites. Owner only."""
    team, _ = await authorize_team(db, current_user, team_id)
    if team.owner_id != current_user.id:
        raise forbidden("Only the team owner can delete the team")

    team_projects = select(Project.id).where(Project.team_id == team.id)
    for model in (Update, ProjectInvite, ProjectCollaborator):
        await db.execute(
            delete(model)
            .where(model.project_id.in_(team_projects))
            .execution_options(synchronize_session=False)
        )
    await db.execute(
        delete(Project)
        .where(Project.team_id == team.id)
        .execution_options(synchronize_session=False)
    )
    for model in (TeamInvite, TeamMember):
        await db.execute(
            delete(model)
            .where(model.team_id == team.id)
            .execution_options(synchronize_session=False)
        )
    await db.delete(team)
    await db.flush()
    logger.info("Team=%s deleted by owner=%s", team_id, current_user.id)


# ---------------------------------------------------------------------------
# GET /teams/{id}/members
# ---------------------------------------------------------------------------
@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_members(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamMemberResponse]:
    team, _ = await authorize_team(db, current_user, team_id)
    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.team_id == team.id)
        .order_by(TeamMember.joined_at)
        .execution_options(populate_existing=True)
    )
    return [member_response(m) for m in result.scalars().all()]


# ---------------------------------------------------------------------------
# PATCH /teams/{id}/members/{user_id}
# ---------------------------------------------------------------------------
@router.patch("/{team_id}/members/{user_id}", response_model=TeamMemberResponse)
async def update_member_role(
    team_id: int,
    user_id: int,
    body: TeamMemberUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamMemberResponse:
    """Change a member's team role. Admins only; the owner stays admin."""
    team, _ = await authorize_team(db, current_user, team_id, TeamRole.ADMIN)
    if user_id == team.owner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The team owner's role cannot be changed",
        )

    if not await set_team_member_role(db, team.id, user_id, TeamRole(body.role)):
        raise member_not_found()

    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.team_id == team.id, TeamMember.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return member_response(result.scalar_one())


# ---------------------------------------------------------------------------
# DELETE /teams/{id}/members/{user_id}
# ---------------------------------------------------------------------------
@router.delete("/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    team_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Remove a member. Admins can remove anyone but the owner; members can remove themselves."""
    team, role = await authorize_team(db, current_user, team_id)
    if user_id != current_user.id and not team_role_at_least(role, TeamRole.ADMIN):
        raise forbidden("Only team admins can remove other members")
    if user_id == team.owner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The team owner cannot be removed",
        )

    if not await remove_team_member(db, team.id, user_id):
        raise member_not_found()


# ---------------------------------------------------------------------------
# POST /teams/{id}/leave
# ---------------------------------------------------------------------------
@router.post("/{team_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    team, _ = await authorize_team(db, current_user, team_id)
    if team.owner_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The team owner cannot leave the team",
        )
    await remove_team_member(db, team.id, current_user.id)


# ---------------------------------------------------------------------------
# POST /teams/{id}/projects
# ---------------------------------------------------------------------------
@router.post(
    "/{team_id}/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_team_project(
    team_id: int,
    body: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Create a project shared with the whole team. Admins and members."""
    team, _ = await authorize_team(db, current_user, team_id, TeamRole.MEMBER)

    project = Project(
        owner_id=current_user.id,
        team_id=team.id,
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
# GET /teams/{id}/projects
# ---------------------------------------------------------------------------
@router.get("/{team_id}/projects", response_model=List[ProjectResponse])
async def list_team_projects(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectResponse]:
    team, _ = await authorize_team(db, current_user, team_id)
    result = await db.execute(
        select(Project)
        .where(Project.team_id == team.id)
        .order_by(Project.updated_at.desc())
    )
    projects = list(result.scalars().all())
    roles = await resolve_roles(db, current_user, projects)
    return [
        project_response(project, roles[project.id])
        for project in projects
        if roles[project.id] is not None
    ]


# ---------------------------------------------------------------------------
# POST /teams/{id}/invites
# ---------------------------------------------------------------------------
@router.post(
    "/{team_id}/invites",
    response_model=TeamInviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_to_team(
    team_id: int,
    body: TeamInviteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamInviteResponse:
    team, _ = await authorize_team(db, current_user, team_id, TeamRole.ADMIN)
    result = await invite_service.create_team_invite(
        db, team, body.email, TeamRole(body.role), current_user
    )
    await raise_for_invite_outcome(db, result)
    return TeamInviteResponse.model_validate(result.invite)


# ---------------------------------------------------------------------------
# GET /teams/{id}/invites
# ---------------------------------------------------------------------------
@router.get("/{team_id}/invites", response_model=List[TeamInviteResponse])
async def list_invites_for_team(
    team_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamInviteResponse]:
    team, _ = await authorize_team(db, current_user, team_id, TeamRole.ADMIN)
    invites = await invite_service.list_team_invites(db, team.id)
    return [TeamInviteResponse.model_validate(i) for i in invites]


# ---------------------------------------------------------------------------
# DELETE /teams/{id}/invites/{invite_id}
# ---------------------------------------------------------------------------
@router.delete("/{team_id}/invites/{invite_id}", response_model=TeamInviteResponse)
async def revoke_invite(
    team_id: int,
    invite_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamInviteResponse:
    """Revoke a pending invite; its token stops working immediately."""
    team, _ = await authorize_team(db, current_user, team_id, TeamRole.ADMIN)
    result = await invite_service.revoke_team_invite(db, team.id, invite_id)
    await raise_for_invite_outcome(db, result)
    return TeamInviteResponse.model_validate(result.invite)


# ---------------------------------------------------------------------------
# POST /teams/{id}/invites/{invite_id}/resend
# ---------------------------------------------------------------------------
@router.post("/{team_id}/invites/{invite_id}/resend", response_model=TeamInviteResponse)
async def resend_invite(
    team_id: int,
    invite_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamInviteResponse:
    """Reissue a pending invite with a new token and a fresh deadline."""
    team, _ = await authorize_team(db, current_user, team_id, TeamRole.ADMIN)
    result = await invite_service.resend_team_invite(db, team.id, invite_id)
    await raise_for_invite_outcome(db, result)
    return TeamInviteResponse.model_validate(result.invite)
