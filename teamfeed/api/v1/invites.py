from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import authorize_project, raise_for_invite_outcome
from teamfeed.core.database import get_db
from teamfeed.core.permissions import Operation, ProjectRole
from teamfeed.core.security import get_current_user
from teamfeed.models.project import Project
from teamfeed.models.team import Team
from teamfeed.models.user import User
from teamfeed.schemas.invite import (
    InboxProjectInvite,
    InboxTeamInvite,
    InviteActionResponse,
    InviteInboxResponse,
    InvitePreview,
    ProjectInviteCreate,
    ProjectInviteCreated,
    ProjectInviteResponse,
)
from teamfeed.services import invites as invite_service

router = APIRouter(tags=["invites"])


# ---------------------------------------------------------------------------
# POST /projects/{id}/invite
# ---------------------------------------------------------------------------
@router.post(
    "/projects/{project_id}/invite",
    response_model=ProjectInviteCreated,
    status_code=status.HTTP_201_CREATED,
)
async def invite_to_project(
    project_id: int,
    body: ProjectInviteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectInviteCreated:
    """Invite an email address to a personal project. Editors and owners.

    If the address has no account yet one is provisioned, and its temporary
    password is returned in this response only.
    """
    project, _ = await authorize_project(db, current_user, project_id, Operation.INVITE)
    if project.is_team_scoped:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Team projects are shared through team invites",
        )

    result = await invite_service.create_project_invite(
        db, project, body.email, ProjectRole(body.role), current_user
    )
    await raise_for_invite_outcome(db, result)

    provisioned = result.provisioned_user
    return ProjectInviteCreated(
        invite=ProjectInviteResponse.model_validate(result.invite),
        temporary_password=result.temporary_password,
        username=provisioned.username if provisioned is not None else None,
    )


# ---------------------------------------------------------------------------
# GET /projects/{id}/invites
# ---------------------------------------------------------------------------
@router.get(
    "/projects/{project_id}/invites",
    response_model=List[ProjectInviteResponse],
)
async def list_invites_for_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectInviteResponse]:
    project, _ = await authorize_project(db, current_user, project_id, Operation.INVITE)
    invites = await invite_service.list_project_invites(db, project.id)
    return [ProjectInviteResponse.model_validate(i) for i in invites]


# ---------------------------------------------------------------------------
# GET /project-invites/{token}
# ---------------------------------------------------------------------------
@router.get("/project-invites/{token}", response_model=InvitePreview)
async def preview_project_invite(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> InvitePreview:
    """Show who is invited to what. No authentication required."""
    invite = await invite_service.get_project_invite(db, token)
    if invite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")

    project = await db.get(Project, invite.project_id)
    return InvitePreview(
        target_name=project.name,
        role=invite.role,
        status=invite.status,
        email=invite.email,
        expires_at=invite.expires_at,
    )


# ---------------------------------------------------------------------------
# POST /project-invites/{token}/accept
# ---------------------------------------------------------------------------
@router.post("/project-invites/{token}/accept", response_model=InviteActionResponse)
async def accept_project_invite(
    token: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InviteActionResponse:
    result = await invite_service.accept_project_invite(db, token, current_user)
    await raise_for_invite_outcome(db, result)

    invite = result.invite
    return InviteActionResponse(
        message="Invite accepted",
        status=invite.status,
        project_id=invite.project_id,
        role=invite.role,
    )


# ---------------------------------------------------------------------------
# POST|DELETE /project-invites/{token}/decline
# ---------------------------------------------------------------------------
@router.api_route(
    "/project-invites/{token}/decline",
    methods=["POST", "DELETE"],
    response_model=InviteActionResponse,
)
async def decline_project_invite(
    token: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InviteActionResponse:
    result = await invite_service.decline_project_invite(db, token, current_user)
    await raise_for_invite_outcome(db, result)

    invite = result.invite
    return InviteActionResponse(
        message="Invite declined",
        status=invite.status,
        project_id=invite.project_id,
    )


# ---------------------------------------------------------------------------
# GET /invites
# ---------------------------------------------------------------------------
@router.get("/invites", response_model=InviteInboxResponse)
async def my_pending_invites(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InviteInboxResponse:
    """Pending, unexpired project and team invites sent to the caller's email."""
    project_invites, team_invites = await invite_service.pending_invites_for(
        db, current_user
    )
    return InviteInboxResponse(
        project_invites=[
            InboxProjectInvite(
                token=invite.token,
                project_id=invite.project_id,
                project_name=name,
                role=invite.role,
                expires_at=invite.expires_at,
            )
            for invite, name in project_invites
        ],
        team_invites=[
            InboxTeamInvite(
                token=invite.token,
                team_id=invite.team_id,
                team_name=name,
                role=invite.role,
                expires_at=invite.expires_at,
            )
            for invite, name in team_invites
        ],
    )


# ---------------------------------------------------------------------------
# GET /invites/{token}
# ---------------------------------------------------------------------------
@router.get("/invites/{token}", response_model=InvitePreview)
async def preview_team_invite(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> InvitePreview:
    """Show a team invite. No authentication required."""
    invite = await invite_service.get_team_invite(db, token)
    if invite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")

    team = await db.get(Team, invite.team_id)
    return InvitePreview(
        target_name=team.name,
        role=invite.role,
        status=invite.status,
        email=invite.email,
        expires_at=invite.expires_at,
    )


# ---------------------------------------------------------------------------
# POST /invites/{token}/accept
# ---------------------------------------------------------------------------
@router.post("/invites/{token}/accept", response_model=InviteActionResponse)
async def accept_team_invite(
    token: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InviteActionResponse:
    result = await invite_service.accept_team_invite(db, token, current_user)
    await raise_for_invite_outcome(db, result)

    invite = result.invite
    return InviteActionResponse(
        message="Joined team",
        status=invite.status,
        team_id=invite.team_id,
        role=invite.role,
    )
