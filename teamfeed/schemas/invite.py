from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr


class ProjectInviteCreate(BaseModel):
    email: EmailStr
    role: Literal["editor", "viewer"] = "editor"


class TeamInviteCreate(BaseModel):
    email: EmailStr
    role: Literal["admin", "member", "viewer"] = "member"


class ProjectInviteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    email: str
    role: str
    token: str
    status: str
    expires_at: datetime
    invited_by: int
    accepted_by: Optional[int]
    accepted_at: Optional[datetime]
    created_at: datetime


class TeamInviteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    email: str
    role: str
    token: str
    status: str
    expires_at: datetime
    invited_by: int
    accepted_by: Optional[int]
    accepted_at: Optional[datetime]
    created_at: datetime


class ProjectInviteCreated(BaseModel):
    invite: ProjectInviteResponse
    # Present only when the invite created a new account; shown once.
    temporary_password: Optional[str] = None
    username: Optional[str] = None


class InvitePreview(BaseModel):
    """What a token holder may see before signing in."""

    target_name: str
    role: str
    status: str
    email: str
    expires_at: datetime


class InboxProjectInvite(BaseModel):
    token: str
    project_id: int
    project_name: str
    role: str
    expires_at: datetime


class InboxTeamInvite(BaseModel):
    token: str
    team_id: int
    team_name: str
    role: str
    expires_at: datetime


class InviteInboxResponse(BaseModel):
    project_invites: List[InboxProjectInvite]
    team_invites: List[InboxTeamInvite]


class InviteActionResponse(BaseModel):
    message: str
    status: str
    project_id: Optional[int] = None
    team_id: Optional[int] = None
    role: Optional[str] = None
