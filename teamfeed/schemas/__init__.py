from .user import (
    AccountCreate,
    GlobalAccessUpdate,
    ProvisionedAccountResponse,
    TokenResponse,
    UserCreate,
    UserListResponse,
    UserLogin,
    UserResponse,
)
from .project import ProjectCreate, ProjectResponse, ProjectUpdate, ShareSettingsResponse
from .public import PublicProjectResponse, PublicUpdateResponse
from .collaboration import CollaboratorAdd, CollaboratorResponse, CollaboratorUpdate
from .invite import (
    InviteActionResponse,
    InviteInboxResponse,
    InvitePreview,
    ProjectInviteCreate,
    ProjectInviteCreated,
    ProjectInviteResponse,
    TeamInviteCreate,
    TeamInviteResponse,
)
from .team import (
    TeamCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
    TeamResponse,
    TeamUpdate,
)
from .update import UpdateCreate, UpdateEdit, UpdateResponse

__all__ = [
    # User
    "AccountCreate",
    "GlobalAccessUpdate",
    "ProvisionedAccountResponse",
    "TokenResponse",
    "UserCreate",
    "UserListResponse",
    "UserLogin",
    "UserResponse",
    # Project
    "ProjectCreate",
    "ProjectResponse",
    "ProjectUpdate",
    "ShareSettingsResponse",
    # Public share
    "PublicProjectResponse",
    "PublicUpdateResponse",
    # Collaboration
    "CollaboratorAdd",
    "CollaboratorResponse",
    "CollaboratorUpdate",
    # Invites
    "InviteActionResponse",
    "InviteInboxResponse",
    "InvitePreview",
    "ProjectInviteCreate",
    "ProjectInviteCreated",
    "ProjectInviteResponse",
    "TeamInviteCreate",
    "TeamInviteResponse",
    # Team
    "TeamCreate",
    "TeamMemberResponse",
    "TeamMemberUpdate",
    "TeamResponse",
    "TeamUpdate",
    # Update
    "UpdateCreate",
    "UpdateEdit",
    "UpdateResponse",
]
