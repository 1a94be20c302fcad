from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

VisibilityValue = Literal["public", "private", "collaborators"]
AccessValue = Literal["view", "edit", "none"]
StatusValue = Literal["active", "paused", "completed", "archived"]

_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class ProjectCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    visibility: VisibilityValue = "collaborators"
    color: Optional[str] = Field(default=None, pattern=_COLOR_PATTERN)
    tags: List[str] = Field(default_factory=list, max_length=10)
    all_users_access: AccessValue = "none"


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[StatusValue] = None
    color: Optional[str] = Field(default=None, pattern=_COLOR_PATTERN)
    tags: Optional[List[str]] = Field(default=None, max_length=10)
    # Access-control fields; owner only.
    visibility: Optional[VisibilityValue] = None
    all_users_access: Optional[AccessValue] = None


ACCESS_FIELDS = frozenset({"visibility", "all_users_access"})


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    team_id: Optional[int]
    name: str
    description: Optional[str]
    status: str
    visibility: str
    color: Optional[str]
    tags: List[str]
    all_users_access: str
    public_share_enabled: bool
    created_at: datetime
    updated_at: datetime
    role: Optional[str] = None


class ShareSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_share_enabled: bool
    public_share_token: Optional[str]
