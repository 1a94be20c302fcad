from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TeamCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    owner_id: int
    created_at: datetime
    role: Optional[str] = None


class TeamMemberResponse(BaseModel):
    user_id: int
    role: str
    joined_at: datetime
    username: Optional[str] = None
    display_name: Optional[str] = None


class TeamMemberUpdate(BaseModel):
    role: Literal["admin", "member", "viewer"]
