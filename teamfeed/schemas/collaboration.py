from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr

GrantableRole = Literal["editor", "viewer"]


class CollaboratorAdd(BaseModel):
    email: EmailStr
    role: GrantableRole = "editor"


class CollaboratorUpdate(BaseModel):
    role: GrantableRole


class CollaboratorResponse(BaseModel):
    user_id: int
    role: str
    added_at: Optional[datetime] = None
    username: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
