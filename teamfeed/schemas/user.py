from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8)
    display_name: Optional[str] = Field(default=None, max_length=100)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    display_name: Optional[str]
    global_project_access: str
    is_admin: bool
    created_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AccountCreate(BaseModel):
    """Administrator-created account with a generated password."""

    email: EmailStr
    global_project_access: Optional[Literal["view", "edit", "none"]] = None


class ProvisionedAccountResponse(BaseModel):
    user: UserResponse
    temporary_password: str


class GlobalAccessUpdate(BaseModel):
    access: Optional[Literal["view", "edit", "none"]] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]
