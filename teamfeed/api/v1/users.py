from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.api.deps import forbidden
from teamfeed.core.database import get_db
from teamfeed.core.permissions import AccessLevel
from teamfeed.core.security import get_current_user
from teamfeed.models.user import User
from teamfeed.schemas.user import (
    AccountCreate,
    GlobalAccessUpdate,
    ProvisionedAccountResponse,
    UserListResponse,
    UserResponse,
)
from teamfeed.services.accounts import get_user_by_email, provision_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


async def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise forbidden("Administrator access required")
    return current_user


# ---------------------------------------------------------------------------
# POST /users
# ---------------------------------------------------------------------------
@router.post(
    "",
    response_model=ProvisionedAccountResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_account(
    body: AccountCreate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> ProvisionedAccountResponse:
    """Create an account by email with a generated password.

    The password is only ever returned in this response.
    """
    if await get_user_by_email(db, body.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    access = AccessLevel(body.global_project_access or AccessLevel.NONE.value)
    try:
        user, password = await provision_user(db, body.email, global_access=access)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )
    await db.refresh(user)
    logger.info("Account user=%s created by admin=%s", user.id, admin.id)
    return ProvisionedAccountResponse(
        user=UserResponse.model_validate(user),
        temporary_password=password,
    )


# ---------------------------------------------------------------------------
# GET /users/global-access/list
# ---------------------------------------------------------------------------
@router.get("/global-access/list", response_model=UserListResponse)
async def list_global_access(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    """Users holding account-wide view or edit access."""
    result = await db.execute(
        select(User)
        .where(User.global_project_access != AccessLevel.NONE.value)
        .order_by(User.email)
    )
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()]
    )


# ---------------------------------------------------------------------------
# PUT /users/{id}/global-access
# ---------------------------------------------------------------------------
@router.put("/{user_id}/global-access", response_model=UserResponse)
async def set_global_access(
    user_id: int,
    body: GlobalAccessUpdate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Grant or clear a user's access to every project. ``null`` clears it."""
    access = AccessLevel(body.access or AccessLevel.NONE.value)
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(global_project_access=access.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user = (
        await db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    logger.info(
        "Global access for user=%s set to %s by admin=%s", user.id, access.value, admin.id
    )
    return UserResponse.model_validate(user)
