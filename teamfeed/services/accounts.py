"""Account creation helpers, including invite-driven auto-provisioning.

Inviting an email with no account may create one on the spot with a random
password. The plain password is handed back exactly once to the inviter so
it can be passed on; only its hash is stored.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.config import settings
from teamfeed.core.permissions import AccessLevel
from teamfeed.core.security import generate_random_password, hash_password
from teamfeed.models.user import User

logger = logging.getLogger(__name__)

_USERNAME_STRIP = re.compile(r"[^a-zA-Z0-9]")


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def username_exists(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.scalar_one_or_none() is not None


async def unique_username_for(db: AsyncSession, email: str) -> str:
    """Derive a free username from the local part of *email*."""
    base = _USERNAME_STRIP.sub("", email.split("@", 1)[0]).lower()
    if len(base) < 3:
        base = base.ljust(3, "x")

    username = base
    counter = 1
    while await username_exists(db, username):
        username = f"{base}{counter}"
        counter += 1
    return username


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    username: str,
    password: str,
    display_name: str | None = None,
    global_access: AccessLevel = AccessLevel.NONE,
) -> User:
    email = normalize_email(email)
    user = User(
        email=email,
        username=username.lower(),
        display_name=display_name or username,
        hashed_password=hash_password(password),
        global_project_access=global_access.value,
        is_admin=email in {normalize_email(e) for e in settings.ADMIN_EMAILS},
    )
    db.add(user)
    await db.flush()
    return user


async def provision_user(
    db: AsyncSession,
    email: str,
    *,
    global_access: AccessLevel = AccessLevel.NONE,
) -> tuple[User, str]:
    """Create an account for *email* with a random password.

    Returns the new user and the plain password, which is not stored.
    """
    password = generate_random_password()
    username = await unique_username_for(db, email)
    user = await create_user(
        db,
        email=email,
        username=username,
        password=password,
        display_name=email.split("@", 1)[0],
        global_access=global_access,
    )
    logger.info("Provisioned account user=%s username=%s", user.id, user.username)
    return user, password
