"""Invite lifecycle for project and team invites.

State machine (per invite)::

    pending --accept-->  accepted
    pending --decline--> declined      (project invites)
    pending --revoke-->  revoked       (team invites)
    pending --[now > expires_at]--> expired

Expiry is detected lazily whenever an invite is read or acted on. Every
transition is a conditional ``UPDATE ... WHERE status = 'pending'`` and is
only considered done when it changed exactly one row, so concurrent
accept/decline/revoke calls on one invite cannot both succeed.

Functions here never raise for a refused transition; they return an
:class:`InviteResult` whose ``outcome`` the routes map onto HTTP errors.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamfeed.core.config import settings
from teamfeed.core.permissions import ProjectRole, TeamRole
from teamfeed.core.security import generate_token
from teamfeed.models.base import utcnow
from teamfeed.models.invite import InviteStatus, ProjectInvite, TeamInvite
from teamfeed.models.project import Project
from teamfeed.models.team import Team
from teamfeed.models.user import User
from teamfeed.services.access import get_collaborator_role, get_team_role
from teamfeed.services.accounts import get_user_by_email, normalize_email, provision_user
from teamfeed.services.membership import (
    add_collaborator,
    add_team_member,
    insert_ignoring_conflicts,
)

logger = logging.getLogger(__name__)

AnyInvite = Union[ProjectInvite, TeamInvite]


class InviteOutcome(str, enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NOT_PENDING = "not_pending"
    EXPIRED = "expired"
    EMAIL_MISMATCH = "email_mismatch"
    DUPLICATE = "duplicate"
    ALREADY_MEMBER = "already_member"
    IS_OWNER = "is_owner"


@dataclass
class InviteResult:
    outcome: InviteOutcome
    invite: AnyInvite | None = None
    # Only set when the invite provisioned a brand-new account.
    temporary_password: str | None = None
    provisioned_user: User | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is InviteOutcome.OK


def new_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(days=settings.INVITE_EXPIRY_DAYS)


def new_invite_token() -> str:
    return generate_token(settings.INVITE_TOKEN_BYTES)


# ---------------------------------------------------------------------------
# Shared state-machine primitives
# ---------------------------------------------------------------------------

async def _load(db: AsyncSession, model, *criteria) -> AnyInvite | None:
    result = await db.execute(
        select(model).where(*criteria).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _compare_and_set_status(
    db: AsyncSession,
    model,
    invite: AnyInvite,
    to_status: InviteStatus,
    *,
    require_unexpired: bool = False,
    **values,
) -> bool:
    """Move *invite* out of ``pending``; ``True`` only if this call did it."""
    stmt = update(model).where(
        model.id == invite.id,
        model.status == InviteStatus.PENDING.value,
    )
    if require_unexpired:
        stmt = stmt.where(model.expires_at >= utcnow())
    result = await db.execute(
        stmt.values(status=to_status.value, **values).execution_options(
            synchronize_session=False
        )
    )
    await db.refresh(invite)
    return result.rowcount == 1


async def lazily_expire(db: AsyncSession, model, invite: AnyInvite) -> AnyInvite:
    """Flip a pending invite past its deadline to ``expired``."""
    if invite.status == InviteStatus.PENDING.value and invite.is_past_expiry():
        if await _compare_and_set_status(db, model, invite, InviteStatus.EXPIRED):
            logger.info("%s %s expired", model.__name__, invite.id)
    return invite


async def _expire_stale(db: AsyncSession, model, *criteria) -> None:
    await db.execute(
        update(model)
        .where(
            *criteria,
            model.status == InviteStatus.PENDING.value,
            model.expires_at < utcnow(),
        )
        .values(status=InviteStatus.EXPIRED.value)
        .execution_options(synchronize_session=False)
    )


async def _check_actionable(
    db: AsyncSession, model, token: str, user: User
) -> InviteResult:
    """Preconditions shared by accept and decline, first failure wins."""
    invite = await _load(db, model, model.token == token)
    if invite is None:
        return InviteResult(InviteOutcome.NOT_FOUND)
    if invite.status != InviteStatus.PENDING.value:
        return InviteResult(InviteOutcome.NOT_PENDING, invite)
    if invite.is_past_expiry():
        await lazily_expire(db, model, invite)
        return InviteResult(InviteOutcome.EXPIRED, invite)
    if normalize_email(user.email) != invite.email:
        return InviteResult(InviteOutcome.EMAIL_MISMATCH, invite)
    return InviteResult(InviteOutcome.OK, invite)


async def _finish(
    db: AsyncSession,
    model,
    invite: AnyInvite,
    to_status: InviteStatus,
    **values,
) -> InviteResult:
    won = await _compare_and_set_status(
        db, model, invite, to_status, require_unexpired=True, **values
    )
    if won:
        return InviteResult(InviteOutcome.OK, invite)
    # Lost a race with another transition, or the deadline passed in between.
    if invite.status == InviteStatus.PENDING.value:
        await lazily_expire(db, model, invite)
        return InviteResult(InviteOutcome.EXPIRED, invite)
    return InviteResult(InviteOutcome.NOT_PENDING, invite)


async def _insert_pending(db: AsyncSession, model, **values) -> AnyInvite | None:
    now = utcnow()
    stmt = (
        insert_ignoring_conflicts(db, model)
        .values(
            token=new_invite_token(),
            status=InviteStatus.PENDING.value,
            expires_at=new_expiry(now),
            created_at=now,
            **values,
        )
        .returning(model.__table__.c.id)
    )
    invite_id = (await db.execute(stmt)).scalar_one_or_none()
    if invite_id is None:
        return None
    return await db.get(model, invite_id)


# ---------------------------------------------------------------------------
# Project invites
# ---------------------------------------------------------------------------

async def create_project_invite(
    db: AsyncSession,
    project: Project,
    email: str,
    role: ProjectRole,
    invited_by: User,
    *,
    provision: bool | None = None,
) -> InviteResult:
    """Issue a pending invite for *email* on a personal project.

    When no account exists for the address and provisioning is enabled, an
    account is created first and its temporary password is returned on the
    result.
    """
    email = normalize_email(email)
    if provision is None:
        provision = settings.AUTO_PROVISION_INVITEES

    owner_email = await db.scalar(select(User.email).where(User.id == project.owner_id))
    if email == owner_email:
        return InviteResult(InviteOutcome.IS_OWNER)

    invitee = await get_user_by_email(db, email)
    if invitee is not None:
        if await get_collaborator_role(db, project.id, invitee.id) is not None:
            return InviteResult(InviteOutcome.ALREADY_MEMBER)

    await _expire_stale(
        db,
        ProjectInvite,
        ProjectInvite.project_id == project.id,
        ProjectInvite.email == email,
    )
    existing = await _load(
        db,
        ProjectInvite,
        ProjectInvite.project_id == project.id,
        ProjectInvite.email == email,
        ProjectInvite.status == InviteStatus.PENDING.value,
    )
    if existing is not None:
        return InviteResult(InviteOutcome.DUPLICATE, existing)

    temporary_password = None
    if invitee is None and provision:
        invitee, temporary_password = await provision_user(db, email)

    invite = await _insert_pending(
        db,
        ProjectInvite,
        project_id=project.id,
        invited_by=invited_by.id,
        email=email,
        role=role.value,
    )
    if invite is None:
        # Another request created the pending invite concurrently.
        return InviteResult(InviteOutcome.DUPLICATE)

    logger.info(
        "Project invite %s created: project=%s role=%s by user=%s",
        invite.id, project.id, role.value, invited_by.id,
    )
    return InviteResult(
        InviteOutcome.OK,
        invite,
        temporary_password=temporary_password,
        provisioned_user=invitee if temporary_password else None,
    )


async def get_project_invite(db: AsyncSession, token: str) -> ProjectInvite | None:
    invite = await _load(db, ProjectInvite, ProjectInvite.token == token)
    if invite is None:
        return None
    return await lazily_expire(db, ProjectInvite, invite)


async def accept_project_invite(db: AsyncSession, token: str, user: User) -> InviteResult:
    check = await _check_actionable(db, ProjectInvite, token, user)
    if not check.ok:
        return check

    result = await _finish(
        db,
        ProjectInvite,
        check.invite,
        InviteStatus.ACCEPTED,
        accepted_by=user.id,
        accepted_at=utcnow(),
    )
    if not result.ok:
        return result

    invite = result.invite
    project = await db.get(Project, invite.project_id)
    if project is not None and project.owner_id != user.id:
        await add_collaborator(
            db,
            project.id,
            user.id,
            ProjectRole(invite.role),
            added_by=invite.invited_by,
        )
    logger.info("Project invite %s accepted by user=%s", invite.id, user.id)
    return result


async def decline_project_invite(db: AsyncSession, token: str, user: User) -> InviteResult:
    check = await _check_actionable(db, ProjectInvite, token, user)
    if not check.ok:
        return check

    result = await _finish(db, ProjectInvite, check.invite, InviteStatus.DECLINED)
    if result.ok:
        logger.info("Project invite %s declined by user=%s", result.invite.id, user.id)
    return result


async def list_project_invites(db: AsyncSession, project_id: int) -> list[ProjectInvite]:
    await _expire_stale(db, ProjectInvite, ProjectInvite.project_id == project_id)
    result = await db.execute(
        select(ProjectInvite)
        .where(ProjectInvite.project_id == project_id)
        .order_by(ProjectInvite.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Team invites
# ---------------------------------------------------------------------------

async def create_team_invite(
    db: AsyncSession,
    team: Team,
    email: str,
    role: TeamRole,
    invited_by: User,
) -> InviteResult:
    email = normalize_email(email)

    invitee = await get_user_by_email(db, email)
    if invitee is not None and await get_team_role(db, team.id, invitee.id) is not None:
        return InviteResult(InviteOutcome.ALREADY_MEMBER)

    await _expire_stale(
        db,
        TeamInvite,
        TeamInvite.team_id == team.id,
        TeamInvite.email == email,
    )
    existing = await _load(
        db,
        TeamInvite,
        TeamInvite.team_id == team.id,
        TeamInvite.email == email,
        TeamInvite.status == InviteStatus.PENDING.value,
    )
    if existing is not None:
        return InviteResult(InviteOutcome.DUPLICATE, existing)

    invite = await _insert_pending(
        db,
        TeamInvite,
        team_id=team.id,
        invited_by=invited_by.id,
        email=email,
        role=role.value,
    )
    if invite is None:
        return InviteResult(InviteOutcome.DUPLICATE)

    logger.info(
        "Team invite %s created: team=%s role=%s by user=%s",
        invite.id, team.id, role.value, invited_by.id,
    )
    return InviteResult(InviteOutcome.OK, invite)


async def get_team_invite(db: AsyncSession, token: str) -> TeamInvite | None:
    invite = await _load(db, TeamInvite, TeamInvite.token == token)
    if invite is None:
        return None
    return await lazily_expire(db, TeamInvite, invite)


async def accept_team_invite(db: AsyncSession, token: str, user: User) -> InviteResult:
    check = await _check_actionable(db, TeamInvite, token, user)
    if not check.ok:
        return check

    result = await _finish(
        db,
        TeamInvite,
        check.invite,
        InviteStatus.ACCEPTED,
        accepted_by=user.id,
        accepted_at=utcnow(),
    )
    if not result.ok:
        return result

    invite = result.invite
    await add_team_member(db, invite.team_id, user.id, TeamRole(invite.role))
    logger.info("Team invite %s accepted by user=%s", invite.id, user.id)
    return result


async def revoke_team_invite(db: AsyncSession, team_id: int, invite_id: int) -> InviteResult:
    invite = await _load(
        db, TeamInvite, TeamInvite.id == invite_id, TeamInvite.team_id == team_id
    )
    if invite is None:
        return InviteResult(InviteOutcome.NOT_FOUND)
    if invite.status != InviteStatus.PENDING.value:
        return InviteResult(InviteOutcome.NOT_PENDING, invite)
    if invite.is_past_expiry():
        await lazily_expire(db, TeamInvite, invite)
        return InviteResult(InviteOutcome.EXPIRED, invite)

    if await _compare_and_set_status(db, TeamInvite, invite, InviteStatus.REVOKED):
        logger.info("Team invite %s revoked", invite.id)
        return InviteResult(InviteOutcome.OK, invite)
    return InviteResult(InviteOutcome.NOT_PENDING, invite)


async def resend_team_invite(db: AsyncSession, team_id: int, invite_id: int) -> InviteResult:
    """Issue a fresh token and deadline for a pending invite.

    The old token stops resolving as soon as this commits. Email, role and
    id are unchanged. Pending invites whose deadline already passed can be
    resent as long as nothing has flipped them to ``expired`` yet.
    """
    invite = await _load(
        db, TeamInvite, TeamInvite.id == invite_id, TeamInvite.team_id == team_id
    )
    if invite is None:
        return InviteResult(InviteOutcome.NOT_FOUND)

    result = await db.execute(
        update(TeamInvite)
        .where(
            TeamInvite.id == invite.id,
            TeamInvite.status == InviteStatus.PENDING.value,
        )
        .values(token=new_invite_token(), expires_at=new_expiry())
        .execution_options(synchronize_session=False)
    )
    await db.refresh(invite)
    if result.rowcount != 1:
        return InviteResult(InviteOutcome.NOT_PENDING, invite)

    logger.info("Team invite %s resent", invite.id)
    return InviteResult(InviteOutcome.OK, invite)


async def list_team_invites(db: AsyncSession, team_id: int) -> list[TeamInvite]:
    await _expire_stale(db, TeamInvite, TeamInvite.team_id == team_id)
    result = await db.execute(
        select(TeamInvite)
        .where(TeamInvite.team_id == team_id)
        .order_by(TeamInvite.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Invitee inbox
# ---------------------------------------------------------------------------

async def pending_invites_for(
    db: AsyncSession, user: User
) -> tuple[list[tuple[ProjectInvite, str]], list[tuple[TeamInvite, str]]]:
    """Unexpired pending invites addressed to *user*'s email, with target names."""
    email = normalize_email(user.email)
    now = utcnow()

    project_rows = await db.execute(
        select(ProjectInvite, Project.name)
        .join(Project, Project.id == ProjectInvite.project_id)
        .where(
            ProjectInvite.email == email,
            ProjectInvite.status == InviteStatus.PENDING.value,
            ProjectInvite.expires_at > now,
        )
        .order_by(ProjectInvite.created_at.desc())
    )
    team_rows = await db.execute(
        select(TeamInvite, Team.name)
        .join(Team, Team.id == TeamInvite.team_id)
        .where(
            TeamInvite.email == email,
            TeamInvite.status == InviteStatus.PENDING.value,
            TeamInvite.expires_at > now,
        )
        .order_by(TeamInvite.created_at.desc())
    )
    return (
        [(invite, name) for invite, name in project_rows.all()],
        [(invite, name) for invite, name in team_rows.all()],
    )
