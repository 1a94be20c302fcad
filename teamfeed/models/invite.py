from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from teamfeed.core.database import Base
from teamfeed.models.base import as_utc, utcnow


class InviteStatus(str, enum.Enum):
    # Project invites can be declined; team invites can be revoked.
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    REVOKED = "revoked"


_PENDING_ONLY = text("status = 'pending'")


class _InviteColumns:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Lower-cased on write; the invite is bound to this address, not a user id.
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InviteStatus.PENDING.value
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def is_past_expiry(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > as_utc(self.expires_at)


class ProjectInvite(_InviteColumns, Base):
    __tablename__ = "project_invites"
    __table_args__ = (
        Index(
            "uq_project_invites_pending",
            "project_id",
            "email",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invited_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    accepted_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<ProjectInvite id={self.id} project={self.project_id} status={self.status!r}>"


class TeamInvite(_InviteColumns, Base):
    __tablename__ = "team_invites"
    __table_args__ = (
        Index(
            "uq_team_invites_pending",
            "team_id",
            "email",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invited_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    accepted_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<TeamInvite id={self.id} team={self.team_id} status={self.status!r}>"
