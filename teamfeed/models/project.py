from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamfeed.core.database import Base
from teamfeed.core.permissions import AccessLevel, Visibility
from teamfeed.models.base import utcnow

if TYPE_CHECKING:
    from teamfeed.models.user import User


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Set for team-scoped projects; personal projects share through collaborators.
    team_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProjectStatus.ACTIVE.value
    )
    visibility: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Visibility.COLLABORATORS.value
    )
    color: Mapped[str | None] = mapped_column(String(7), nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    all_users_access: Mapped[str] = mapped_column(
        String(10), nullable=False, default=AccessLevel.NONE.value
    )
    public_share_token: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    public_share_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", lazy="selectin")

    @property
    def is_team_scoped(self) -> bool:
        return self.team_id is not None

    @property
    def all_users_level(self) -> AccessLevel:
        return AccessLevel(self.all_users_access)

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r}>"
