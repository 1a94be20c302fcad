"""Anonymous views served through public share links.

These are built field by field from an explicit allow-list so that columns
added to the models later never leak through a share link.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from teamfeed.models.project import Project
from teamfeed.models.update import Update


class PublicProjectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    status: str
    color: Optional[str]
    tags: List[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_project(cls, project: Project) -> "PublicProjectResponse":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            status=project.status,
            color=project.color,
            tags=list(project.tags or []),
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class PublicUpdateResponse(BaseModel):
    id: int
    content: str
    category: str
    mood: str
    created_at: datetime
    author_name: Optional[str]

    @classmethod
    def from_update(cls, update: Update) -> "PublicUpdateResponse":
        author = update.author
        return cls(
            id=update.id,
            content=update.content,
            category=update.category,
            mood=update.mood,
            created_at=update.created_at,
            author_name=(author.display_name or author.username) if author else None,
        )
