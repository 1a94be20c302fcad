from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CategoryValue = Literal["progress", "blocker", "bug", "feature", "milestone", "general"]
MoodValue = Literal["positive", "neutral", "negative", "urgent"]


class UpdateCreate(BaseModel):
    project_id: int
    content: str = Field(min_length=1, max_length=5000)
    category: CategoryValue = "general"
    mood: MoodValue = "neutral"


class UpdateEdit(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    category: Optional[CategoryValue] = None
    mood: Optional[MoodValue] = None


class UpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    author_id: int
    content: str
    category: str
    mood: str
    is_edited: bool
    created_at: datetime
    updated_at: datetime
