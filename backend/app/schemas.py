from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from classroom_chart.roster import MediaItem


class StudentCreate(BaseModel):
    full_name: str
    email: str = ""
    pronoun: str = ""
    major: str = ""
    picture_url: Optional[str] = None
    hobbies: list[str] = Field(default_factory=list)
    favorite_media: list[MediaItem] = Field(default_factory=list)
    bio: str = ""


class LayoutWrite(BaseModel):
    name: str
    # Opaque to the store; validated against LayoutSnapshot before it is written.
    snapshot: dict = Field(default_factory=dict)


class LayoutOut(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    seated: int = 0
    snapshot: dict
