from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Student(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    instructor_id: str = Field(index=True)

    full_name: str
    email: str = ""
    pronoun: str = ""
    major: str = Field(default="", index=True)
    picture_url: Optional[str] = None
    bio: str = ""

    # JSON lists; see classroom_chart.roster for item shapes.
    hobbies_json: str = "[]"
    favorite_media_json: str = "[]"

    created_at: datetime = Field(default_factory=_utc_now)

    def hobbies(self) -> list[str]:
        return json.loads(self.hobbies_json or "[]")

    def favorite_media(self) -> list[dict]:
        return json.loads(self.favorite_media_json or "[]")


class ProfessorNote(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True, foreign_key="student.id")
    instructor_id: str = Field(index=True)
    notes: str

    created_at: datetime = Field(default_factory=_utc_now)


class RoomLayout(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    instructor_id: str = Field(index=True)
    layout_name: str

    # LayoutSnapshot payload (version 1); older rows may hold legacy shapes.
    layout_data: str = "{}"

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: Optional[datetime] = Field(default_factory=_utc_now)

    def snapshot(self) -> dict:
        return json.loads(self.layout_data or "{}")
