from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Literal, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .chart import SeatingChart


class MediaItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    year: Optional[str] = None
    kind: Literal["movie", "tv"] = "movie"
    poster: Optional[str] = None
    rating: Optional[float] = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_str(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v


class Note(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    created_at: Optional[datetime] = None


class StudentProfile(BaseModel):
    id: str
    full_name: str
    email: str = ""
    pronoun: str = ""
    major: str = ""
    picture_url: Optional[str] = None
    hobbies: list[str] = Field(default_factory=list)
    favorite_media: list[MediaItem] = Field(default_factory=list)
    bio: str = ""
    notes: list[Note] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v

    @property
    def first_name(self) -> str:
        parts = self.full_name.split()
        return parts[0] if parts else ""

    @property
    def last_name(self) -> str:
        parts = self.full_name.split()
        return parts[-1] if len(parts) > 1 else ""


class StudentRef(StudentProfile):
    """Frozen copy of a roster record taken when the student is seated."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def capture(cls, profile: StudentProfile) -> "StudentRef":
        if isinstance(profile, StudentRef):
            return profile
        return cls.model_validate(profile.model_dump())


class RosterSource(Protocol):
    def fetch_roster(self, instructor_id: str) -> list[StudentProfile]: ...


def matches_search(student: StudentProfile, search: str) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    return (
        needle in student.full_name.lower()
        or needle in student.major.lower()
        or any(needle in hobby.lower() for hobby in student.hobbies)
    )


def available_students(
    roster: Iterable[StudentProfile],
    chart: "SeatingChart",
    *,
    search: str = "",
    major: str = "",
) -> list[StudentProfile]:
    """Roster minus everyone already seated, narrowed by search text and major."""
    seated = chart.seated_ids()
    out = []
    for student in roster:
        if student.id in seated:
            continue
        if major and student.major != major:
            continue
        if not matches_search(student, search):
            continue
        out.append(student)
    return out


def majors(roster: Sequence[StudentProfile]) -> list[str]:
    return sorted({s.major for s in roster if s.major})
