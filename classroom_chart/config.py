from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    api_url: str
    instructor_id: str
    home: Path
    occupant_policy: str
    log_level: str
    timeout_s: float = 10.0

    @property
    def export_dir(self) -> Path:
        return self.home / "exports"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.environ.get("CLASSROOM_SEATING_API_URL", "http://127.0.0.1:8000"),
            instructor_id=os.environ.get("CLASSROOM_SEATING_INSTRUCTOR", ""),
            home=Path(os.environ.get("CLASSROOM_SEATING_HOME", Path.home() / ".classroom_seating")),
            occupant_policy=os.environ.get("CLASSROOM_SEATING_OCCUPANTS", "frozen"),
            log_level=os.environ.get("CLASSROOM_SEATING_LOG_LEVEL", "WARNING"),
        )
