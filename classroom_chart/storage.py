from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol

from .errors import LocalPersistenceError

log = logging.getLogger(__name__)

DRAFT_KEY = "room_layout_draft"


@dataclass(frozen=True)
class NamedLayout:
    id: int
    name: str
    created_at: Optional[datetime]
    snapshot: dict
    updated_at: Optional[datetime] = None

    @property
    def seated(self) -> int:
        return sum(1 for row in self.snapshot.get("seating_chart") or [] for cell in row or [] if cell)


class DraftStore(Protocol):
    def get_draft(self) -> Optional[Any]: ...

    def set_draft(self, snapshot: dict) -> None: ...

    def clear_draft(self) -> None: ...


class LayoutStore(Protocol):
    def list_layouts(self, instructor_id: str) -> list[NamedLayout]: ...

    def create_layout(self, instructor_id: str, name: str, snapshot: dict) -> int: ...

    def update_layout(self, layout_id: int, name: str, snapshot: dict) -> None: ...

    def delete_layout(self, layout_id: int) -> None: ...


class MemoryDraftStore:
    """Single-slot draft kept for the life of the process."""

    def __init__(self) -> None:
        self._slot: Optional[str] = None

    def get_draft(self) -> Optional[Any]:
        return None if self._slot is None else json.loads(self._slot)

    def set_draft(self, snapshot: dict) -> None:
        self._slot = json.dumps(snapshot)

    def clear_draft(self) -> None:
        self._slot = None


class JsonFileDraftStore:
    """
    Draft slot persisted as `<directory>/<key>.json`.

    Returns whatever JSON it finds; deciding whether it is a usable snapshot
    is the caller's job. Unreadable files raise LocalPersistenceError.
    """

    def __init__(self, directory: str | Path, key: str = DRAFT_KEY):
        self.path = Path(directory) / f"{key}.json"

    def get_draft(self) -> Optional[Any]:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise LocalPersistenceError(f"failed to read draft {self.path}: {e}") from e

    def set_draft(self, snapshot: dict) -> None:
        tmp = self.path.with_suffix(".json.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(snapshot, indent=2, sort_keys=True) + "\n", encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise LocalPersistenceError(f"failed to write draft {self.path}: {e}") from e

    def clear_draft(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise LocalPersistenceError(f"failed to remove draft {self.path}: {e}") from e
