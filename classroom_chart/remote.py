from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import httpx

from .errors import RemotePersistenceError
from .roster import StudentProfile
from .storage import NamedLayout


def _check(resp: httpx.Response) -> Any:
    if resp.status_code >= 400:
        try:
            body = resp.json()
        except ValueError:
            body = resp.text
        detail = body.get("detail", body) if isinstance(body, dict) else body
        raise RemotePersistenceError(f"{resp.request.method} {resp.request.url.path} -> {resp.status_code}: {detail}")
    return resp.json()


def _dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # pydantic writes UTC as a trailing Z, which fromisoformat only accepts from 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class HttpLayoutStore:
    """Named-layout store backed by the backend's /instructors/{id}/layouts routes."""

    def __init__(self, client: httpx.Client, instructor_id: str):
        self.client = client
        self.instructor_id = instructor_id

    def _base(self, instructor_id: Optional[str] = None) -> str:
        return f"/instructors/{instructor_id or self.instructor_id}/layouts"

    def list_layouts(self, instructor_id: str) -> list[NamedLayout]:
        rows = _check(self.client.get(self._base(instructor_id)))
        return [
            NamedLayout(
                id=int(r["id"]),
                name=r["name"],
                created_at=_dt(r.get("created_at")),
                updated_at=_dt(r.get("updated_at")),
                snapshot=r.get("snapshot") or {},
            )
            for r in rows
        ]

    def create_layout(self, instructor_id: str, name: str, snapshot: dict) -> int:
        data = _check(self.client.post(self._base(instructor_id), json={"name": name, "snapshot": snapshot}))
        return int(data["id"])

    def update_layout(self, layout_id: int, name: str, snapshot: dict) -> None:
        _check(self.client.put(f"{self._base()}/{layout_id}", json={"name": name, "snapshot": snapshot}))

    def delete_layout(self, layout_id: int) -> None:
        _check(self.client.delete(f"{self._base()}/{layout_id}"))


class HttpRosterSource:
    def __init__(self, client: httpx.Client):
        self.client = client

    def fetch_roster(self, instructor_id: str) -> list[StudentProfile]:
        rows = _check(self.client.get(f"/instructors/{instructor_id}/roster"))
        return [StudentProfile.model_validate(r) for r in rows]
