from __future__ import annotations

import json
import logging
from typing import Any, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .chart import SeatingChart
from .errors import SnapshotError
from .geometry import Point, RowConfig, default_rows, nearest_seat
from .roster import StudentRef
from .viewport import DEFAULT_ZOOM, Viewport, clamp_zoom

log = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Free-placement nodes were 80px avatars positioned by their top-left corner.
LEGACY_NODE_HALF = 40.0

_LEGACY_KEYS = {
    "seatingChart": "seating_chart",
    "layoutName": "layout_name",
    "compactMode": "compact_mode",
    "canvasOffset": "offset",
    "layoutId": "layout_id",
}

_LEGACY_STUDENT_KEYS = {
    "profile_picture_url": "picture_url",
    "about_me": "bio",
    "favorite_movies": "favorite_media",
    "professor_notes": "notes",
}


class Offset(BaseModel):
    x: float = 0.0
    y: float = 0.0


class LayoutSnapshot(BaseModel):
    """
    Persisted unit for both the local draft and named layouts.

    Version 1 is the only shape written. `layout_id` is only meaningful in the
    draft, where it remembers which named layout the draft came from.
    """

    version: Literal[1] = SCHEMA_VERSION
    seating_chart: list[list[Optional[StudentRef]]] = Field(default_factory=list)
    zoom: int = DEFAULT_ZOOM
    offset: Offset = Field(default_factory=Offset)
    layout_name: str = ""
    compact_mode: bool = False
    layout_id: Optional[int] = None

    @field_validator("zoom", mode="before")
    @classmethod
    def _clamp_zoom(cls, v: Any) -> int:
        if v is None:
            return DEFAULT_ZOOM
        return clamp_zoom(int(v))

    @classmethod
    def capture(
        cls,
        chart: SeatingChart,
        viewport: Viewport,
        *,
        layout_name: str = "",
        compact_mode: bool = False,
        layout_id: Optional[int] = None,
    ) -> "LayoutSnapshot":
        return cls(
            seating_chart=[list(row) for row in chart.rows],
            zoom=viewport.zoom,
            offset=Offset(x=viewport.offset.x, y=viewport.offset.y),
            layout_name=layout_name,
            compact_mode=compact_mode,
            layout_id=layout_id,
        )

    @classmethod
    def parse(cls, payload: Union[str, bytes, Mapping[str, Any]], layout: Optional[Sequence[RowConfig]] = None) -> "LayoutSnapshot":
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise SnapshotError(f"snapshot is not valid JSON: {e}") from e
        if not isinstance(payload, Mapping):
            raise SnapshotError("snapshot must be a JSON object")

        version = payload.get("version")
        if version is None:
            try:
                payload = migrate_legacy(payload, tuple(layout) if layout is not None else default_rows())
            except (TypeError, ValueError, AttributeError, KeyError) as e:
                raise SnapshotError(f"cannot migrate legacy snapshot: {e}") from e
        elif version != SCHEMA_VERSION:
            raise SnapshotError(f"unsupported snapshot version: {version!r}")

        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise SnapshotError(f"invalid snapshot: {e.error_count()} error(s), first: {e.errors()[0]['msg']}") from e

    def to_payload(self, *, include_layout_id: bool = True) -> dict:
        exclude = None if include_layout_id else {"layout_id"}
        return self.model_dump(mode="json", exclude=exclude)

    def to_json(self) -> str:
        return self.model_dump_json()

    def build_chart(self, layout: Sequence[RowConfig]) -> SeatingChart:
        return SeatingChart.from_cells(layout, self.seating_chart)

    def build_viewport(self) -> Viewport:
        return Viewport(self.zoom, Point(self.offset.x, self.offset.y))

    def seated_count(self) -> int:
        return sum(1 for row in self.seating_chart for cell in row if cell is not None)


def legacy_student(data: Mapping[str, Any]) -> dict:
    out = {_LEGACY_STUDENT_KEYS.get(k, k): v for k, v in data.items()}
    out["favorite_media"] = [
        {**{k: v for k, v in m.items() if k != "type"}, "kind": "tv" if m.get("type") == "tv" else "movie"}
        for m in out.get("favorite_media") or []
        if isinstance(m, Mapping)
    ]
    out["notes"] = [
        {"text": n.get("notes", n.get("text", "")), "created_at": n.get("created_at")}
        for n in out.get("notes") or []
        if isinstance(n, Mapping)
    ]
    return out


def migrate_legacy(data: Mapping[str, Any], layout: Sequence[RowConfig]) -> dict:
    """
    Upgrade an unversioned payload to version 1.

    Old payloads used camelCase keys, sometimes carried furniture, and the
    oldest stored free-placed students with pixel positions instead of seats.
    """
    out: dict[str, Any] = {"version": SCHEMA_VERSION}
    for key, value in data.items():
        out[_LEGACY_KEYS.get(key, key)] = value

    if out.pop("furniture", None) is not None:
        log.info("dropping furniture from legacy layout snapshot")
    for key in ("selectedMajor", "searchTerm"):
        out.pop(key, None)

    cells = out.get("seating_chart") or []
    out["seating_chart"] = [
        [legacy_student(c) if isinstance(c, Mapping) else None for c in (row or [])] for row in cells
    ]

    placed = out.pop("students", None) or out.pop("placedStudents", None)
    out.pop("placedStudents", None)
    if placed:
        out["seating_chart"] = _snap_free_placement(placed, layout, out["seating_chart"])
    return out


def _snap_free_placement(placed: Sequence[Any], layout: Sequence[RowConfig], cells: list) -> list:
    grid: list[list[Optional[dict]]] = []
    for r, cfg in enumerate(layout):
        row = list(cells[r]) if r < len(cells) else []
        grid.append((row + [None] * cfg.seat_count)[: cfg.seat_count])
    occupied = {(r, s) for r, row in enumerate(grid) for s, c in enumerate(row) if c is not None}

    for item in placed:
        if not isinstance(item, Mapping) or not isinstance(item.get("data"), Mapping):
            continue
        pos = item.get("position") or {}
        center = Point(float(pos.get("x", 0.0)) + LEGACY_NODE_HALF, float(pos.get("y", 0.0)) + LEGACY_NODE_HALF)
        cell = nearest_seat(layout, center, occupied=occupied)
        if cell is None:
            log.warning("no free seat left for legacy student %s", item["data"].get("id"))
            continue
        grid[cell[0]][cell[1]] = legacy_student(item["data"])
        occupied.add(cell)
    return grid
