from __future__ import annotations

from typing import Callable, Optional

from .errors import SeatingChartError
from .geometry import Point, to_chart, to_screen

MIN_ZOOM = 50
MAX_ZOOM = 100
ZOOM_STEP = 25
DEFAULT_ZOOM = 50


def clamp_zoom(zoom: int) -> int:
    return max(MIN_ZOOM, min(MAX_ZOOM, int(zoom)))


class Viewport:
    """
    Zoom level and pan offset of the chart canvas.

    Geometry consumers read `zoom` and `offset`; only the methods here change
    them. Panning is unbounded.
    """

    def __init__(self, zoom: int = DEFAULT_ZOOM, offset: Point = Point(0.0, 0.0)):
        self._zoom = clamp_zoom(zoom)
        self._offset = Point(float(offset.x), float(offset.y))
        self._pan_anchor: Optional[Point] = None
        self._listeners: list[Callable[["Viewport"], None]] = []

    @property
    def zoom(self) -> int:
        return self._zoom

    @property
    def offset(self) -> Point:
        return self._offset

    @property
    def scale(self) -> float:
        return self._zoom / 100.0

    @property
    def is_panning(self) -> bool:
        return self._pan_anchor is not None

    def subscribe(self, listener: Callable[["Viewport"], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener(self)

    def set_zoom(self, zoom: int) -> int:
        new = clamp_zoom(zoom)
        if new != self._zoom:
            self._zoom = new
            self._changed()
        return self._zoom

    def zoom_in(self) -> int:
        return self.set_zoom(self._zoom + ZOOM_STEP)

    def zoom_out(self) -> int:
        return self.set_zoom(self._zoom - ZOOM_STEP)

    def pan(self, dx: float, dy: float) -> Point:
        if dx or dy:
            self._offset = Point(self._offset.x + dx, self._offset.y + dy)
            self._changed()
        return self._offset

    def set_offset(self, offset: Point) -> None:
        if offset != self._offset:
            self._offset = Point(float(offset.x), float(offset.y))
            self._changed()

    def reset(self) -> None:
        changed = self._zoom != DEFAULT_ZOOM or self._offset != Point(0.0, 0.0)
        self._zoom = DEFAULT_ZOOM
        self._offset = Point(0.0, 0.0)
        self._pan_anchor = None
        if changed:
            self._changed()

    # pan gesture: pointer-down on empty canvas, moves, pointer-up
    def begin_pan(self, pointer: Point) -> None:
        if self.is_panning:
            raise SeatingChartError("a pan gesture is already in progress")
        self._pan_anchor = Point(pointer.x - self._offset.x, pointer.y - self._offset.y)

    def pan_to(self, pointer: Point) -> None:
        if self._pan_anchor is None:
            return
        self.set_offset(Point(pointer.x - self._pan_anchor.x, pointer.y - self._pan_anchor.y))

    def end_pan(self) -> None:
        self._pan_anchor = None

    def chart_to_screen(self, point: Point, canvas_origin: Point = Point(0.0, 0.0)) -> Point:
        return to_screen(point, self._zoom, self._offset, canvas_origin)

    def screen_to_chart(self, point: Point, canvas_origin: Point = Point(0.0, 0.0)) -> Point:
        return to_chart(point, self._zoom, self._offset, canvas_origin)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Viewport):
            return NotImplemented
        return self._zoom == other._zoom and self._offset == other._offset

    def __repr__(self) -> str:
        return f"Viewport(zoom={self._zoom}, offset=({self._offset.x}, {self._offset.y}))"
