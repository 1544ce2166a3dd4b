from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from .chart import SeatingChart
from .errors import ConflictError, SeatingChartError
from .geometry import SEAT_RADIUS, Point, nearest_seat
from .roster import StudentProfile, StudentRef
from .viewport import Viewport

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FromRoster:
    student: StudentProfile


@dataclass(frozen=True)
class FromSeat:
    row: int
    seat: int
    student: StudentRef


DragSource = Union[FromRoster, FromSeat]


class DropHint(str, Enum):
    allowed = "allowed"
    not_allowed = "not-allowed"


class DropOutcome(str, Enum):
    dropped = "dropped"
    rejected = "rejected"
    cancelled = "cancelled"


@dataclass(frozen=True)
class DropResult:
    outcome: DropOutcome
    chart: SeatingChart
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.outcome is DropOutcome.dropped


@dataclass(frozen=True)
class SeatDetail:
    row: int
    seat: int
    label: str
    student: StudentRef


class DragDropController:
    """
    Moves students from the roster or from another seat onto a free seat.

    Idle -> Dragging(source) -> Dropped | Cancelled. Drops onto an occupied
    seat are rejected and leave both cells untouched; there is no swap.
    Click selection is independent of dragging and never changes the chart.
    """

    def __init__(self, chart: SeatingChart, *, viewport: Optional[Viewport] = None, compact_mode: bool = False):
        self._chart = chart
        self._viewport = viewport
        self._source: Optional[DragSource] = None
        self.selected: Optional[tuple[int, int]] = None
        self.compact_mode = compact_mode
        self._listeners: list[Callable[[SeatingChart], None]] = []

    @property
    def chart(self) -> SeatingChart:
        return self._chart

    @property
    def source(self) -> Optional[DragSource]:
        return self._source

    @property
    def is_dragging(self) -> bool:
        return self._source is not None

    def subscribe(self, listener: Callable[[SeatingChart], None]) -> None:
        self._listeners.append(listener)

    def replace_chart(self, chart: SeatingChart) -> None:
        """Swap the whole chart (load, clear); drops any drag and selection in progress."""
        self._source = None
        self.selected = None
        self._set_chart(chart)

    def _set_chart(self, chart: SeatingChart) -> None:
        if chart is self._chart:
            return
        self._chart = chart
        for listener in self._listeners:
            listener(chart)

    def _begin(self, source: DragSource) -> None:
        if self._source is not None:
            raise SeatingChartError("a drag is already in progress")
        if self._viewport is not None and self._viewport.is_panning:
            raise SeatingChartError("cannot start a drag while panning")
        self._source = source

    def begin_drag_from_roster(self, student: StudentProfile) -> DragSource:
        source = FromRoster(student)
        self._begin(source)
        return source

    def begin_drag_from_seat(self, row: int, seat: int) -> Optional[DragSource]:
        occupant = self._chart.get(row, seat)
        if occupant is None:
            return None
        source = FromSeat(row, seat, occupant)
        self._begin(source)
        return source

    def drag_over(self, row: int, seat: int) -> DropHint:
        if self._source is None or not self._chart.is_available(row, seat):
            return DropHint.not_allowed
        return DropHint.allowed

    def cancel(self) -> DropResult:
        self._source = None
        return DropResult(DropOutcome.cancelled, self._chart)

    def drop(self, row: int, seat: int) -> DropResult:
        source, self._source = self._source, None
        if source is None:
            return DropResult(DropOutcome.cancelled, self._chart, "nothing is being dragged")

        chart = self._chart
        if isinstance(source, FromSeat) and (source.row, source.seat) == (row, seat):
            return DropResult(DropOutcome.cancelled, chart)
        if not chart.is_available(row, seat):
            reason = "seat is occupied" if chart.get(row, seat) is not None else "no such seat"
            log.debug("drop on %s rejected: %s", chart.seat_label(row, seat), reason)
            return DropResult(DropOutcome.rejected, chart, reason)

        if isinstance(source, FromSeat):
            chart = chart.remove(source.row, source.seat)
        try:
            chart = chart.assign(row, seat, source.student)
        except ConflictError as e:
            return DropResult(DropOutcome.rejected, self._chart, str(e))

        if isinstance(source, FromSeat) and self.selected == (source.row, source.seat):
            self.selected = (row, seat)
        self._set_chart(chart)
        return DropResult(DropOutcome.dropped, chart)

    def drop_at(self, point: Point, *, max_distance: float = SEAT_RADIUS * 2) -> DropResult:
        """Drop at a chart-space point by snapping to the closest seat."""
        cell = nearest_seat(self._chart.layout, point, max_distance=max_distance)
        if cell is None:
            return self.cancel()
        return self.drop(*cell)

    def remove(self, row: int, seat: int) -> SeatingChart:
        if self.selected == (row, seat):
            self.selected = None
        self._set_chart(self._chart.remove(row, seat))
        return self._chart

    def double_click(self, row: int, seat: int) -> SeatingChart:
        return self.remove(row, seat)

    def click(self, row: int, seat: int) -> Optional[SeatDetail]:
        """Toggle selection of a seat; in compact mode return the occupant's detail card."""
        if self.selected == (row, seat):
            self.selected = None
            return None
        self.selected = (row, seat)
        occupant = self._chart.get(row, seat)
        if self.compact_mode and occupant is not None:
            return SeatDetail(row, seat, self._chart.seat_label(row, seat), occupant)
        return None

    def detail_card(self) -> Optional[SeatDetail]:
        if not self.compact_mode or self.selected is None:
            return None
        occupant = self._chart.get(*self.selected)
        if occupant is None:
            return None
        return SeatDetail(*self.selected, self._chart.seat_label(*self.selected), occupant)

    def clear_selection(self) -> None:
        self.selected = None
