from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional, Sequence, Union

from .chart import SeatingChart
from .errors import RemotePersistenceError, SeatingChartError, SnapshotError, ValidationError
from .geometry import Point, RowConfig, default_rows
from .interaction import DragDropController, DropResult
from .roster import RosterSource, StudentProfile, available_students
from .snapshot import LayoutSnapshot
from .storage import DraftStore, LayoutStore, NamedLayout
from .viewport import Viewport

log = logging.getLogger(__name__)


class OccupantPolicy(str, Enum):
    frozen = "frozen"  # seats keep the copy taken when the student was seated
    live = "live"  # seats are re-captured from the roster whenever a layout is loaded


class LayoutSession:
    """
    One instructor's editing session over a seating layout.

    Keeps the live chart mirrored into the injected draft store after every
    change, and talks to the named-layout store only on explicit save, load
    and delete. Draft failures are logged and swallowed; remote failures raise
    RemotePersistenceError and leave the live state as it was.
    """

    def __init__(
        self,
        drafts: DraftStore,
        layouts: LayoutStore,
        instructor_id: str,
        *,
        roster_source: Optional[RosterSource] = None,
        layout: Optional[Sequence[RowConfig]] = None,
        occupant_policy: OccupantPolicy = OccupantPolicy.frozen,
    ):
        self.drafts = drafts
        self.layouts = layouts
        self.instructor_id = instructor_id
        self.roster_source = roster_source
        self.occupant_policy = OccupantPolicy(occupant_policy)
        self.layout = tuple(layout) if layout is not None else default_rows()

        self.viewport = Viewport()
        self.controller = DragDropController(SeatingChart.empty(self.layout), viewport=self.viewport)
        self.layout_name = ""
        self.current_layout_id: Optional[int] = None
        self.saved_layouts: list[NamedLayout] = []
        self.picker_available = False
        self.roster: list[StudentProfile] = []

        self._open = False
        self._quiet = 0
        self.controller.subscribe(lambda _chart: self.autosave())
        self.viewport.subscribe(lambda _vp: self.autosave())

    # lifecycle

    def open(self) -> "LayoutSession":
        self.refresh_roster()
        self._restore_draft()
        self.refresh_layouts()
        self._open = True
        return self

    def close(self) -> None:
        # changes are autosaved as they happen, nothing to flush
        self._open = False

    def __enter__(self) -> "LayoutSession":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def chart(self) -> SeatingChart:
        return self.controller.chart

    @property
    def compact_mode(self) -> bool:
        return self.controller.compact_mode

    @contextmanager
    def _batch(self) -> Iterator[None]:
        self._quiet += 1
        try:
            yield
        finally:
            self._quiet -= 1

    def snapshot(self) -> LayoutSnapshot:
        return LayoutSnapshot.capture(
            self.chart,
            self.viewport,
            layout_name=self.layout_name,
            compact_mode=self.compact_mode,
            layout_id=self.current_layout_id,
        )

    def _apply(self, snapshot: LayoutSnapshot, *, layout_name: str, layout_id: Optional[int]) -> None:
        chart = snapshot.build_chart(self.layout)
        if self.occupant_policy is OccupantPolicy.live and self.roster:
            chart = chart.refresh_occupants(self.roster)
        with self._batch():
            self.controller.replace_chart(chart)
            self.controller.compact_mode = snapshot.compact_mode
            self.viewport.set_zoom(snapshot.zoom)
            self.viewport.set_offset(Point(snapshot.offset.x, snapshot.offset.y))
            self.layout_name = layout_name
            self.current_layout_id = layout_id

    # local draft

    def _restore_draft(self) -> None:
        try:
            raw = self.drafts.get_draft()
        except Exception as e:  # noqa: BLE001 - draft is a convenience cache
            log.warning("could not read layout draft, starting empty: %s", e)
            return
        if raw is None:
            return
        try:
            snapshot = LayoutSnapshot.parse(raw, self.layout)
        except SnapshotError as e:
            log.warning("ignoring malformed layout draft: %s", e)
            return
        self._apply(snapshot, layout_name=snapshot.layout_name, layout_id=snapshot.layout_id)
        log.debug("restored draft with %d seated students", self.chart.total_occupied())

    def autosave(self) -> None:
        if not self._open or self._quiet:
            return
        try:
            self.drafts.set_draft(self.snapshot().to_payload())
        except Exception as e:  # noqa: BLE001 - draft is a convenience cache
            log.warning("layout autosave failed: %s", e)

    def set_layout_name(self, name: str) -> None:
        self.layout_name = name
        self.autosave()

    def set_compact_mode(self, enabled: bool) -> None:
        self.controller.compact_mode = bool(enabled)
        if not enabled:
            self.controller.clear_selection()
        self.autosave()

    def clear(self) -> None:
        try:
            self.drafts.clear_draft()
        except Exception as e:  # noqa: BLE001
            log.warning("could not clear layout draft: %s", e)
        with self._batch():
            self.controller.replace_chart(SeatingChart.empty(self.layout))
            self.viewport.reset()
            self.layout_name = ""
            self.current_layout_id = None

    # roster

    def refresh_roster(self) -> bool:
        if self.roster_source is None:
            return False
        try:
            self.roster = list(self.roster_source.fetch_roster(self.instructor_id))
        except Exception as e:  # noqa: BLE001 - seating still works without a roster
            log.warning("could not fetch roster: %s", e)
            return False
        return True

    def available_students(self, *, search: str = "", major: str = "") -> list[StudentProfile]:
        return available_students(self.roster, self.chart, search=search, major=major)

    def roster_student(self, student_id: str) -> StudentProfile:
        for student in self.roster:
            if student.id == student_id:
                return student
        raise ValidationError(f"student {student_id} is not on the roster")

    # interaction shortcuts

    def place(self, student: StudentProfile, row: int, seat: int) -> DropResult:
        self.controller.begin_drag_from_roster(student)
        return self.controller.drop(row, seat)

    def move(self, from_row: int, from_seat: int, row: int, seat: int) -> DropResult:
        if self.controller.begin_drag_from_seat(from_row, from_seat) is None:
            raise ValidationError(f"seat {self.chart.seat_label(from_row, from_seat)} is empty")
        return self.controller.drop(row, seat)

    def begin_pan(self, pointer: Point) -> None:
        if self.controller.is_dragging:
            raise SeatingChartError("cannot pan while dragging a student")
        self.viewport.begin_pan(pointer)

    # named layouts

    def refresh_layouts(self) -> bool:
        try:
            self.saved_layouts = list(self.layouts.list_layouts(self.instructor_id))
        except Exception as e:  # noqa: BLE001 - only the load picker depends on this
            log.warning("could not list saved layouts: %s", e)
            self.picker_available = False
            return False
        self.picker_available = True
        return True

    def save(self) -> int:
        name = self.layout_name.strip()
        if not name:
            raise ValidationError("Please enter a layout name")

        payload = self.snapshot().to_payload(include_layout_id=False)
        payload["layout_name"] = name
        try:
            if self.current_layout_id is None:
                layout_id = int(self.layouts.create_layout(self.instructor_id, name, payload))
            else:
                layout_id = self.current_layout_id
                self.layouts.update_layout(layout_id, name, payload)
        except Exception as e:  # noqa: BLE001
            log.error("saving layout %r failed: %s", name, e)
            raise RemotePersistenceError(f"Failed to save layout: {e}") from e

        log.info("saved layout %r as #%s", name, layout_id)
        self.current_layout_id = layout_id
        self.autosave()
        self.refresh_layouts()
        return layout_id

    def _resolve(self, layout: Union[NamedLayout, int]) -> NamedLayout:
        if isinstance(layout, NamedLayout):
            return layout
        for item in self.saved_layouts:
            if item.id == layout:
                return item
        raise ValidationError(f"layout #{layout} is not among the saved layouts")

    def load(self, layout: Union[NamedLayout, int]) -> NamedLayout:
        named = self._resolve(layout)
        try:
            snapshot = LayoutSnapshot.parse(named.snapshot, self.layout)
        except SnapshotError as e:
            raise RemotePersistenceError(f"Failed to load layout {named.name!r}: {e}") from e
        self._apply(snapshot, layout_name=named.name, layout_id=named.id)
        self.autosave()
        log.info("loaded layout %r (#%s)", named.name, named.id)
        return named

    def delete(self, layout: Union[NamedLayout, int]) -> None:
        layout_id = layout.id if isinstance(layout, NamedLayout) else int(layout)
        try:
            self.layouts.delete_layout(layout_id)
        except Exception as e:  # noqa: BLE001
            log.error("deleting layout #%s failed: %s", layout_id, e)
            raise RemotePersistenceError(f"Failed to delete layout: {e}") from e

        self.saved_layouts = [item for item in self.saved_layouts if item.id != layout_id]
        if self.current_layout_id == layout_id:
            self.current_layout_id = None
            self.autosave()
