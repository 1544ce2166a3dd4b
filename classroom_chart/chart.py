from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from .errors import ConflictError, SeatingChartError
from .geometry import RowConfig
from .roster import StudentProfile, StudentRef

log = logging.getLogger(__name__)

Row = tuple[Optional[StudentRef], ...]


@dataclass(frozen=True)
class Seat:
    row: int
    seat: int


class SeatingChart:
    """
    Fixed-shape grid of seats, one row per table.

    Instances never change. Every mutation returns a new chart in which only
    the touched row is rebuilt; the other row tuples are shared.
    """

    __slots__ = ("_layout", "_rows")

    def __init__(self, layout: Sequence[RowConfig], rows: Optional[Sequence[Row]] = None):
        self._layout = tuple(layout)
        if rows is None:
            rows = [(None,) * cfg.seat_count for cfg in self._layout]
        if len(rows) != len(self._layout) or any(len(r) != cfg.seat_count for r, cfg in zip(rows, self._layout)):
            raise SeatingChartError("chart dimensions do not match row configuration")
        self._rows: tuple[Row, ...] = tuple(tuple(r) for r in rows)

    @classmethod
    def empty(cls, layout: Sequence[RowConfig]) -> "SeatingChart":
        return cls(layout)

    @classmethod
    def from_cells(cls, layout: Sequence[RowConfig], cells: Sequence[Sequence[Any]]) -> "SeatingChart":
        """
        Build a chart from loosely shaped data.

        Missing rows and cells are empty, extra ones are dropped, and a student
        who appears twice keeps only the first seat found in row-major order.
        """
        layout = tuple(layout)
        seen: set[str] = set()
        rows: list[Row] = []
        for r, cfg in enumerate(layout):
            src = list(cells[r]) if r < len(cells) and cells[r] is not None else []
            src = (src + [None] * cfg.seat_count)[: cfg.seat_count]
            row: list[Optional[StudentRef]] = []
            for s, cell in enumerate(src):
                ref = _coerce_ref(cell)
                if ref is not None and ref.id in seen:
                    log.warning("dropping duplicate seat for student %s at %s%d", ref.id, cfg.label, s + 1)
                    ref = None
                if ref is not None:
                    seen.add(ref.id)
                row.append(ref)
            rows.append(tuple(row))
        return cls(layout, rows)

    @property
    def layout(self) -> tuple[RowConfig, ...]:
        return self._layout

    @property
    def rows(self) -> tuple[Row, ...]:
        return self._rows

    def _in_bounds(self, row: int, seat: int) -> bool:
        return 0 <= row < len(self._rows) and 0 <= seat < len(self._rows[row])

    def get(self, row: int, seat: int) -> Optional[StudentRef]:
        if not self._in_bounds(row, seat):
            return None
        return self._rows[row][seat]

    def is_available(self, row: int, seat: int) -> bool:
        return self._in_bounds(row, seat) and self._rows[row][seat] is None

    def _replace_row(self, row: int, new_row: Row) -> "SeatingChart":
        rows = list(self._rows)
        rows[row] = new_row
        return SeatingChart(self._layout, rows)

    def assign(self, row: int, seat: int, student: StudentProfile) -> "SeatingChart":
        if not self._in_bounds(row, seat):
            raise SeatingChartError(f"seat out of bounds: row={row}, seat={seat}")
        occupant = self._rows[row][seat]
        if occupant is not None:
            raise ConflictError(f"seat {self.seat_label(row, seat)} is already occupied by {occupant.full_name}")
        current = self.find(student.id)
        if current is not None:
            raise ConflictError(
                f"{student.full_name} is already seated at {self.seat_label(current.row, current.seat)}"
            )
        cells = list(self._rows[row])
        cells[seat] = StudentRef.capture(student)
        return self._replace_row(row, tuple(cells))

    def remove(self, row: int, seat: int) -> "SeatingChart":
        if self.get(row, seat) is None:
            return self
        cells = list(self._rows[row])
        cells[seat] = None
        return self._replace_row(row, tuple(cells))

    def find(self, student_id: str) -> Optional[Seat]:
        for r, seat, ref in self.occupants():
            if ref.id == student_id:
                return Seat(r, seat)
        return None

    def occupants_of(self, student_ids: Iterable[str]) -> set[tuple[int, int]]:
        wanted = set(student_ids)
        return {(r, s) for r, s, ref in self.occupants() if ref.id in wanted}

    def occupants(self) -> Iterator[tuple[int, int, StudentRef]]:
        for r, row in enumerate(self._rows):
            for s, ref in enumerate(row):
                if ref is not None:
                    yield r, s, ref

    def seated_ids(self) -> set[str]:
        return {ref.id for _, _, ref in self.occupants()}

    def occupied_cells(self) -> set[tuple[int, int]]:
        return {(r, s) for r, s, _ in self.occupants()}

    def total_occupied(self) -> int:
        return sum(1 for _ in self.occupants())

    def capacity(self) -> int:
        return sum(cfg.seat_count for cfg in self._layout)

    def seat_label(self, row: int, seat: int) -> str:
        label = self._layout[row].label if 0 <= row < len(self._layout) else f"R{row}"
        return f"{label}{seat + 1}"

    def refresh_occupants(self, roster: Iterable[StudentProfile]) -> "SeatingChart":
        """Re-capture every occupant from the live roster; students no longer on it stay as they were."""
        by_id: Mapping[str, StudentProfile] = {p.id: p for p in roster}
        rows: list[Row] = []
        changed = False
        for row in self._rows:
            new_row = tuple(
                StudentRef.capture(by_id[ref.id]) if ref is not None and ref.id in by_id else ref for ref in row
            )
            changed = changed or new_row != row
            rows.append(new_row)
        return SeatingChart(self._layout, rows) if changed else self

    def to_cells(self) -> list[list[Optional[dict]]]:
        return [[ref.model_dump(mode="json") if ref is not None else None for ref in row] for row in self._rows]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SeatingChart):
            return NotImplemented
        return self._layout == other._layout and self._rows == other._rows

    def __hash__(self) -> int:
        return hash((self._layout, tuple(tuple(ref.id if ref else None for ref in row) for row in self._rows)))

    def __repr__(self) -> str:
        return f"SeatingChart(rows={len(self._rows)}, occupied={self.total_occupied()}/{self.capacity()})"


def _coerce_ref(cell: Any) -> Optional[StudentRef]:
    if cell is None:
        return None
    if isinstance(cell, StudentProfile):
        return StudentRef.capture(cell)
    if isinstance(cell, Mapping):
        return StudentRef.model_validate(cell)
    raise SeatingChartError(f"unsupported seat value: {type(cell).__name__}")
