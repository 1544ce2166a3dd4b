from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from shapely.geometry import MultiPoint, Point as ShapelyPoint, Polygon as ShapelyPolygon
from shapely.ops import unary_union

from .errors import SeatingChartError


# Chart space is unscaled; y grows toward the back of the room.
CENTER_X = 700.0
TOP_MARGIN = 140.0
ROW_SPACING = 150.0
CURVE_DEPTH = 40.0
SEAT_GAP = 34.0
TABLE_THICKNESS = 36.0
TABLE_OVERHANG = 30.0
SEAT_RADIUS = 22.0
OUTLINE_SAMPLES = 24

DEFAULT_ROW_LABELS = "ABCDE"
DEFAULT_SEATS_PER_ROW = 26
DEFAULT_TABLE_WIDTH = 1200.0


class GeometryError(SeatingChartError):
    pass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class RowConfig:
    label: str
    seat_count: int
    table_width: float = DEFAULT_TABLE_WIDTH

    def __post_init__(self) -> None:
        if self.seat_count < 0:
            raise GeometryError(f"row {self.label}: seat_count must be >= 0")
        if self.table_width <= 0:
            raise GeometryError(f"row {self.label}: table_width must be positive")


def default_rows() -> tuple[RowConfig, ...]:
    return tuple(RowConfig(label, DEFAULT_SEATS_PER_ROW, DEFAULT_TABLE_WIDTH) for label in DEFAULT_ROW_LABELS)


def row_baseline(row_index: int) -> float:
    return TOP_MARGIN + row_index * ROW_SPACING


def normalized_t(seat_index: int, total_seats: int) -> float:
    # t in [-1, 1]; a single seat sits in the middle of its table.
    if total_seats <= 1:
        return 0.0
    return -1.0 + 2.0 * seat_index / (total_seats - 1)


def curve_offset(t: float) -> float:
    return CURVE_DEPTH * (1.0 - t * t)


def seat_position(row_index: int, seat_index: int, row: RowConfig, total_seats: Optional[int] = None) -> Point:
    """
    Chart-space centre of a seat.

    Seats are spread evenly over the row's own table width. The parabolic
    offset pulls the middle of the row toward the front of the room, so the
    end seats sit on the row baseline and the middle seat sits CURVE_DEPTH
    ahead of it.
    """
    n = row.seat_count if total_seats is None else total_seats
    t = normalized_t(seat_index, n)
    x = CENTER_X + t * row.table_width / 2.0
    y = row_baseline(row_index) - curve_offset(t)
    return Point(x, y)


def row_positions(row_index: int, row: RowConfig) -> list[Point]:
    return [seat_position(row_index, i, row) for i in range(row.seat_count)]


def chart_positions(rows: Sequence[RowConfig]) -> list[list[Point]]:
    return [row_positions(r, row) for r, row in enumerate(rows)]


def table_outline(row: RowConfig, row_index: int = 0, *, samples: int = OUTLINE_SAMPLES) -> list[Point]:
    """
    Closed ring around the curved table in front of a row of seats.

    The back edge follows the seat parabola shifted forward by SEAT_GAP; the
    front edge is the back edge shifted forward by TABLE_THICKNESS. Points run
    along the front edge left to right, then along the back edge right to left.
    """
    if samples < 2:
        raise GeometryError("samples must be >= 2")
    half_w = row.table_width / 2.0
    half_span = half_w + TABLE_OVERHANG
    base = row_baseline(row_index)

    front: list[Point] = []
    back: list[Point] = []
    for k in range(samples + 1):
        x = CENTER_X - half_span + 2.0 * half_span * k / samples
        t = (x - CENTER_X) / half_w
        back_y = base - SEAT_GAP - curve_offset(t)
        back.append(Point(x, back_y))
        front.append(Point(x, back_y - TABLE_THICKNESS))

    ring = front + list(reversed(back))
    ring.append(ring[0])
    return ring


def table_polygon(row: RowConfig, row_index: int = 0, *, samples: int = OUTLINE_SAMPLES) -> ShapelyPolygon:
    poly = ShapelyPolygon([(p.x, p.y) for p in table_outline(row, row_index, samples=samples)])
    if not poly.is_valid:
        raise GeometryError(f"table outline for row {row.label} is not a valid polygon")
    return poly


def table_at_point(rows: Sequence[RowConfig], point: Point) -> Optional[int]:
    pt = ShapelyPoint(point.x, point.y)
    for r, row in enumerate(rows):
        if table_polygon(row, r).contains(pt):
            return r
    return None


def nearest_seat(
    rows: Sequence[RowConfig],
    point: Point,
    *,
    occupied: Iterable[tuple[int, int]] = (),
    max_distance: Optional[float] = None,
) -> Optional[tuple[int, int]]:
    """Nearest seat not in `occupied`, optionally within `max_distance` of the point."""
    taken = set(occupied)
    target = ShapelyPoint(point.x, point.y)
    best: Optional[tuple[int, int]] = None
    best_d = float("inf")
    for r, row in enumerate(rows):
        for s, pos in enumerate(row_positions(r, row)):
            if (r, s) in taken:
                continue
            d = target.distance(ShapelyPoint(pos.x, pos.y))
            if d < best_d:
                best, best_d = (r, s), d
    if best is None:
        return None
    if max_distance is not None and best_d > max_distance:
        return None
    return best


def chart_bounds(rows: Sequence[RowConfig], *, margin: float = 0.0) -> tuple[float, float, float, float]:
    shapes = [table_polygon(row, r) for r, row in enumerate(rows)]
    seats = [(p.x, p.y) for positions in chart_positions(rows) for p in positions]
    if seats:
        shapes.append(MultiPoint(seats).buffer(SEAT_RADIUS))
    if not shapes:
        return (0.0, 0.0, 0.0, 0.0)
    minx, miny, maxx, maxy = unary_union(shapes).bounds
    return (minx - margin, miny - margin, maxx + margin, maxy + margin)


def to_screen(point: Point, zoom: int, offset: Point, origin: Point = Point(0.0, 0.0)) -> Point:
    scale = zoom / 100.0
    return Point(origin.x + offset.x + point.x * scale, origin.y + offset.y + point.y * scale)


def to_chart(point: Point, zoom: int, offset: Point, origin: Point = Point(0.0, 0.0)) -> Point:
    scale = zoom / 100.0
    return Point((point.x - origin.x - offset.x) / scale, (point.y - origin.y - offset.y) / scale)


def screen_seat_position(
    row_index: int,
    seat_index: int,
    row: RowConfig,
    zoom: int,
    offset: Point,
    total_seats: Optional[int] = None,
) -> Point:
    return to_screen(seat_position(row_index, seat_index, row, total_seats), zoom, offset)
