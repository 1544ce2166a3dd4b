from __future__ import annotations

from typing import Optional

from .chart import SeatingChart
from .interaction import SeatDetail
from .roster import StudentRef


def _initials(ref: Optional[StudentRef]) -> str:
    if ref is None:
        return "."
    parts = ref.full_name.split()
    return "".join(p[0] for p in parts[:2]).upper() or "?"


def render_ascii(chart: SeatingChart, *, cell_width: int = 3) -> str:
    cell_width = max(2, int(cell_width))
    widest = max((cfg.seat_count for cfg in chart.layout), default=0)

    header = "    " + " ".join(str(i + 1).center(cell_width) for i in range(widest))
    lines = [header]
    for r, row in enumerate(chart.rows):
        cells = " ".join(_initials(ref).center(cell_width) for ref in row)
        lines.append(chart.layout[r].label.ljust(4) + cells)
    lines.append(f"{chart.total_occupied()}/{chart.capacity()} seats taken")
    return "\n".join(lines)


def render_detail(detail: SeatDetail) -> str:
    ref = detail.student
    lines = [f"Seat {detail.label}: {ref.full_name}" + (f" ({ref.pronoun})" if ref.pronoun else "")]
    if ref.email:
        lines.append(f"  Email:   {ref.email}")
    if ref.major:
        lines.append(f"  Major:   {ref.major}")
    if ref.hobbies:
        lines.append(f"  Hobbies: {', '.join(ref.hobbies)}")
    for media in ref.favorite_media:
        kind = "TV" if media.kind == "tv" else "Movie"
        extra = f", {media.year}" if media.year else ""
        lines.append(f"  Watches: {media.title} ({kind}{extra})")
    if ref.bio:
        lines.append(f"  About:   {ref.bio}")
    for note in ref.notes:
        when = f" [{note.created_at.date().isoformat()}]" if note.created_at else ""
        lines.append(f"  Note{when}: {note.text}")
    return "\n".join(lines)
