from __future__ import annotations

import argparse
import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import httpx

from .errors import SeatingChartError, ValidationError
from .export import EXPORT_SCALE, export_layout
from .config import Settings
from .interaction import DropResult, SeatDetail
from .reconciler import LayoutSession, OccupantPolicy
from .remote import HttpLayoutStore, HttpRosterSource
from .render import render_ascii, render_detail
from .storage import JsonFileDraftStore

_SEAT_RE = re.compile(r"^([A-Za-z]+)(\d+)$")


def _add_common_args(p: argparse.ArgumentParser, settings: Settings) -> None:
    p.add_argument("--api-url", default=settings.api_url, help=f"Backend URL (default: {settings.api_url})")
    p.add_argument(
        "--instructor",
        default=settings.instructor_id,
        help="Instructor id owning the roster and layouts (env CLASSROOM_SEATING_INSTRUCTOR)",
    )


@contextmanager
def _session(args: argparse.Namespace) -> Iterator[LayoutSession]:
    settings: Settings = args.settings
    if not args.instructor:
        raise ValidationError("an instructor id is required (--instructor or CLASSROOM_SEATING_INSTRUCTOR)")
    try:
        policy = OccupantPolicy(settings.occupant_policy)
    except ValueError as e:
        choices = ", ".join(p.value for p in OccupantPolicy)
        raise ValidationError(
            f"CLASSROOM_SEATING_OCCUPANTS must be one of {choices}, got {settings.occupant_policy!r}"
        ) from e
    with httpx.Client(base_url=args.api_url, timeout=settings.timeout_s) as client:
        session = LayoutSession(
            JsonFileDraftStore(settings.home / "drafts" / args.instructor),
            HttpLayoutStore(client, args.instructor),
            args.instructor,
            roster_source=HttpRosterSource(client),
            occupant_policy=policy,
        )
        with session:
            yield session


def _parse_seat(session: LayoutSession, text: str) -> tuple[int, int]:
    m = _SEAT_RE.match(text.strip())
    if not m:
        raise ValidationError(f"seat must look like B7, got {text!r}")
    label, number = m.group(1).upper(), int(m.group(2))
    for r, cfg in enumerate(session.layout):
        if cfg.label.upper() == label:
            if not 1 <= number <= cfg.seat_count:
                raise ValidationError(f"row {label} has seats 1-{cfg.seat_count}")
            return r, number - 1
    raise ValidationError(f"unknown row {label!r}")


def _report_drop(result: DropResult, what: str) -> int:
    if result.accepted:
        print(what)
        return 0
    print(f"Not moved: {result.reason or result.outcome.value}")
    return 1


def cmd_show(args: argparse.Namespace) -> int:
    with _session(args) as session:
        print(render_ascii(session.chart, cell_width=args.width))
        vp = session.viewport
        ident = f" (#{session.current_layout_id})" if session.current_layout_id is not None else ""
        print(f"Layout: {session.layout_name or 'Untitled'}{ident}  zoom {vp.zoom}%  offset ({vp.offset.x:g}, {vp.offset.y:g})")
    return 0


def cmd_roster(args: argparse.Namespace) -> int:
    with _session(args) as session:
        students = session.available_students(search=args.search, major=args.major)
        for s in students:
            print(f"{s.id}\t{s.full_name}\t{s.major}")
        print(f"{len(students)} students available")
    return 0


def cmd_seat(args: argparse.Namespace) -> int:
    with _session(args) as session:
        row, seat = _parse_seat(session, args.seat)
        student = session.roster_student(args.student)
        result = session.place(student, row, seat)
        return _report_drop(result, f"Seated {student.full_name} at {session.chart.seat_label(row, seat)}")


def cmd_move(args: argparse.Namespace) -> int:
    with _session(args) as session:
        src = _parse_seat(session, args.source)
        dst = _parse_seat(session, args.target)
        result = session.move(*src, *dst)
        return _report_drop(result, f"Moved {args.source.upper()} -> {args.target.upper()}")


def cmd_remove(args: argparse.Namespace) -> int:
    with _session(args) as session:
        row, seat = _parse_seat(session, args.seat)
        session.controller.double_click(row, seat)
        print(f"Cleared {session.chart.seat_label(row, seat)}")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    with _session(args) as session:
        row, seat = _parse_seat(session, args.seat)
        occupant = session.chart.get(row, seat)
        if occupant is None:
            print("Empty seat")
            return 1
        print(render_detail(SeatDetail(row, seat, session.chart.seat_label(row, seat), occupant)))
    return 0


def cmd_zoom(args: argparse.Namespace) -> int:
    with _session(args) as session:
        if args.level == "in":
            session.viewport.zoom_in()
        elif args.level == "out":
            session.viewport.zoom_out()
        elif args.level.isdigit():
            session.viewport.set_zoom(int(args.level))
        else:
            raise ValidationError(f"zoom must be in, out or a percentage, got {args.level!r}")
        print(f"Zoom {session.viewport.zoom}%")
    return 0


def cmd_pan(args: argparse.Namespace) -> int:
    with _session(args) as session:
        off = session.viewport.pan(args.dx, args.dy)
        print(f"Offset ({off.x:g}, {off.y:g})")
    return 0


def cmd_reset_view(args: argparse.Namespace) -> int:
    with _session(args) as session:
        session.viewport.reset()
        print(f"Zoom {session.viewport.zoom}%, offset (0, 0)")
    return 0


def cmd_name(args: argparse.Namespace) -> int:
    with _session(args) as session:
        session.set_layout_name(args.name)
        print(f"Layout name set to {args.name!r}")
    return 0


def cmd_compact(args: argparse.Namespace) -> int:
    with _session(args) as session:
        session.set_compact_mode(args.state == "on")
        print(f"Compact mode {args.state}")
    return 0


def cmd_save(args: argparse.Namespace) -> int:
    with _session(args) as session:
        updating = session.current_layout_id is not None
        layout_id = session.save()
        print(f"Layout {'updated' if updating else 'saved'} (#{layout_id})")
    return 0


def cmd_layouts(args: argparse.Namespace) -> int:
    with _session(args) as session:
        if not session.picker_available:
            print("Saved layouts are unavailable right now")
            return 1
        if not session.saved_layouts:
            print("No saved layouts found")
        for item in session.saved_layouts:
            mark = "*" if item.id == session.current_layout_id else " "
            created = item.created_at.date().isoformat() if item.created_at else "-"
            print(f"{mark} #{item.id}\t{item.name}\tcreated {created}\t{item.seated} students placed")
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    with _session(args) as session:
        named = session.load(args.layout_id)
        print(f"Loaded layout: {named.name}")
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    with _session(args) as session:
        session.delete(args.layout_id)
        print(f"Deleted layout #{args.layout_id}")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    with _session(args) as session:
        session.clear()
        print("Cleared layout")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    with _session(args) as session:
        out_dir = Path(args.output) if args.output else args.settings.export_dir
        path = export_layout(session.controller, session.layout_name, out_dir, scale=args.scale)
        print(f"Exported {path}")
    return 0


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="classroom_chart", description="Classroom seating chart editor (CLI).")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    p.set_defaults(settings=settings)
    sub = p.add_subparsers(dest="cmd", required=True)

    def add(name: str, func, help: str) -> argparse.ArgumentParser:
        sp = sub.add_parser(name, help=help)
        _add_common_args(sp, settings)
        sp.set_defaults(func=func)
        return sp

    sp = add("show", cmd_show, "Print the current seating chart")
    sp.add_argument("--width", type=int, default=3, help="Cell width for display")

    sp = add("roster", cmd_roster, "List students not yet seated")
    sp.add_argument("--search", default="", help="Match name, major or hobby")
    sp.add_argument("--major", default="", help="Only this major")

    sp = add("seat", cmd_seat, "Drag a student from the roster onto a seat")
    sp.add_argument("student", help="Student id")
    sp.add_argument("seat", help="Seat label, e.g. B7")

    sp = add("move", cmd_move, "Drag a seated student onto another free seat")
    sp.add_argument("source")
    sp.add_argument("target")

    sp = add("remove", cmd_remove, "Empty a seat")
    sp.add_argument("seat")

    sp = add("inspect", cmd_inspect, "Show the detail card of a seat's occupant")
    sp.add_argument("seat")

    sp = add("zoom", cmd_zoom, "Zoom in/out (25%% steps) or set a level between 50 and 100")
    sp.add_argument("level", help="in, out, or a percentage")

    sp = add("pan", cmd_pan, "Move the canvas by an offset")
    sp.add_argument("dx", type=float)
    sp.add_argument("dy", type=float)

    add("reset-view", cmd_reset_view, "Reset zoom and pan")

    sp = add("name", cmd_name, "Set the layout name used by save and export")
    sp.add_argument("name")

    sp = add("compact", cmd_compact, "Toggle compact display mode")
    sp.add_argument("state", choices=["on", "off"])

    add("save", cmd_save, "Save the layout (creates it the first time, then updates it)")
    add("layouts", cmd_layouts, "List saved layouts")

    sp = add("load", cmd_load, "Replace the current layout with a saved one")
    sp.add_argument("layout_id", type=int)

    sp = add("delete", cmd_delete, "Delete a saved layout")
    sp.add_argument("layout_id", type=int)

    add("clear", cmd_clear, "Discard the draft and start an empty layout")

    sp = add("export", cmd_export, "Export the layout to PDF")
    sp.add_argument("--output", help="Directory for the PDF (default: $CLASSROOM_SEATING_HOME/exports)")
    sp.add_argument("--scale", type=int, default=EXPORT_SCALE, help="Raster scale of the layout image")

    return p


def main(argv: list[str] | None = None) -> int:
    settings = Settings.from_env()
    p = build_parser(settings)
    args = p.parse_args(argv)

    level = settings.log_level.upper()
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return int(args.func(args))
    except SeatingChartError as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
