from __future__ import annotations

import io
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .chart import SeatingChart
from .errors import ExportError
from .geometry import SEAT_RADIUS, chart_bounds, row_positions, seat_position, table_outline
from .interaction import DragDropController

log = logging.getLogger(__name__)

EXPORT_SCALE = 3
BACKGROUND = "#f8fafc"
TABLE_FILL = "#e2e8f0"
TABLE_EDGE = "#94a3b8"
SEAT_FILL = "#3b82f6"
EMPTY_SEAT_FILL = "#ffffff"
TEXT = "#334155"
MARGIN = 50.0
NAME_CHARS = 9


def _font(size: float) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=max(1, int(size)))


def _centered_text(draw: ImageDraw.ImageDraw, center: tuple[float, float], text: str, font, fill: str) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((center[0] - (right - left) / 2 - left, center[1] - (bottom - top) / 2 - top), text, font=font, fill=fill)


def _clip(text: str) -> str:
    return text if len(text) <= NAME_CHARS else text[: NAME_CHARS - 1] + "."


def rasterize_chart(chart: SeatingChart, *, scale: int = EXPORT_SCALE) -> Image.Image:
    """
    Draw the whole chart in chart space at `scale` pixels per unit.

    Viewport zoom/pan and selection highlights are not part of the picture.
    """
    minx, miny, maxx, maxy = chart_bounds(chart.layout, margin=MARGIN)
    width = max(1, int((maxx - minx) * scale))
    height = max(1, int((maxy - miny) * scale))
    img = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(img)

    def px(x: float, y: float) -> tuple[float, float]:
        return ((x - minx) * scale, (y - miny) * scale)

    label_font = _font(18 * scale)
    initial_font = _font(16 * scale)
    name_font = _font(8 * scale)
    radius = SEAT_RADIUS * scale

    for r, row in enumerate(chart.layout):
        outline = table_outline(row, r)
        draw.polygon([px(p.x, p.y) for p in outline], fill=TABLE_FILL, outline=TABLE_EDGE)
        if row.seat_count:
            first = seat_position(r, 0, row)
            _centered_text(draw, px(first.x - SEAT_RADIUS * 2.5, first.y), row.label, label_font, TEXT)

        for s, pos in enumerate(row_positions(r, row)):
            cx, cy = px(pos.x, pos.y)
            box = (cx - radius, cy - radius, cx + radius, cy + radius)
            occupant = chart.get(r, s)
            if occupant is None:
                draw.ellipse(box, fill=EMPTY_SEAT_FILL, outline=TABLE_EDGE, width=scale)
                continue
            draw.ellipse(box, fill=SEAT_FILL, outline="#ffffff", width=scale)
            _centered_text(draw, (cx, cy), occupant.full_name[:1].upper(), initial_font, "#ffffff")
            _centered_text(draw, (cx, cy + radius + 6 * scale), _clip(occupant.first_name), name_font, TEXT)
            if occupant.last_name:
                _centered_text(draw, (cx, cy + radius + 15 * scale), _clip(occupant.last_name), name_font, TEXT)
    return img


def build_pdf(image: Image.Image, layout_name: str, chart: SeatingChart) -> bytes:
    buf = io.BytesIO()
    page_w, page_h = landscape(A4)
    pdf = canvas.Canvas(buf, pagesize=(page_w, page_h))
    pdf.setTitle(f"Classroom Layout: {layout_name or 'Untitled'}")

    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(15 * mm, page_h - 15 * mm, f"Classroom Layout: {layout_name or 'Untitled'}")

    y_top = 25 * mm
    img_h = image.height * page_w / image.width
    final_h = min(img_h, page_h - y_top - 40 * mm)
    pdf.drawImage(
        ImageReader(image),
        0,
        page_h - y_top - final_h,
        width=page_w,
        height=final_h,
        preserveAspectRatio=True,
        anchor="n",
    )

    occupants = list(chart.occupants())
    if occupants:
        pdf.showPage()
        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawString(15 * mm, page_h - 20 * mm, "Students in Layout:")
        pdf.setFont("Helvetica", 11)
        y = 35 * mm
        for index, (r, s, ref) in enumerate(occupants, start=1):
            if y > page_h - 20 * mm:
                pdf.showPage()
                pdf.setFont("Helvetica", 11)
                y = 20 * mm
            major = f" - {ref.major}" if ref.major else ""
            pdf.drawString(15 * mm, page_h - y, f"{index}. {ref.full_name}{major} (seat {chart.seat_label(r, s)})")
            if ref.email:
                y += 5 * mm
                pdf.setFont("Helvetica", 9)
                pdf.setFillGray(0.4)
                pdf.drawString(15 * mm, page_h - y, f"   Email: {ref.email}")
                pdf.setFillGray(0)
                pdf.setFont("Helvetica", 11)
            y += 8 * mm

    pdf.save()
    return buf.getvalue()


def render_pdf(chart: SeatingChart, layout_name: str, *, scale: int = EXPORT_SCALE) -> bytes:
    try:
        image = rasterize_chart(chart, scale=scale)
        return build_pdf(image, layout_name, chart)
    except Exception as e:  # noqa: BLE001 - any rendering failure is one export failure
        log.error("PDF export of %r failed: %s", layout_name, e)
        raise ExportError(f"Failed to export PDF: {e}") from e


def export_filename(layout_name: str, now: Optional[datetime] = None) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9]", "", layout_name or "")
    if not cleaned:
        cleaned = str(int((now or datetime.now()).timestamp() * 1000))
    return f"classroom-layout-{cleaned}.pdf"


def export_layout(
    controller: DragDropController,
    layout_name: str,
    directory: str | Path,
    *,
    scale: int = EXPORT_SCALE,
    now: Optional[datetime] = None,
) -> Path:
    """Render the controller's chart to `<directory>/<export_filename>`; nothing is written on failure."""
    controller.clear_selection()
    data = render_pdf(controller.chart, layout_name, scale=scale)

    out_dir = Path(directory)
    target = out_dir / export_filename(layout_name, now)
    tmp_name = None
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=out_dir, prefix=".export-", suffix=".pdf", delete=False) as fh:
            tmp_name = fh.name
            fh.write(data)
        os.replace(tmp_name, target)
    except OSError as e:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise ExportError(f"Failed to write {target}: {e}") from e
    log.info("exported %s (%d bytes)", target, len(data))
    return target
