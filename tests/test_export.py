import re
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

from classroom_chart.chart import SeatingChart
from classroom_chart.errors import ExportError
from classroom_chart.export import MARGIN, export_filename, export_layout, rasterize_chart, render_pdf
from classroom_chart.geometry import SEAT_RADIUS, chart_bounds, default_rows, seat_position
from classroom_chart.interaction import DragDropController
from classroom_chart.roster import StudentProfile


def student(i):
    return StudentProfile(
        id=f"s{i}", full_name=f"Student Number{i}", major="Computer Science", email=f"s{i}@example.edu"
    )


def full_chart(count):
    rows = default_rows()
    chart = SeatingChart.empty(rows)
    for i in range(count):
        chart = chart.assign(i // 26, i % 26, student(i))
    return chart


class TestExportFilename(unittest.TestCase):
    def test_strips_non_alphanumerics(self):
        self.assertEqual(export_filename("Period 3 / CS-101!"), "classroom-layout-Period3CS101.pdf")

    def test_unnamed_uses_timestamp(self):
        now = datetime(2024, 9, 1, 12, 0, 0)
        expected = f"classroom-layout-{int(now.timestamp() * 1000)}.pdf"
        self.assertEqual(export_filename("", now), expected)
        self.assertEqual(export_filename(" ?! ", now), expected)


class TestRasterize(unittest.TestCase):
    def test_seat_colours(self):
        rows = default_rows()
        chart = SeatingChart.empty(rows).assign(0, 0, student(1))
        img = rasterize_chart(chart, scale=1)
        minx, miny, _, _ = chart_bounds(rows, margin=MARGIN)

        def sample(r, s):
            p = seat_position(r, s, rows[r])
            return img.getpixel((int(p.x - minx + SEAT_RADIUS * 0.7), int(p.y - miny)))

        self.assertEqual(sample(0, 0), (59, 130, 246))
        self.assertEqual(sample(0, 1), (255, 255, 255))

    def test_size_follows_scale(self):
        chart = SeatingChart.empty(default_rows())
        small = rasterize_chart(chart, scale=1)
        big = rasterize_chart(chart, scale=2)
        self.assertAlmostEqual(big.width, small.width * 2, delta=2)


class TestPdf(unittest.TestCase):
    def test_empty_chart_is_single_page(self):
        data = render_pdf(SeatingChart.empty(default_rows()), "Empty", scale=1)
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(len(re.findall(rb"/Type /Page\b", data)), 1)

    def test_student_list_paginates(self):
        data = render_pdf(full_chart(30), "Big class", scale=1)
        self.assertGreaterEqual(len(re.findall(rb"/Type /Page\b", data)), 3)

    def test_export_layout_writes_file(self):
        ctl = DragDropController(full_chart(3))
        ctl.click(0, 0)
        with tempfile.TemporaryDirectory() as tmp:
            path = export_layout(ctl, "Period 3", tmp, scale=1)
            self.assertEqual(path, Path(tmp) / "classroom-layout-Period3.pdf")
            self.assertTrue(path.read_bytes().startswith(b"%PDF"))
            self.assertEqual([p.name for p in Path(tmp).iterdir()], [path.name])
        self.assertIsNone(ctl.selected)

    def test_failure_leaves_nothing_behind(self):
        ctl = DragDropController(full_chart(3))
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("classroom_chart.export.build_pdf", side_effect=RuntimeError("boom")):
                with self.assertLogs("classroom_chart.export", level="ERROR"):
                    with self.assertRaises(ExportError) as ctx:
                        export_layout(ctl, "Period 3", tmp, scale=1)
            self.assertIn("boom", str(ctx.exception))
            self.assertEqual(list(Path(tmp).iterdir()), [])
        self.assertEqual(ctl.chart.total_occupied(), 3)


if __name__ == "__main__":
    unittest.main()
