import json
import unittest

from classroom_chart.chart import SeatingChart
from classroom_chart.errors import SnapshotError
from classroom_chart.geometry import Point, default_rows, seat_position
from classroom_chart.roster import StudentProfile
from classroom_chart.snapshot import LEGACY_NODE_HALF, LayoutSnapshot
from classroom_chart.viewport import Viewport


def student(i, **kw):
    data = {"id": f"s{i}", "full_name": f"Student {i}", "major": "Computer Science"}
    data.update(kw)
    return StudentProfile(**data)


class TestSnapshot(unittest.TestCase):
    def setUp(self):
        self.rows = default_rows()
        self.chart = SeatingChart.empty(self.rows).assign(0, 2, student(1)).assign(4, 25, student(2, hobbies=["chess"]))

    def test_round_trip(self):
        snap = LayoutSnapshot.capture(
            self.chart, Viewport(75, Point(12, -8)), layout_name="Period 3", compact_mode=True
        )
        back = LayoutSnapshot.parse(snap.to_json())
        self.assertEqual(back, snap)
        self.assertEqual(back.build_chart(self.rows), self.chart)
        vp = back.build_viewport()
        self.assertEqual((vp.zoom, vp.offset), (75, Point(12, -8)))
        self.assertEqual(back.seated_count(), 2)

    def test_payload_shape(self):
        snap = LayoutSnapshot.capture(self.chart, Viewport(), layout_name="X", layout_id=7)
        payload = snap.to_payload()
        self.assertEqual(payload["version"], 1)
        self.assertEqual(payload["layout_id"], 7)
        self.assertEqual(payload["offset"], {"x": 0.0, "y": 0.0})
        self.assertNotIn("layout_id", snap.to_payload(include_layout_id=False))
        json.dumps(payload)

    def test_parse_accepts_bytes_and_mappings(self):
        raw = LayoutSnapshot.capture(self.chart, Viewport()).to_json()
        self.assertEqual(LayoutSnapshot.parse(raw.encode()).seated_count(), 2)
        self.assertEqual(LayoutSnapshot.parse(json.loads(raw)).seated_count(), 2)

    def test_zoom_is_clamped(self):
        snap = LayoutSnapshot.parse({"version": 1, "zoom": 10})
        self.assertEqual(snap.zoom, 50)

    def test_rejects_bad_input(self):
        for bad in ("{not json", "[1, 2]", {"version": 2}, {"version": 1, "seating_chart": "nope"}):
            with self.assertRaises(SnapshotError):
                LayoutSnapshot.parse(bad)

    def test_rejects_student_without_name(self):
        with self.assertRaises(SnapshotError):
            LayoutSnapshot.parse({"version": 1, "seating_chart": [[{"id": "x"}]]})


class TestLegacyMigration(unittest.TestCase):
    def setUp(self):
        self.rows = default_rows()

    def test_camel_case_payload(self):
        legacy = {
            "seatingChart": [[None, {"id": 12, "full_name": "Ada Lovelace", "about_me": "hi"}]],
            "zoom": 200,
            "canvasOffset": {"x": 5, "y": 6},
            "layoutName": "Old",
            "furniture": [{"type": "desk"}],
        }
        snap = LayoutSnapshot.parse(legacy, self.rows)
        self.assertEqual(snap.version, 1)
        self.assertEqual(snap.zoom, 100)
        self.assertFalse(snap.compact_mode)
        self.assertEqual(snap.layout_name, "Old")
        self.assertEqual((snap.offset.x, snap.offset.y), (5, 6))
        ref = snap.seating_chart[0][1]
        self.assertEqual((ref.id, ref.bio), ("12", "hi"))

    def test_legacy_student_fields(self):
        legacy = {
            "seatingChart": [
                [
                    {
                        "id": "a",
                        "full_name": "Grace Hopper",
                        "profile_picture_url": "http://img/g.png",
                        "favorite_movies": [{"title": "Severance", "year": 2022, "type": "tv"}],
                        "professor_notes": [{"notes": "asks good questions", "created_at": "2024-09-01T10:00:00"}],
                    }
                ]
            ]
        }
        ref = LayoutSnapshot.parse(legacy, self.rows).seating_chart[0][0]
        self.assertEqual(ref.picture_url, "http://img/g.png")
        self.assertEqual(ref.favorite_media[0].kind, "tv")
        self.assertEqual(ref.favorite_media[0].year, "2022")
        self.assertEqual(ref.notes[0].text, "asks good questions")

    def test_malformed_legacy_payloads(self):
        bad_payloads = (
            {"seatingChart": [5]},
            {"students": [{"data": {"id": "1", "full_name": "A B"}, "position": {"x": "left", "y": 0}}]},
            {"students": [{"data": {"id": "1", "full_name": "A B"}, "position": "front"}]},
            {"students": 7},
        )
        for bad in bad_payloads:
            with self.assertRaises(SnapshotError):
                LayoutSnapshot.parse(bad, self.rows)

    def test_free_placement_snaps_to_nearest_seat(self):
        p = seat_position(2, 10, self.rows[2])
        legacy = {
            "students": [
                {"data": {"id": "1", "full_name": "A B"}, "position": {"x": p.x - LEGACY_NODE_HALF, "y": p.y - LEGACY_NODE_HALF}},
                {"data": {"id": "2", "full_name": "C D"}, "position": {"x": p.x - LEGACY_NODE_HALF, "y": p.y - LEGACY_NODE_HALF}},
            ]
        }
        chart = LayoutSnapshot.parse(legacy, self.rows).build_chart(self.rows)
        self.assertEqual(chart.get(2, 10).id, "1")
        second = chart.find("2")
        self.assertIsNotNone(second)
        self.assertNotEqual((second.row, second.seat), (2, 10))
        self.assertEqual(chart.total_occupied(), 2)


if __name__ == "__main__":
    unittest.main()
