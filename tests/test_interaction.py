import unittest

from classroom_chart.chart import SeatingChart
from classroom_chart.errors import SeatingChartError
from classroom_chart.geometry import Point, default_rows, seat_position
from classroom_chart.interaction import DragDropController, DropHint, DropOutcome, FromRoster, FromSeat
from classroom_chart.roster import StudentProfile
from classroom_chart.viewport import Viewport


def student(i):
    return StudentProfile(id=f"s{i}", full_name=f"Student Number{i}", major="DSBA", email=f"s{i}@example.edu")


class TestDragDrop(unittest.TestCase):
    def setUp(self):
        self.rows = default_rows()
        self.viewport = Viewport()
        self.ctl = DragDropController(SeatingChart.empty(self.rows), viewport=self.viewport)
        self.changes = []
        self.ctl.subscribe(self.changes.append)

    def test_drop_from_roster(self):
        src = self.ctl.begin_drag_from_roster(student(1))
        self.assertIsInstance(src, FromRoster)
        self.assertTrue(self.ctl.is_dragging)
        result = self.ctl.drop(0, 3)
        self.assertTrue(result.accepted)
        self.assertFalse(self.ctl.is_dragging)
        self.assertEqual(self.ctl.chart.get(0, 3).id, "s1")
        self.assertEqual(len(self.changes), 1)

    def test_drop_on_occupied_is_rejected(self):
        self.ctl.begin_drag_from_roster(student(1))
        self.ctl.drop(0, 0)
        self.ctl.begin_drag_from_roster(student(2))
        self.ctl.drop(0, 1)
        before = self.ctl.chart

        src = self.ctl.begin_drag_from_seat(0, 0)
        self.assertIsInstance(src, FromSeat)
        self.assertEqual(self.ctl.drag_over(0, 1), DropHint.not_allowed)
        result = self.ctl.drop(0, 1)

        self.assertEqual(result.outcome, DropOutcome.rejected)
        self.assertIs(self.ctl.chart, before)
        self.assertEqual(self.ctl.chart.get(0, 0).id, "s1")
        self.assertEqual(self.ctl.chart.get(0, 1).id, "s2")
        self.assertEqual(len(self.changes), 2)

    def test_move_between_seats(self):
        self.ctl.begin_drag_from_roster(student(1))
        self.ctl.drop(1, 1)
        self.ctl.begin_drag_from_seat(1, 1)
        self.assertEqual(self.ctl.drag_over(2, 2), DropHint.allowed)
        result = self.ctl.drop(2, 2)
        self.assertTrue(result.accepted)
        self.assertIsNone(self.ctl.chart.get(1, 1))
        self.assertEqual(self.ctl.chart.get(2, 2).id, "s1")
        self.assertEqual(self.ctl.chart.total_occupied(), 1)

    def test_drop_back_on_own_seat(self):
        self.ctl.begin_drag_from_roster(student(1))
        self.ctl.drop(1, 1)
        self.ctl.begin_drag_from_seat(1, 1)
        result = self.ctl.drop(1, 1)
        self.assertEqual(result.outcome, DropOutcome.cancelled)
        self.assertEqual(self.ctl.chart.get(1, 1).id, "s1")

    def test_roster_student_already_seated(self):
        self.ctl.begin_drag_from_roster(student(1))
        self.ctl.drop(0, 0)
        self.ctl.begin_drag_from_roster(student(1))
        result = self.ctl.drop(0, 5)
        self.assertEqual(result.outcome, DropOutcome.rejected)
        self.assertIsNone(self.ctl.chart.get(0, 5))

    def test_cancel(self):
        self.ctl.begin_drag_from_roster(student(1))
        result = self.ctl.cancel()
        self.assertEqual(result.outcome, DropOutcome.cancelled)
        self.assertEqual(self.ctl.chart.total_occupied(), 0)
        self.assertEqual(self.ctl.drop(0, 0).outcome, DropOutcome.cancelled)
        self.assertEqual(self.changes, [])

    def test_drag_from_empty_seat(self):
        self.assertIsNone(self.ctl.begin_drag_from_seat(0, 0))
        self.assertFalse(self.ctl.is_dragging)

    def test_single_drag_at_a_time(self):
        self.ctl.begin_drag_from_roster(student(1))
        with self.assertRaises(SeatingChartError):
            self.ctl.begin_drag_from_roster(student(2))

    def test_no_drag_while_panning(self):
        self.viewport.begin_pan(Point(0, 0))
        with self.assertRaises(SeatingChartError):
            self.ctl.begin_drag_from_roster(student(1))

    def test_drop_at_point(self):
        target = seat_position(3, 10, self.rows[3])
        self.ctl.begin_drag_from_roster(student(1))
        result = self.ctl.drop_at(Point(target.x + 3, target.y - 2))
        self.assertTrue(result.accepted)
        self.assertEqual(self.ctl.chart.get(3, 10).id, "s1")

    def test_drop_at_far_point_cancels(self):
        self.ctl.begin_drag_from_roster(student(1))
        result = self.ctl.drop_at(Point(-4000, -4000))
        self.assertEqual(result.outcome, DropOutcome.cancelled)
        self.assertFalse(self.ctl.is_dragging)

    def test_double_click_removes(self):
        self.ctl.begin_drag_from_roster(student(1))
        self.ctl.drop(0, 0)
        self.ctl.click(0, 0)
        self.ctl.double_click(0, 0)
        self.assertIsNone(self.ctl.chart.get(0, 0))
        self.assertIsNone(self.ctl.selected)


class TestSelection(unittest.TestCase):
    def setUp(self):
        chart = SeatingChart.empty(default_rows()).assign(0, 0, student(1))
        self.ctl = DragDropController(chart)

    def test_click_toggles(self):
        self.assertIsNone(self.ctl.click(0, 0))
        self.assertEqual(self.ctl.selected, (0, 0))
        self.ctl.click(0, 0)
        self.assertIsNone(self.ctl.selected)

    def test_compact_mode_detail_card(self):
        self.ctl.compact_mode = True
        detail = self.ctl.click(0, 0)
        self.assertEqual(detail.label, "A1")
        self.assertEqual(detail.student.id, "s1")
        self.assertEqual(self.ctl.detail_card(), detail)
        self.assertIsNone(self.ctl.click(1, 1))

    def test_selection_never_mutates(self):
        before = self.ctl.chart
        self.ctl.click(0, 0)
        self.ctl.click(2, 2)
        self.ctl.clear_selection()
        self.assertIs(self.ctl.chart, before)


if __name__ == "__main__":
    unittest.main()
