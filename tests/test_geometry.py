import unittest

from classroom_chart.geometry import (
    CENTER_X,
    CURVE_DEPTH,
    GeometryError,
    Point,
    RowConfig,
    chart_bounds,
    default_rows,
    nearest_seat,
    row_baseline,
    seat_position,
    table_at_point,
    table_outline,
    table_polygon,
    to_chart,
    to_screen,
)


class TestSeatPosition(unittest.TestCase):
    def test_default_rows(self):
        rows = default_rows()
        self.assertEqual([r.label for r in rows], ["A", "B", "C", "D", "E"])
        self.assertTrue(all(r.seat_count == 26 for r in rows))

    def test_deterministic(self):
        row = RowConfig("A", 26, 1200)
        for i in range(row.seat_count):
            self.assertEqual(seat_position(2, i, row), seat_position(2, i, row))

    def test_u_curve(self):
        for n in (3, 4, 7, 26):
            row = RowConfig("B", n, 900)
            mid = seat_position(1, n // 2, row).y
            self.assertGreater(seat_position(1, 0, row).y, mid)
            self.assertGreater(seat_position(1, n - 1, row).y, mid)

    def test_ends_on_baseline(self):
        row = RowConfig("C", 5, 1000)
        self.assertAlmostEqual(seat_position(3, 0, row).y, row_baseline(3))
        self.assertAlmostEqual(seat_position(3, 2, row).y, row_baseline(3) - CURVE_DEPTH)

    def test_single_seat(self):
        p = seat_position(0, 0, RowConfig("A", 1, 600))
        self.assertEqual(p, Point(CENTER_X, row_baseline(0) - CURVE_DEPTH))

    def test_scales_with_own_width(self):
        narrow = RowConfig("A", 10, 600)
        wide = RowConfig("B", 10, 1200)
        self.assertAlmostEqual(seat_position(0, 0, narrow).x, CENTER_X - 300)
        self.assertAlmostEqual(seat_position(1, 0, wide).x, CENTER_X - 600)
        self.assertAlmostEqual(seat_position(0, 9, narrow).x, CENTER_X + 300)

    def test_explicit_total_seats(self):
        row = RowConfig("A", 26, 1200)
        self.assertEqual(seat_position(0, 1, row, total_seats=3).x, CENTER_X)

    def test_invalid_row(self):
        with self.assertRaises(GeometryError):
            RowConfig("A", -1, 100)
        with self.assertRaises(GeometryError):
            RowConfig("A", 3, 0)


class TestTableOutline(unittest.TestCase):
    def test_closed_ring(self):
        ring = table_outline(RowConfig("A", 26, 1200), 0, samples=10)
        self.assertEqual(ring[0], ring[-1])
        self.assertEqual(len(ring), 2 * 11 + 1)

    def test_polygon_valid(self):
        poly = table_polygon(RowConfig("A", 26, 1200), 2)
        self.assertTrue(poly.is_valid)
        self.assertGreater(poly.area, 0)

    def test_table_at_point(self):
        rows = default_rows()
        # between the back edge (140 - 34 - 40 = 66) and the front edge (30) at the middle
        self.assertEqual(table_at_point(rows, Point(CENTER_X, 48)), 0)
        self.assertIsNone(table_at_point(rows, seat_position(0, 13, rows[0])))


class TestHitTesting(unittest.TestCase):
    def test_nearest_seat(self):
        rows = default_rows()
        target = seat_position(1, 3, rows[1])
        self.assertEqual(nearest_seat(rows, target), (1, 3))
        other = nearest_seat(rows, target, occupied={(1, 3)})
        self.assertIsNotNone(other)
        self.assertNotEqual(other, (1, 3))

    def test_nearest_seat_max_distance(self):
        rows = default_rows()
        self.assertIsNone(nearest_seat(rows, Point(-5000, -5000), max_distance=50))

    def test_bounds_cover_seats(self):
        rows = default_rows()
        minx, miny, maxx, maxy = chart_bounds(rows)
        for r, row in enumerate(rows):
            for s in range(row.seat_count):
                p = seat_position(r, s, row)
                self.assertTrue(minx <= p.x <= maxx and miny <= p.y <= maxy)

    def test_screen_transform_round_trip(self):
        p = Point(123.0, -45.5)
        offset = Point(30, -12)
        origin = Point(8, 64)
        screen = to_screen(p, 75, offset, origin)
        back = to_chart(screen, 75, offset, origin)
        self.assertAlmostEqual(back.x, p.x)
        self.assertAlmostEqual(back.y, p.y)


if __name__ == "__main__":
    unittest.main()
