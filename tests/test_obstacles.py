import math
import unittest

from avsim.domain.geometry import Point, Rect
from avsim.domain.models import MapVariant
from avsim.domain.obstacles import (
    CITY_LAYOUT, EMPTY_LAYOUT, WAREHOUSE_LAYOUT, first_storage_unit_on_segment, is_in_any_building,
    is_in_any_storage_unit, is_on_any_road, is_valid_placement, obstacle_clearance, segment_crosses
)


class TestObstacles(unittest.TestCase):
    def test_building_membership(self):
        self.assertTrue(is_in_any_building(200, 200))
        self.assertFalse(is_in_any_building(50, 50))
        self.assertFalse(is_in_any_building(145, 200))
        self.assertTrue(is_in_any_building(145, 200, buffer=10))

    def test_roads(self):
        self.assertTrue(is_on_any_road(100, 300))
        self.assertTrue(is_on_any_road(10, 110))
        self.assertFalse(is_on_any_road(50, 50))

    def test_storage_units_use_gap(self):
        self.assertTrue(is_in_any_storage_unit(230, 100))
        self.assertTrue(is_in_any_storage_unit(195, 100))
        self.assertFalse(is_in_any_storage_unit(180, 100))
        self.assertFalse(is_in_any_storage_unit(300, 290))

    def test_valid_placement_city(self):
        self.assertTrue(is_valid_placement(110, 50, MapVariant.CITY, CITY_LAYOUT))
        self.assertFalse(is_valid_placement(50, 50, MapVariant.CITY, CITY_LAYOUT))
        self.assertFalse(is_valid_placement(450, 110, MapVariant.CITY, CITY_LAYOUT))

    def test_valid_placement_warehouse(self):
        self.assertTrue(is_valid_placement(100, 100, MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT))
        self.assertFalse(is_valid_placement(230, 100, MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT))
        self.assertFalse(is_valid_placement(900, 10, MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT))

    def test_clearance(self):
        self.assertEqual(obstacle_clearance(100, 100, MapVariant.WAREHOUSE, EMPTY_LAYOUT), math.inf)
        self.assertAlmostEqual(obstacle_clearance(180, 100, MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT), 20.0)
        self.assertEqual(obstacle_clearance(200, 200, MapVariant.CITY, CITY_LAYOUT), 0.0)

    def test_segment_crosses_storage(self):
        self.assertTrue(segment_crosses(Point(100, 150), Point(300, 150), MapVariant.WAREHOUSE,
                                        WAREHOUSE_LAYOUT, 8, 10))
        self.assertFalse(segment_crosses(Point(100, 290), Point(700, 290), MapVariant.WAREHOUSE,
                                         WAREHOUSE_LAYOUT, 8, 40))

    def test_first_storage_unit_on_segment(self):
        unit = first_storage_unit_on_segment(Point(100, 150), Point(500, 150), WAREHOUSE_LAYOUT)
        self.assertEqual(unit, Rect(200, 60, 60, 180))
        self.assertIsNone(first_storage_unit_on_segment(Point(100, 290), Point(700, 290), WAREHOUSE_LAYOUT))


if __name__ == '__main__':
    unittest.main()
