import random
import unittest

from avsim.domain.geometry import Rect
from avsim.domain.models import MapVariant, Severity
from avsim.domain.obstacles import CITY_LAYOUT, ObstacleLayout, WAREHOUSE_LAYOUT, default_layout, is_valid_placement
from avsim.systems.environment import (
    PlacementError, charge_station, generate_pedestrians, generate_traffic_conditions, place_position
)
from factories import pos


class TestPlacement(unittest.TestCase):
    def test_valid_preferred_point_is_kept(self):
        placement = place_position(random.Random(1), MapVariant.WAREHOUSE, preferred=pos(100, 100))
        self.assertEqual(placement.position, pos(100, 100))
        self.assertFalse(placement.fallback)

    def test_invalid_preferred_point_moves_to_nearest_valid(self):
        placement = place_position(random.Random(1), MapVariant.WAREHOUSE, preferred=pos(230, 150))
        self.assertTrue(placement.fallback)
        self.assertTrue(is_valid_placement(placement.position.x, placement.position.y,
                                           MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT))
        self.assertLessEqual(abs(placement.position.x - 230), 40)

    def test_random_placements_are_valid(self):
        rng = random.Random(5)
        for variant, layout in ((MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT), (MapVariant.CITY, CITY_LAYOUT)):
            for _ in range(30):
                p = place_position(rng, variant).position
                self.assertTrue(is_valid_placement(p.x, p.y, variant, layout))

    def test_same_seed_same_placement(self):
        a = place_position(random.Random(11), MapVariant.CITY)
        b = place_position(random.Random(11), MapVariant.CITY)
        self.assertEqual(a, b)

    def test_no_valid_point_raises(self):
        solid = ObstacleLayout(storage_units=(Rect(-10, -10, 820, 620),))
        with self.assertRaises(PlacementError):
            place_position(random.Random(1), MapVariant.WAREHOUSE, solid, max_tries=3)


class TestGenerators(unittest.TestCase):
    def test_traffic_conditions(self):
        traffic = generate_traffic_conditions(random.Random(42), 5, MapVariant.WAREHOUSE)
        self.assertEqual(len(traffic), 5)
        for condition in traffic:
            self.assertIn(condition.severity, list(Severity))
            self.assertTrue(40 <= condition.affectedRadius <= 100)
            self.assertTrue(is_valid_placement(condition.position.x, condition.position.y,
                                               MapVariant.WAREHOUSE, WAREHOUSE_LAYOUT))
        self.assertEqual(traffic, generate_traffic_conditions(random.Random(42), 5, MapVariant.WAREHOUSE))
        self.assertEqual(generate_traffic_conditions(random.Random(42), 0), [])

    def test_pedestrians(self):
        pedestrians = generate_pedestrians(random.Random(42), MapVariant.CITY)
        self.assertTrue(8 <= len(pedestrians) <= 12)
        self.assertEqual(pedestrians[0].id, "PED-001")
        self.assertEqual(len({p.id for p in pedestrians}), len(pedestrians))
        for pedestrian in pedestrians:
            self.assertTrue(10 <= pedestrian.speed <= 20)
            self.assertTrue(pedestrian.isBlocking)
            for point in (pedestrian.position, pedestrian.destination):
                self.assertTrue(is_valid_placement(point.x, point.y, MapVariant.CITY, CITY_LAYOUT))

    def test_charge_stations(self):
        self.assertEqual(charge_station(MapVariant.WAREHOUSE), pos(120, 120))
        self.assertEqual(charge_station(MapVariant.CITY), pos(740, 530))

    def test_charge_stations_are_valid_placements(self):
        for variant in MapVariant:
            station = charge_station(variant)
            self.assertTrue(is_valid_placement(station.x, station.y, variant, default_layout(variant)))


if __name__ == '__main__':
    unittest.main()
