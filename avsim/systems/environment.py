import logging
import math
import random
from typing import List, NamedTuple, Optional

from avsim.domain import config
from avsim.domain.geometry import Point
from avsim.domain.models import MapVariant, Pedestrian, Position, Severity, TrafficCondition
from avsim.domain.obstacles import ObstacleLayout, default_layout, is_valid_placement

logger = logging.getLogger(__name__)


class PlacementError(ValueError):
    pass


class Placement(NamedTuple):
    position: Position
    fallback: bool  # True when retries ran out and the nearest valid point was used


def random_point(rng: random.Random) -> Point:
    return Point(rng.random() * config.MAP_WIDTH, rng.random() * config.MAP_HEIGHT)


def nearest_valid_position(origin, map_variant: MapVariant, layout: ObstacleLayout,
                           step: float = config.GRID_STEP) -> Optional[Position]:
    best = None
    best_distance = math.inf
    for i in range(int(math.ceil(config.MAP_WIDTH / step))):
        for j in range(int(math.ceil(config.MAP_HEIGHT / step))):
            x, y = i * step, j * step
            if not is_valid_placement(x, y, map_variant, layout):
                continue
            d = math.hypot(x - origin.x, y - origin.y)
            if d < best_distance:
                best, best_distance = Position(x=x, y=y), d
    return best


def place_position(rng: random.Random, map_variant: MapVariant, layout: Optional[ObstacleLayout] = None,
                   preferred=None, max_tries: int = config.PLACEMENT_MAX_TRIES) -> Placement:
    """Valid spawn point for the map variant.

    A valid ``preferred`` point is used as is; an invalid one is moved to the
    nearest valid point. Without a preference up to ``max_tries`` random
    points are drawn before falling back the same way.
    """
    layout = layout or default_layout(map_variant)
    if preferred is not None:
        candidate = Point(preferred.x, preferred.y)
    else:
        candidate = random_point(rng)
        tries = 0
        while not is_valid_placement(candidate.x, candidate.y, map_variant, layout) and tries < max_tries:
            candidate = random_point(rng)
            tries += 1

    if is_valid_placement(candidate.x, candidate.y, map_variant, layout):
        return Placement(Position(x=candidate.x, y=candidate.y), False)

    fallback = nearest_valid_position(candidate, map_variant, layout)
    if fallback is None:
        raise PlacementError(f"No valid {map_variant.value} placement exists on the map")
    logger.warning("Placement (%.1f, %.1f) invalid on %s map, using nearest valid point (%.1f, %.1f)",
                   candidate.x, candidate.y, map_variant.value, fallback.x, fallback.y)
    return Placement(fallback, True)


def generate_traffic_conditions(rng: random.Random, count: int = config.DEFAULT_TRAFFIC_COUNT,
                                map_variant: MapVariant = MapVariant.WAREHOUSE,
                                layout: Optional[ObstacleLayout] = None) -> List[TrafficCondition]:
    low, high = config.TRAFFIC_RADIUS_RANGE
    severities = [Severity.LOW, Severity.MEDIUM, Severity.HIGH]
    traffic = []
    for _ in range(count):
        placement = place_position(rng, map_variant, layout)
        traffic.append(TrafficCondition(
            position=placement.position,
            severity=rng.choice(severities),
            affectedRadius=low + rng.random() * (high - low)
        ))
    return traffic


def generate_pedestrians(rng: random.Random, map_variant: MapVariant = MapVariant.WAREHOUSE,
                         layout: Optional[ObstacleLayout] = None) -> List[Pedestrian]:
    min_count, max_count = config.PEDESTRIAN_COUNT_RANGE
    low, high = config.PEDESTRIAN_SPEED_RANGE
    pedestrians = []
    for i in range(rng.randint(min_count, max_count)):
        start = place_position(rng, map_variant, layout)
        destination = place_position(rng, map_variant, layout)
        pedestrians.append(Pedestrian(
            id=f"PED-{i + 1:03d}",
            position=start.position,
            destination=destination.position,
            speed=low + rng.random() * (high - low),
            isBlocking=True
        ))
    return pedestrians


def charge_station(map_variant: MapVariant) -> Position:
    x, y = config.CHARGE_STATIONS[map_variant.value]
    return Position(x=x, y=y)

