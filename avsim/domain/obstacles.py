from typing import NamedTuple, Optional, Tuple

from avsim.domain.geometry import Rect, point_in_rect, distance_to_rect
from avsim.domain.models import MapVariant
from avsim.domain import config


class ObstacleLayout(NamedTuple):
    buildings: Tuple[Rect, ...] = ()
    roads: Tuple[Rect, ...] = ()
    storage_units: Tuple[Rect, ...] = ()


CITY_BUILDINGS = (
    Rect(150, 150, 120, 200),
    Rect(400, 100, 180, 120),
    Rect(600, 300, 120, 200),
    Rect(250, 400, 200, 120),
    Rect(500, 450, 100, 100),
)

CITY_ROADS = (
    # Horizontal
    Rect(0, 90, 800, 40),
    Rect(0, 300, 800, 40),
    Rect(0, 510, 800, 40),
    # Vertical
    Rect(90, 0, 40, 600),
    Rect(300, 0, 40, 600),
    Rect(510, 0, 40, 600),
    Rect(720, 0, 40, 600),
)

# Two banks of racks separated by a cross aisle at y 240..340
WAREHOUSE_STORAGE_UNITS = (
    Rect(200, 60, 60, 180),
    Rect(330, 60, 60, 180),
    Rect(460, 60, 60, 180),
    Rect(590, 60, 60, 180),
    Rect(200, 340, 60, 200),
    Rect(330, 340, 60, 200),
    Rect(460, 340, 60, 200),
    Rect(590, 340, 60, 200),
)

CITY_LAYOUT = ObstacleLayout(buildings=CITY_BUILDINGS, roads=CITY_ROADS)
WAREHOUSE_LAYOUT = ObstacleLayout(storage_units=WAREHOUSE_STORAGE_UNITS)
EMPTY_LAYOUT = ObstacleLayout()


def default_layout(variant: MapVariant) -> ObstacleLayout:
    return CITY_LAYOUT if variant == MapVariant.CITY else WAREHOUSE_LAYOUT


def is_on_any_road(x: float, y: float, layout: ObstacleLayout = CITY_LAYOUT) -> bool:
    for road in layout.roads:
        if point_in_rect(x, y, road):
            return True
    return False


def is_in_any_building(x: float, y: float, buffer: float = 0.0, layout: ObstacleLayout = CITY_LAYOUT) -> bool:
    for building in layout.buildings:
        if point_in_rect(x, y, building, buffer):
            return True
    return False


def is_in_any_storage_unit(x: float, y: float, gap: float = config.STORAGE_GAP,
                           layout: ObstacleLayout = WAREHOUSE_LAYOUT) -> bool:
    for unit in layout.storage_units:
        if point_in_rect(x, y, unit, gap):
            return True
    return False


def is_obstructed(x: float, y: float, variant: MapVariant, layout: ObstacleLayout, buffer: float) -> bool:
    """Building test for the city, storage unit test for the warehouse."""
    if variant == MapVariant.CITY:
        return is_in_any_building(x, y, buffer, layout)
    return is_in_any_storage_unit(x, y, buffer, layout)


def is_valid_placement(x: float, y: float, variant: MapVariant, layout: ObstacleLayout) -> bool:
    if not (0 <= x < config.MAP_WIDTH and 0 <= y < config.MAP_HEIGHT):
        return False
    if variant == MapVariant.CITY:
        return is_on_any_road(x, y, layout) and not is_in_any_building(x, y, config.PLACEMENT_BUFFER, layout)
    return not is_in_any_storage_unit(x, y, config.STORAGE_GAP, layout)


def obstacle_clearance(x: float, y: float, variant: MapVariant, layout: ObstacleLayout) -> float:
    rects = layout.buildings if variant == MapVariant.CITY else layout.storage_units
    if not rects:
        return float("inf")
    return min(distance_to_rect(x, y, rect) for rect in rects)


def segment_crosses(a, b, variant: MapVariant, layout: ObstacleLayout, buffer: float, samples: int) -> bool:
    """Samples the segment a-b at ``samples`` interior points (a excluded, b included)."""
    for i in range(1, samples + 1):
        t = i / samples
        if is_obstructed(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t, variant, layout, buffer):
            return True
    return False


def first_storage_unit_on_segment(a, b, layout: ObstacleLayout, gap: float = config.STORAGE_GAP,
                                  samples: int = config.SEGMENT_SAMPLES * 4) -> Optional[Rect]:
    """Storage unit closest to ``a`` that the segment a-b runs through, if any."""
    for i in range(1, samples + 1):
        t = i / samples
        x = a.x + (b.x - a.x) * t
        y = a.y + (b.y - a.y) * t
        for unit in layout.storage_units:
            if point_in_rect(x, y, unit, gap):
                return unit
    return None
