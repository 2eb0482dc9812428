"""Cost-weighted A* over a continuous, step-discretised 2D map.

Neighbours are produced by adding the eight step offsets to the current
continuous position (no snapping to a global grid), so two routes reach the
same node only when their coordinates match exactly. Search nodes live in an
arena list and refer to their parent by index.
"""
import heapq
import logging
import math
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence

from avsim.domain import config
from avsim.domain.geometry import Point, distance, heuristic
from avsim.domain.models import MapVariant, Pedestrian, Position, Severity, TrafficCondition, VehicleParameters
from avsim.domain.obstacles import (
    ObstacleLayout, default_layout, is_in_any_building, is_in_any_storage_unit, segment_crosses
)

logger = logging.getLogger(__name__)


class PathNode(NamedTuple):
    position: Point
    g_cost: float
    h_cost: float
    parent: Optional[int]  # index into the search arena

    @property
    def f_cost(self) -> float:
        return self.g_cost + self.h_cost


def vehicle_cost_factor(params: VehicleParameters) -> float:
    factor = 1.0
    if params.batteryPercentage < 20:
        factor *= config.CRITICAL_BATTERY_COST_FACTOR
    elif params.batteryPercentage < 40:
        factor *= config.LOW_BATTERY_COST_FACTOR

    if params.tirePressure < 75:
        factor *= config.BAD_TIRE_COST_FACTOR
    elif params.tirePressure < 85:
        factor *= config.WORN_TIRE_COST_FACTOR

    speed_ratio = params.speed / params.initialSpeed if params.initialSpeed > 0 else 1.0
    if speed_ratio < config.SLOW_SPEED_RATIO:
        factor *= config.SLOW_SPEED_COST_FACTOR
    return factor


class CostModel:
    """Edge cost for one search. Traffic, pedestrians and vehicle state are
    flattened once up front since the model is evaluated for every expansion."""

    def __init__(self, traffic: Iterable[TrafficCondition], pedestrians: Iterable[Pedestrian],
                 vehicle_parameters: VehicleParameters, map_variant: MapVariant, layout: ObstacleLayout):
        self.zones = [(t.position.x, t.position.y, t.affectedRadius, t.severity) for t in traffic]
        self.pedestrians = [(p.position.x, p.position.y, p.isBlocking) for p in pedestrians]
        self.factor = vehicle_cost_factor(vehicle_parameters)
        self.check_buildings = map_variant == MapVariant.CITY
        self.layout = layout

    def __call__(self, from_pos, to_pos) -> float:
        if self.check_buildings and is_in_any_building(to_pos.x, to_pos.y, config.PLANNER_BUILDING_BUFFER, self.layout):
            return config.FORBIDDEN_COST

        cost = distance(from_pos, to_pos) + config.STEP_BIAS

        for zx, zy, radius, severity in self.zones:
            d = math.hypot(to_pos.x - zx, to_pos.y - zy)
            if d <= radius:
                if severity == Severity.HIGH:
                    return config.FORBIDDEN_COST
                falloff = 1 - d / radius
                multiplier = (config.MEDIUM_SEVERITY_MULTIPLIER if severity == Severity.MEDIUM
                              else config.LOW_SEVERITY_MULTIPLIER)
                cost *= 1 + multiplier * falloff

        for px, py, blocking in self.pedestrians:
            d = math.hypot(to_pos.x - px, to_pos.y - py)
            if d <= config.PEDESTRIAN_COST_RADIUS:
                proximity = max(0.0, 1 - d / config.PEDESTRIAN_COST_RADIUS)
                penalty = config.BLOCKING_PEDESTRIAN_PENALTY if blocking else config.PASSING_PEDESTRIAN_PENALTY
                cost += penalty * proximity

        return cost * self.factor


class Pathfinder:
    def __init__(self, map_width: float = config.MAP_WIDTH, map_height: float = config.MAP_HEIGHT,
                 step: float = config.GRID_STEP, layouts: Optional[Dict[MapVariant, ObstacleLayout]] = None,
                 max_iterations: int = config.MAX_ITERATIONS):
        self.map_width = map_width
        self.map_height = map_height
        self.step = step
        self.layouts = dict(layouts or {})
        self.max_iterations = max_iterations
        s = step
        self._offsets = ((0, -s), (s, 0), (0, s), (-s, 0), (s, -s), (s, s), (-s, s), (-s, -s))

    def layout(self, map_variant: MapVariant) -> ObstacleLayout:
        return self.layouts.get(map_variant, default_layout(map_variant))

    def in_bounds(self, x: float, y: float) -> bool:
        return 0 <= x < self.map_width and 0 <= y < self.map_height

    def cost_model(self, traffic, pedestrians, vehicle_parameters, map_variant) -> CostModel:
        return CostModel(traffic, pedestrians, vehicle_parameters, map_variant, self.layout(map_variant))

    def edge_cost(self, from_pos, to_pos, traffic: Sequence[TrafficCondition], pedestrians: Sequence[Pedestrian],
                  vehicle_parameters: VehicleParameters, map_variant: MapVariant = MapVariant.WAREHOUSE) -> float:
        return self.cost_model(traffic, pedestrians, vehicle_parameters, map_variant)(from_pos, to_pos)

    def neighbors(self, position: Point, map_variant: MapVariant, from_inside_building: bool = False) -> List[Point]:
        layout = self.layout(map_variant)
        result: List[Point] = []
        for dx, dy in self._offsets:
            nx_, ny_ = position.x + dx, position.y + dy
            if not self.in_bounds(nx_, ny_):
                continue
            candidate = Point(nx_, ny_)
            if map_variant == MapVariant.CITY:
                if from_inside_building or not is_in_any_building(nx_, ny_, config.PLANNER_BUILDING_BUFFER, layout):
                    result.append(candidate)
            else:
                if is_in_any_storage_unit(nx_, ny_, config.STORAGE_GAP, layout):
                    continue
                if segment_crosses(position, candidate, map_variant, layout, config.STORAGE_GAP, config.SEGMENT_SAMPLES):
                    continue
                result.append(candidate)
        return result

    def find_path(self, start, goal, traffic: Sequence[TrafficCondition], pedestrians: Sequence[Pedestrian],
                  vehicle_parameters: VehicleParameters,
                  map_variant: MapVariant = MapVariant.WAREHOUSE) -> List[Position]:
        """Returns a smoothed waypoint list from start to goal, or [] when no route exists."""
        start_pt = Point(float(start.x), float(start.y))
        goal_pt = Point(float(goal.x), float(goal.y))
        cost = self.cost_model(traffic, pedestrians, vehicle_parameters, map_variant)
        layout = self.layout(map_variant)
        tolerance = self.step * config.GOAL_TOLERANCE_STEPS

        arena: List[PathNode] = [PathNode(start_pt, 0.0, heuristic(start_pt, goal_pt), None)]
        open_heap = [(arena[0].f_cost, 0, 0)]  # (fCost, insertion order, arena index)
        counter = 1
        closed = set()
        g_scores = {start_pt: 0.0}
        iterations = 0

        while open_heap:
            if iterations >= self.max_iterations:
                logger.warning("Planner hit iteration cap (%d) from %s to %s", self.max_iterations, start_pt, goal_pt)
                return []
            iterations += 1

            _, _, index = heapq.heappop(open_heap)
            node = arena[index]
            if node.position in closed:
                continue
            closed.add(node.position)

            if distance(node.position, goal_pt) < tolerance:
                raw = self._reconstruct(arena, index, goal_pt)
                return [Position(x=p.x, y=p.y) for p in self.smooth_path(raw, map_variant)]

            inside = (map_variant == MapVariant.CITY and
                      is_in_any_building(node.position.x, node.position.y, config.PLANNER_BUILDING_BUFFER, layout))
            for neighbor in self.neighbors(node.position, map_variant, inside):
                if neighbor in closed:
                    continue
                tentative = node.g_cost + cost(node.position, neighbor)
                if tentative < g_scores.get(neighbor, math.inf):
                    g_scores[neighbor] = tentative
                    h = heuristic(neighbor, goal_pt)
                    arena.append(PathNode(neighbor, tentative, h, index))
                    heapq.heappush(open_heap, (tentative + h, counter, len(arena) - 1))
                    counter += 1

        logger.debug("Planner exhausted search space from %s to %s", start_pt, goal_pt)
        return []

    def _reconstruct(self, arena: List[PathNode], index: int, goal: Point) -> List[Point]:
        path: List[Point] = []
        current: Optional[int] = index
        while current is not None:
            node = arena[current]
            path.append(node.position)
            current = node.parent
        path.reverse()
        if not path or distance(path[-1], goal) > config.GOAL_SNAP_DISTANCE:
            path.append(goal)
        return path

    def sight_buffer(self, map_variant: MapVariant) -> float:
        return config.CITY_SIGHT_BUFFER if map_variant == MapVariant.CITY else config.STORAGE_GAP

    def has_line_of_sight(self, a, b, map_variant: MapVariant = MapVariant.WAREHOUSE) -> bool:
        layout = self.layout(map_variant)
        buffer = self.sight_buffer(map_variant)
        steps = math.ceil(distance(a, b) / self.step)
        for i in range(1, steps):
            t = i / steps
            x = a.x + (b.x - a.x) * t
            y = a.y + (b.y - a.y) * t
            if not self.in_bounds(x, y):
                return False
            if map_variant == MapVariant.CITY:
                if is_in_any_building(x, y, buffer, layout):
                    return False
            elif is_in_any_storage_unit(x, y, buffer, layout):
                return False
        return True

    def smooth_path(self, path: Sequence, map_variant: MapVariant = MapVariant.WAREHOUSE) -> list:
        """Greedy line-of-sight reduction.

        From each anchor the farthest point at most three indices ahead that
        is both visible and within the smoothing window (three diagonal grid
        steps) is kept. The window is also bounded by distance, which makes
        smoothing an already smoothed path a no-op.
        """
        if len(path) <= 2:
            return list(path)

        window = self.step * config.SMOOTHING_WINDOW_STEPS * math.sqrt(2) + 1e-9
        last = len(path) - 1
        smoothed = [path[0]]
        current = 0
        while current < last:
            farthest = current + 1
            for i in range(min(last, current + config.SMOOTHING_WINDOW_STEPS), current + 1, -1):
                if distance(path[current], path[i]) <= window and self.has_line_of_sight(path[current], path[i], map_variant):
                    farthest = i
                    break
            smoothed.append(path[farthest])
            current = farthest

        if smoothed[-1] != path[-1]:
            smoothed.append(path[-1])
        return smoothed
