import logging
import math
from typing import List, NamedTuple, Optional, Sequence

from avsim.domain import config
from avsim.domain.decisions import LogEvent, RerouteReason
from avsim.domain.geometry import Point, Rect, distance
from avsim.domain.models import MapVariant, Pedestrian, Position, Severity, TrafficCondition, Vehicle
from avsim.domain.obstacles import (
    first_storage_unit_on_segment, is_in_any_building, is_in_any_storage_unit, obstacle_clearance, segment_crosses
)
from avsim.planning.pathfinder import Pathfinder
from avsim.systems.perception import is_traffic_in_path

logger = logging.getLogger(__name__)

# Log event recorded when a trigger fires
REASON_EVENTS = {
    RerouteReason.CRITICAL_BATTERY: LogEvent.BATTERY_LOW,
    RerouteReason.LOW_TIRE_PRESSURE: LogEvent.TIRE_PRESSURE,
    RerouteReason.HIGH_TRAFFIC_AHEAD: LogEvent.HIGH_TRAFFIC_AVOID,
    RerouteReason.TRAFFIC_ACCUMULATION: LogEvent.TRAFFIC_ACCUMULATION_REROUTE,
    RerouteReason.PEDESTRIAN_BLOCKING: LogEvent.PEDESTRIAN_BLOCKING_REROUTE,
    RerouteReason.BUILDING_IN_PATH: LogEvent.BUILDING_AVOID,
    RerouteReason.BUILDING_AHEAD: LogEvent.BUILDING_AVOID,
    RerouteReason.COLLISION_RISK: LogEvent.COLLISION_AVOID,
}

# Conditions that persist until serviced; these fire once per vehicle
LATCHED_REASONS = (RerouteReason.CRITICAL_BATTERY, RerouteReason.LOW_TIRE_PRESSURE)


class RerouteDecision(NamedTuple):
    reroute: bool
    reason: Optional[RerouteReason] = None
    route: Optional["ChainedRoute"] = None  # precomputed for in-place reroutes

    @property
    def event(self) -> Optional[LogEvent]:
        return REASON_EVENTS.get(self.reason) if self.reason else None


NO_REROUTE = RerouteDecision(False)


class ChainedRoute(NamedTuple):
    route: List[Position]
    waypoints: List[Position]   # targets actually routed to, after retargeting
    skipped: List[Position]

    @property
    def ok(self) -> bool:
        return len(self.route) > 1


def remaining_targets(vehicle: Vehicle) -> List[Position]:
    if vehicle.waypoints:
        return list(vehicle.waypoints)
    if len(vehicle.route) > 1 and vehicle.currentRouteIndex < len(vehicle.route) - 1:
        return [vehicle.route[-1]]
    return []


def upcoming_points(vehicle: Vehicle, count: Optional[int] = None) -> List[Position]:
    points = vehicle.route[vehicle.currentRouteIndex + 1:]
    return points if count is None else points[:count]


def traffic_score(points: Sequence[Position], traffic: Sequence[TrafficCondition]) -> int:
    score = 0
    for point in points:
        for condition in traffic:
            if distance(point, condition.position) <= condition.affectedRadius:
                if condition.severity == Severity.HIGH:
                    score += config.TRAFFIC_SCORE_HIGH
                elif condition.severity == Severity.MEDIUM:
                    score += config.TRAFFIC_SCORE_MEDIUM
    return score


def building_ahead(vehicle: Vehicle, layout, count: Optional[int] = None) -> bool:
    for point in upcoming_points(vehicle, count):
        if is_in_any_building(point.x, point.y, config.MOTION_BUILDING_BUFFER, layout):
            return True
    return False


class Rerouter:
    """Decides when a vehicle must be rerouted and rebuilds its route.

    Rebuilding chains one planner call per remaining waypoint. A leg the
    planner cannot produce falls back to a rectangular detour around the
    blocking storage unit (warehouse), then to the nearest point clear of
    obstacles, and finally the waypoint is skipped.
    """

    def __init__(self, pathfinder: Pathfinder):
        self.pathfinder = pathfinder

    def should_reroute(self, vehicle: Vehicle, traffic: Sequence[TrafficCondition],
                       pedestrians: Sequence[Pedestrian], map_variant: MapVariant) -> RerouteDecision:
        if len(vehicle.route) < 2 or vehicle.currentRouteIndex >= len(vehicle.route) - 1:
            return NO_REROUTE

        params = vehicle.parameters
        if params.batteryPercentage < config.CRITICAL_BATTERY and RerouteReason.CRITICAL_BATTERY not in vehicle.latchedAlerts:
            return RerouteDecision(True, RerouteReason.CRITICAL_BATTERY)
        if vehicle.lowBatteryMode:
            return NO_REROUTE
        if params.tirePressure < config.LOW_TIRE_PRESSURE and RerouteReason.LOW_TIRE_PRESSURE not in vehicle.latchedAlerts:
            return RerouteDecision(True, RerouteReason.LOW_TIRE_PRESSURE)
        if vehicle.rerouteCooldownMs > 0:
            return NO_REROUTE

        for condition in traffic:
            if condition.severity == Severity.HIGH and is_traffic_in_path(vehicle, condition):
                return RerouteDecision(True, RerouteReason.HIGH_TRAFFIC_AHEAD)

        if traffic_score(upcoming_points(vehicle, config.TRAFFIC_LOOKAHEAD_POINTS), traffic) >= config.TRAFFIC_SCORE_THRESHOLD:
            return RerouteDecision(True, RerouteReason.TRAFFIC_ACCUMULATION)

        for point in upcoming_points(vehicle, config.PEDESTRIAN_LOOKAHEAD_POINTS):
            for pedestrian in pedestrians:
                if pedestrian.isBlocking and distance(point, pedestrian.position) < config.PEDESTRIAN_ROUTE_CLEARANCE:
                    return RerouteDecision(True, RerouteReason.PEDESTRIAN_BLOCKING)

        if map_variant == MapVariant.CITY and building_ahead(vehicle, self.pathfinder.layout(map_variant)):
            chained = self.chained_route(vehicle, traffic, pedestrians, map_variant)
            return RerouteDecision(True, RerouteReason.BUILDING_IN_PATH, chained)

        return NO_REROUTE

    def chained_route(self, vehicle: Vehicle, traffic: Sequence[TrafficCondition],
                      pedestrians: Sequence[Pedestrian], map_variant: MapVariant,
                      targets: Optional[Sequence[Position]] = None) -> ChainedRoute:
        origin = Position(x=vehicle.position.x, y=vehicle.position.y)
        combined = [origin]
        kept: List[Position] = []
        skipped: List[Position] = []
        current = origin

        for target in (remaining_targets(vehicle) if targets is None else targets):
            if distance(current, target) <= config.WAYPOINT_REACHED_DISTANCE:
                continue
            leg = self.plan_leg(current, target, traffic, pedestrians, vehicle, map_variant)
            if len(leg) < 2:
                skipped.append(target)
                logger.info("%s: skipping unreachable waypoint (%.1f, %.1f)", vehicle.id, target.x, target.y)
                continue
            combined.extend(leg[1:])
            kept.append(leg[-1])
            current = leg[-1]

        return ChainedRoute(combined, kept, skipped)

    def obstructed(self, point, map_variant: MapVariant) -> bool:
        layout = self.pathfinder.layout(map_variant)
        if map_variant == MapVariant.CITY:
            return is_in_any_building(point.x, point.y, config.MOTION_BUILDING_BUFFER, layout)
        return is_in_any_storage_unit(point.x, point.y, config.STORAGE_GAP, layout)

    def plan_leg(self, start: Position, target: Position, traffic, pedestrians, vehicle: Vehicle,
                 map_variant: MapVariant) -> List[Position]:
        # A target inside an obstacle is moved out before planning
        if self.obstructed(target, map_variant):
            target = self.nearest_clear_point(target, map_variant)
            if target is None:
                return []

        leg = self.pathfinder.find_path(start, target, traffic, pedestrians, vehicle.parameters, map_variant)
        if len(leg) > 1:
            return leg

        if map_variant == MapVariant.WAREHOUSE:
            leg = self.storage_detour(start, target)
            if len(leg) > 1:
                return leg

        clear = self.nearest_clear_point(target, map_variant)
        if clear is not None:
            leg = self.pathfinder.find_path(start, clear, traffic, pedestrians, vehicle.parameters, map_variant)
            if len(leg) > 1:
                return leg
        return []

    def storage_detour(self, start, target) -> List[Position]:
        """Routes around the first storage unit on the straight line via its
        expanded corners, taking the shorter way round."""
        layout = self.pathfinder.layout(MapVariant.WAREHOUSE)
        if is_in_any_storage_unit(target.x, target.y, config.STORAGE_GAP, layout):
            return []
        unit = first_storage_unit_on_segment(start, target, layout)
        if unit is None:
            return []

        margin = config.STORAGE_GAP + config.DETOUR_CLEARANCE
        r = Rect(unit.x - margin, unit.y - margin, unit.width + 2 * margin, unit.height + 2 * margin)
        corners = [Point(r.x, r.y), Point(r.x + r.width, r.y),
                   Point(r.x + r.width, r.y + r.height), Point(r.x, r.y + r.height)]

        entry = min(range(4), key=lambda i: distance(start, corners[i]))
        exit_ = min(range(4), key=lambda i: distance(target, corners[i]))
        clockwise = [corners[(entry + k) % 4] for k in range((exit_ - entry) % 4 + 1)]
        counter = [corners[(entry - k) % 4] for k in range((entry - exit_) % 4 + 1)]

        def length(via):
            pts = [start, *via, target]
            return sum(distance(a, b) for a, b in zip(pts, pts[1:]))

        via = min((clockwise, counter), key=length)
        points = [Point(start.x, start.y), *via, Point(target.x, target.y)]
        for point in via:
            if not self.pathfinder.in_bounds(point.x, point.y) or \
                    is_in_any_storage_unit(point.x, point.y, config.STORAGE_GAP, layout):
                return []
        for a, b in zip(points, points[1:]):
            samples = max(config.SEGMENT_SAMPLES, math.ceil(distance(a, b) / self.pathfinder.step))
            if segment_crosses(a, b, MapVariant.WAREHOUSE, layout, config.STORAGE_GAP, samples):
                return []
        return [Position(x=p.x, y=p.y) for p in points]

    def nearest_clear_point(self, target, map_variant: MapVariant) -> Optional[Position]:
        """Spiral search for the closest point clearing every obstacle by the
        minimum gap. Ties on radius go to the point with the most clearance.
        Returns None if the target is already clear or nothing is found."""
        layout = self.pathfinder.layout(map_variant)
        if obstacle_clearance(target.x, target.y, map_variant, layout) > config.CLEAR_POINT_MIN_GAP:
            return None

        for radius in range(1, config.CLEAR_POINT_MAX_RADIUS + 1):
            best = None
            best_clearance = config.CLEAR_POINT_MIN_GAP
            for degrees in range(0, 360, config.CLEAR_POINT_ANGLE_STEP):
                angle = math.radians(degrees)
                x = target.x + radius * math.cos(angle)
                y = target.y + radius * math.sin(angle)
                if not self.pathfinder.in_bounds(x, y):
                    continue
                clearance = obstacle_clearance(x, y, map_variant, layout)
                if clearance > best_clearance:
                    best, best_clearance = Position(x=x, y=y), clearance
            if best is not None:
                return best
        return None
