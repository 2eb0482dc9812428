"""Per-tick vehicle update.

``VehicleSystem.update`` takes one vehicle plus a read-only snapshot of the
world and returns a new vehicle; the argument is never modified. Within a
tick the rules run in priority order: pedestrians, vehicle ahead, traffic
zone occupancy, reroute triggers, building lookahead, collision prediction,
motion, parameter decay and arrival.
"""
import logging
import random
from typing import Callable, List, Optional, Sequence

from avsim.domain import config
from avsim.domain.decisions import Decision, DecisionKind, LogEvent, RerouteReason, UnreachableCause
from avsim.domain.geometry import distance, min_distance_between_segments, move_toward
from avsim.domain.models import (
    HealthReport, LogEntry, MapVariant, Pedestrian, Position, Severity, TrafficCondition, Vehicle, VehicleParameters
)
from avsim.domain.obstacles import segment_crosses
from avsim.kernel.event_log import EventLog
from avsim.planning.pathfinder import Pathfinder
from avsim.systems.environment import charge_station, place_position
from avsim.systems.perception import (
    PedestrianCheck, PedestrianResponse, check_pedestrian_blocking, in_traffic_zone, next_waypoint,
    predict_vehicle_position, vehicle_ahead, zones_containing
)
from avsim.systems.rerouting import LATCHED_REASONS, REASON_EVENTS, ChainedRoute, Rerouter, building_ahead

logger = logging.getLogger(__name__)

# Triggers that are re-evaluated every tick and would otherwise replan continuously
_COOLDOWN_REASONS = (
    RerouteReason.HIGH_TRAFFIC_AHEAD,
    RerouteReason.TRAFFIC_ACCUMULATION,
    RerouteReason.PEDESTRIAN_BLOCKING,
    RerouteReason.COLLISION_RISK,
)

# Reroute failures that halt the vehicle; the rest keep the previous route
_FAILURE_CAUSES = {
    RerouteReason.BUILDING_IN_PATH: UnreachableCause.BUILDING,
    RerouteReason.BUILDING_AHEAD: UnreachableCause.BUILDING,
    RerouteReason.COLLISION_RISK: UnreachableCause.COLLISION_RISK,
}

_CONSUMPTION_MULTIPLIERS = {
    Severity.HIGH: config.HIGH_TRAFFIC_CONSUMPTION,
    Severity.MEDIUM: config.MEDIUM_TRAFFIC_CONSUMPTION,
    Severity.LOW: config.LOW_TRAFFIC_CONSUMPTION,
}


def default_parameters() -> VehicleParameters:
    return VehicleParameters(
        batteryPercentage=config.DEFAULT_BATTERY,
        fuelConsumptionPerBlock=config.DEFAULT_CONSUMPTION,
        tirePressure=config.DEFAULT_TIRE_PRESSURE,
        speed=config.DEFAULT_SPEED,
        initialSpeed=config.DEFAULT_SPEED,
        mileage=config.DEFAULT_MILEAGE,
        maxBatteryCapacity=config.DEFAULT_MAX_BATTERY,
        maxFuelCapacity=config.DEFAULT_MAX_FUEL
    )


def nominal_speed(params: VehicleParameters) -> float:
    initial = params.initialSpeed
    if params.batteryPercentage < 15:
        return max(10.0, initial * 0.5)
    if params.batteryPercentage < 30:
        return max(15.0, initial * 0.7)
    if params.tirePressure < 75:
        return max(20.0, initial * 0.8)
    if params.tirePressure < 85:
        return max(25.0, initial * 0.9)
    return initial


def decay_parameters(params: VehicleParameters, distance_moved: float, traffic: Sequence[TrafficCondition],
                     position, rng: random.Random) -> VehicleParameters:
    rate = params.fuelConsumptionPerBlock
    for zone in zones_containing(position, traffic):
        rate *= _CONSUMPTION_MULTIPLIERS[zone.severity]

    updated = params.model_copy()
    updated.mileage = params.mileage + distance_moved / 1000.0
    updated.batteryPercentage = max(0.0, params.batteryPercentage - rate * distance_moved / 100.0)
    wear = rng.random() * config.MAX_TIRE_WEAR + distance_moved / 10000.0
    updated.tirePressure = max(config.MIN_TIRE_PRESSURE, params.tirePressure - wear)
    updated.speed = nominal_speed(updated)
    return updated


def health_report(vehicle: Vehicle) -> HealthReport:
    params = vehicle.parameters
    speed_ratio = params.speed / params.initialSpeed if params.initialSpeed > 0 else 0.0
    score = round((params.batteryPercentage + params.tirePressure + speed_ratio * 100) / 3)
    status = "good" if score > 80 else "fair" if score > 60 else "poor"
    return HealthReport(vehicleId=vehicle.id, score=score, status=status)


class VehicleSystem:
    def __init__(self, pathfinder: Optional[Pathfinder] = None, rng: Optional[random.Random] = None,
                 event_log: Optional[EventLog] = None, map_type: MapVariant = MapVariant.WAREHOUSE):
        self.pathfinder = pathfinder if pathfinder is not None else Pathfinder()
        self.rerouter = Rerouter(self.pathfinder)
        self.rng = rng if rng is not None else random.Random()
        self.event_log = event_log if event_log is not None else EventLog()
        self.map_type = map_type
        self._on_destination_reached: Optional[Callable[[str], None]] = None

    def set_destination_reached_callback(self, callback: Optional[Callable[[str], None]]):
        self._on_destination_reached = callback

    def set_map_type(self, map_type: MapVariant):
        self.map_type = map_type

    def get_logs(self) -> List[LogEntry]:
        return self.event_log.get_logs()

    @property
    def layout(self):
        return self.pathfinder.layout(self.map_type)

    def create_vehicle(self, vehicle_id: str, start_position, initial_route: Sequence = ()) -> Vehicle:
        placement = place_position(self.rng, self.map_type, self.layout, preferred=start_position)
        pos = placement.position
        targets = [Position(x=p.x, y=p.y) for p in initial_route]
        return Vehicle(
            id=vehicle_id,
            position=pos,
            parameters=default_parameters(),
            route=[pos, *targets],
            waypoints=targets
        )

    def append_waypoint(self, vehicle: Vehicle, point, traffic: Sequence[TrafficCondition] = (),
                        pedestrians: Sequence[Pedestrian] = ()) -> Vehicle:
        """Extends the route with a planned leg from its current end; the route index is kept."""
        v = vehicle.model_copy(deep=True)
        target = Position(x=point.x, y=point.y)
        route = v.route or [v.position]
        leg = self.pathfinder.find_path(route[-1], target, traffic, pedestrians, v.parameters, self.map_type)
        if len(leg) < 2:
            logger.info("%s: no planned leg to (%.1f, %.1f), using a straight segment", v.id, target.x, target.y)
            leg = [route[-1], target]
        v.route = route + leg[1:]
        v.waypoints.append(target)
        v.lastDecision = Decision.of(DecisionKind.WAYPOINT_ADDED)
        self.event_log.add(v.id, LogEvent.WAYPOINT_ADDED, f"New waypoint at ({target.x:.0f}, {target.y:.0f})", v.position)
        return v

    def drain_fuel(self, vehicle: Vehicle, traffic: Sequence[TrafficCondition] = (),
                   pedestrians: Sequence[Pedestrian] = ()) -> Vehicle:
        v = vehicle.model_copy(deep=True)
        low, high = config.DRAIN_BATTERY_RANGE
        v.parameters.batteryPercentage = float(self.rng.randint(low, high))
        v.parameters.speed = nominal_speed(v.parameters)
        v.lowBatteryMode = True
        if v.parameters.batteryPercentage < config.CRITICAL_BATTERY and RerouteReason.CRITICAL_BATTERY not in v.latchedAlerts:
            v.latchedAlerts.append(RerouteReason.CRITICAL_BATTERY)

        station = charge_station(self.map_type)
        chained = self.rerouter.chained_route(v, traffic, pedestrians, self.map_type, targets=[station])
        if chained.ok:
            v.route, v.waypoints = chained.route, chained.waypoints
        else:
            v.route, v.waypoints = [v.position, station], [station]
        v.currentRouteIndex = 0
        v.isMoving = True
        v.lastDecision = Decision.rerouting(RerouteReason.CHARGE_STATION)
        self.event_log.add(v.id, LogEvent.LOW_BATTERY_MODE, v.lastDecision.label, v.position)
        return v

    def update(self, vehicle: Vehicle, traffic: Sequence[TrafficCondition], pedestrians: Sequence[Pedestrian],
               delta_ms: float, all_vehicles: Optional[Sequence[Vehicle]] = None,
               selected_index: Optional[int] = None, vehicle_index: Optional[int] = None) -> Vehicle:
        v = vehicle.model_copy(deep=True)
        v.rerouteCooldownMs = max(0.0, v.rerouteCooldownMs - delta_ms)
        if not v.route:
            v.route = [v.position]
        v.currentRouteIndex = min(max(v.currentRouteIndex, 0), len(v.route) - 1)

        selected = (all_vehicles is not None and selected_index is not None
                    and vehicle_index is not None and vehicle_index == selected_index)
        speed_override: Optional[float] = None
        obstacle_detected = False

        # 1. Pedestrians
        check = check_pedestrian_blocking(v, pedestrians, delta_ms)
        if check is not None:
            if check.response == PedestrianResponse.STOP:
                return self._stop_for_pedestrian(v, check)
            if check.response == PedestrianResponse.SLOW:
                speed_override = self.rng.uniform(*config.PEDESTRIAN_SLOW_SPEED)
                self._transition(v, Decision.of(DecisionKind.SLOWING_FOR_PEDESTRIAN), LogEvent.PEDESTRIAN_SLOW,
                                 f"Slowing for {check.pedestrian.id} at {check.distance:.1f} units")
            else:
                self._transition(v, Decision.of(DecisionKind.PEDESTRIAN_DETECTED), LogEvent.PEDESTRIAN_DETECTED,
                                 f"{check.pedestrian.id} crossing ahead")

        # 2-4. Vehicle ahead and traffic zones
        if selected and self.map_type == MapVariant.CITY and vehicle_ahead(v, all_vehicles, vehicle_index):
            obstacle_detected = True
        if in_traffic_zone(v.position, traffic):
            obstacle_detected = True
        if obstacle_detected and speed_override is None:
            speed_override = self.rng.uniform(*config.OBSTACLE_SPEED)

        # 5. Reroute triggers
        decision = self.rerouter.should_reroute(v, traffic, pedestrians, self.map_type)
        if decision.reroute and self._reroute(v, decision.reason, traffic, pedestrians, decision.route):
            return v

        # 6. Building lookahead
        if self.map_type == MapVariant.CITY and building_ahead(v, self.layout, config.BUILDING_LOOKAHEAD_POINTS):
            if self._reroute(v, RerouteReason.BUILDING_AHEAD, traffic, pedestrians):
                return v

        # 7. Collision prediction
        if selected and v.rerouteCooldownMs <= 0 and self._collision_predicted(v, all_vehicles, vehicle_index):
            if self._reroute(v, RerouteReason.COLLISION_RISK, traffic, pedestrians):
                return v

        # 8. Motion
        moved = 0.0
        start_pos = v.position
        target = next_waypoint(v)
        if target is not None:
            was_moving = v.isMoving
            v.isMoving = True
            speed = speed_override if speed_override is not None else nominal_speed(v.parameters)
            next_pos = move_toward(v.position, target, speed * delta_ms / 1000.0)

            if self.map_type == MapVariant.CITY and self._crosses(v.position, next_pos, config.MOTION_BUILDING_BUFFER,
                                                                   config.MOTION_BUILDING_SAMPLES):
                if self._reroute(v, RerouteReason.BUILDING_IN_PATH, traffic, pedestrians):
                    return v
            elif self.map_type == MapVariant.WAREHOUSE and self._crosses(v.position, next_pos, config.STORAGE_GAP,
                                                                         config.SEGMENT_SAMPLES):
                self._halt(v, UnreachableCause.STORAGE_UNIT, LogEvent.STORAGE_BLOCKED,
                           "Next segment runs through a storage unit. Stopping.")
                return v
            else:
                moved = distance(v.position, next_pos)
                v.position = Position(x=next_pos.x, y=next_pos.y)
                v.totalDistance += moved
                if distance(v.position, target) < config.WAYPOINT_REACHED_DISTANCE:
                    v.currentRouteIndex += 1
                    self._pop_waypoint(v, target)
                    v.lastDecision = Decision.reached_waypoint(v.currentRouteIndex)
                elif not was_moving and v.lastDecision == vehicle.lastDecision:
                    v.lastDecision = Decision.of(DecisionKind.MOVING)

        # 10. Decay, before arrival so an arrived vehicle reports zero speed
        if moved > 0:
            v.parameters = decay_parameters(v.parameters, moved, traffic, start_pos, self.rng)
        if speed_override is not None:
            v.parameters.speed = speed_override

        # 9. Arrival
        if v.currentRouteIndex >= len(v.route) - 1:
            if v.isMoving:
                v.isMoving = False
                v.waypoints = []
                v.lastDecision = Decision.of(DecisionKind.DESTINATION_REACHED)
                self.event_log.add(v.id, LogEvent.DESTINATION_REACHED, v.lastDecision.label, v.position)
                if self._on_destination_reached is not None:
                    self._on_destination_reached(v.id)
            v.parameters.speed = 0.0
        return v

    def _crosses(self, a, b, buffer: float, samples: int) -> bool:
        return segment_crosses(a, b, self.map_type, self.layout, buffer, samples)

    def _transition(self, v: Vehicle, decision: Decision, event: LogEvent, details: str):
        if v.lastDecision != decision:
            self.event_log.add(v.id, event, details, v.position)
        v.lastDecision = decision

    def _stop_for_pedestrian(self, v: Vehicle, check: PedestrianCheck) -> Vehicle:
        v.isMoving = False
        v.parameters.speed = 0.0
        self._transition(v, Decision.of(DecisionKind.STOPPED_FOR_PEDESTRIAN), LogEvent.PEDESTRIAN_STOP,
                         f"Stopped for {check.pedestrian.id} at {check.distance:.1f} units")
        return v

    def _halt(self, v: Vehicle, cause: UnreachableCause, event: LogEvent, details: str):
        v.isMoving = False
        self._transition(v, Decision.unreachable(cause), event, details)

    def _pop_waypoint(self, v: Vehicle, reached):
        if v.waypoints and distance(v.waypoints[0], reached) <= config.WAYPOINT_REACHED_DISTANCE:
            v.waypoints.pop(0)

    def _reroute(self, v: Vehicle, reason: RerouteReason, traffic, pedestrians,
                 chained: Optional[ChainedRoute] = None) -> bool:
        """Replans through the remaining waypoints. Returns True when the vehicle had to halt."""
        if reason in LATCHED_REASONS and reason not in v.latchedAlerts:
            v.latchedAlerts.append(reason)
        if reason == RerouteReason.CRITICAL_BATTERY and not v.lowBatteryMode:
            v.lowBatteryMode = True
            self.event_log.add(v.id, LogEvent.LOW_BATTERY_MODE, "Entering low battery mode", v.position)
        if reason in _COOLDOWN_REASONS:
            v.rerouteCooldownMs = config.REROUTE_COOLDOWN_MS

        self.event_log.add(v.id, REASON_EVENTS[reason], Decision.rerouting(reason).label, v.position)
        if chained is None:
            chained = self.rerouter.chained_route(v, traffic, pedestrians, self.map_type)

        if chained.ok:
            v.route = chained.route
            v.waypoints = chained.waypoints
            v.currentRouteIndex = 0
            v.lastDecision = Decision.rerouting(reason)
            if chained.skipped:
                self.event_log.add(v.id, LogEvent.REROUTE,
                                   f"Skipped {len(chained.skipped)} unreachable waypoint(s)", v.position)
            return False

        cause = _FAILURE_CAUSES.get(reason)
        if cause is not None:
            self._halt(v, cause, LogEvent.UNREACHABLE_DESTINATION,
                       f"No route around obstacle after {reason.value}. Stopping.")
            return True

        logger.info("%s: reroute for %s found no route, keeping current one", v.id, reason.value)
        self.event_log.add(v.id, LogEvent.REROUTE_FAILED,
                           f"No alternative route for {reason.value}; keeping current route", v.position)
        return False

    def _collision_predicted(self, v: Vehicle, all_vehicles: Sequence[Vehicle], vehicle_index: int) -> bool:
        if next_waypoint(v) is None:
            return False
        prev_main = v.position
        prev_others = [other.position for other in all_vehicles]
        for t in range(config.COLLISION_TIME_STEP_MS, config.COLLISION_LOOKAHEAD_MS + 1, config.COLLISION_TIME_STEP_MS):
            main = predict_vehicle_position(v, t)
            for j, other in enumerate(all_vehicles):
                if j == vehicle_index:
                    continue
                predicted = predict_vehicle_position(other, t)
                if min_distance_between_segments(prev_main, main, prev_others[j], predicted) < config.COLLISION_THRESHOLD:
                    return True
                prev_others[j] = predicted
            prev_main = main
        return False
