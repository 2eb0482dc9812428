"""Detection helpers for the vehicle engine: forward cones, zone occupancy and
short-horizon position prediction. Nothing here mutates its arguments."""
from enum import Enum
from typing import NamedTuple, Optional, Sequence, Tuple

from avsim.domain import config
from avsim.domain.geometry import Point, distance, move_toward, segments_intersect, unit_direction
from avsim.domain.models import Pedestrian, TrafficCondition, Vehicle


class PedestrianResponse(str, Enum):
    STOP = "stop"
    SLOW = "slow"
    DETECTED = "detected"


_SEVERITY_ORDER = {PedestrianResponse.STOP: 0, PedestrianResponse.SLOW: 1, PedestrianResponse.DETECTED: 2}


class PedestrianCheck(NamedTuple):
    response: PedestrianResponse
    pedestrian: Pedestrian
    distance: float


def next_waypoint(vehicle: Vehicle) -> Optional[Point]:
    if vehicle.currentRouteIndex < 0 or vehicle.currentRouteIndex >= len(vehicle.route) - 1:
        return None
    target = vehicle.route[vehicle.currentRouteIndex + 1]
    return Point(target.x, target.y)


def heading(vehicle: Vehicle) -> Optional[Point]:
    """Unit vector toward the next waypoint, None when there is nowhere to go."""
    target = next_waypoint(vehicle)
    if target is None:
        return None
    return unit_direction(vehicle.position, target)


def cone_offsets(origin, direction: Point, target) -> Tuple[float, float, float]:
    """(distance, forward projection, lateral offset) of target relative to origin."""
    tx = target.x - origin.x
    ty = target.y - origin.y
    forward = tx * direction.x + ty * direction.y
    lateral = abs(tx * direction.y - ty * direction.x)
    return distance(origin, target), forward, lateral


def in_detection_cone(origin, direction: Point, target) -> bool:
    dist, forward, lateral = cone_offsets(origin, direction, target)
    return forward >= 0 and lateral < config.LATERAL_DETECTION_WIDTH and dist <= config.PEDESTRIAN_DETECTION_DISTANCE


def check_pedestrian_blocking(vehicle: Vehicle, pedestrians: Sequence[Pedestrian],
                              delta_ms: float) -> Optional[PedestrianCheck]:
    """Most severe pedestrian interaction for this tick.

    A pedestrian inside the forward cone, or one whose next step crosses the
    vehicle's next step, stops the vehicle within stop distance. Inside the
    cone but farther away the vehicle slows. A crossing pedestrian outside
    the cone is only reported.
    """
    direction = heading(vehicle)
    if direction is None:
        return None

    target = next_waypoint(vehicle)
    step_seconds = delta_ms / 1000.0
    vehicle_next = move_toward(vehicle.position, target, vehicle.parameters.speed * step_seconds)

    best: Optional[PedestrianCheck] = None
    for pedestrian in pedestrians:
        dist = distance(vehicle.position, pedestrian.position)
        in_cone = in_detection_cone(vehicle.position, direction, pedestrian.position)
        pedestrian_next = move_toward(pedestrian.position, pedestrian.destination, pedestrian.speed * step_seconds)
        crossing = segments_intersect(vehicle.position, vehicle_next, pedestrian.position, pedestrian_next)

        if (in_cone or crossing) and dist <= config.PEDESTRIAN_STOP_DISTANCE:
            response = PedestrianResponse.STOP
        elif in_cone:
            response = PedestrianResponse.SLOW
        elif crossing:
            response = PedestrianResponse.DETECTED
        else:
            continue

        candidate = PedestrianCheck(response, pedestrian, dist)
        if best is None or (_SEVERITY_ORDER[response], dist) < (_SEVERITY_ORDER[best.response], best.distance):
            best = candidate
    return best


def vehicle_ahead(vehicle: Vehicle, all_vehicles: Sequence[Vehicle], vehicle_index: int) -> bool:
    direction = heading(vehicle)
    if direction is None:
        return False
    for j, other in enumerate(all_vehicles):
        if j == vehicle_index:
            continue
        dist, forward, lateral = cone_offsets(vehicle.position, direction, other.position)
        if forward > 0 and lateral < config.LATERAL_DETECTION_WIDTH and dist < config.PEDESTRIAN_DETECTION_DISTANCE:
            return True
    return False


def zones_containing(position, traffic: Sequence[TrafficCondition]):
    return [t for t in traffic if distance(position, t.position) <= t.affectedRadius]


def in_traffic_zone(position, traffic: Sequence[TrafficCondition]) -> bool:
    return bool(zones_containing(position, traffic))


def is_traffic_in_path(vehicle: Vehicle, condition: TrafficCondition) -> bool:
    direction = heading(vehicle)
    if direction is None:
        return False
    _, forward, lateral = cone_offsets(vehicle.position, direction, condition.position)
    if forward <= 0 or forward > config.TRAFFIC_LOOKAHEAD:
        return False
    return lateral <= config.VEHICLE_WIDTH / 2 + condition.affectedRadius


def predict_vehicle_position(vehicle: Vehicle, time_ms: float) -> Point:
    """Walks the route at the vehicle's current speed for ``time_ms``, halting at the route end."""
    pos = Point(vehicle.position.x, vehicle.position.y)
    if len(vehicle.route) < 2 or next_waypoint(vehicle) is None:
        return pos

    speed = vehicle.parameters.speed or config.SPEED_EPSILON
    remaining = time_ms / 1000.0
    index = vehicle.currentRouteIndex
    while index < len(vehicle.route) - 1 and remaining > 0:
        target = vehicle.route[index + 1]
        time_to_next = distance(pos, target) / speed
        if remaining < time_to_next:
            ratio = remaining / time_to_next
            return Point(pos.x + (target.x - pos.x) * ratio, pos.y + (target.y - pos.y) * ratio)
        pos = Point(target.x, target.y)
        remaining -= time_to_next
        index += 1
    return pos
