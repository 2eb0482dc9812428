from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, computed_field


class DecisionKind(str, Enum):
    INITIALIZED = "INITIALIZED"
    MOVING = "MOVING"
    WAYPOINT_ADDED = "WAYPOINT_ADDED"
    REACHED_WAYPOINT = "REACHED_WAYPOINT"
    PEDESTRIAN_DETECTED = "PEDESTRIAN_DETECTED"
    SLOWING_FOR_PEDESTRIAN = "SLOWING_FOR_PEDESTRIAN"
    STOPPED_FOR_PEDESTRIAN = "STOPPED_FOR_PEDESTRIAN"
    REROUTING = "REROUTING"
    DESTINATION_REACHED = "DESTINATION_REACHED"
    UNREACHABLE = "UNREACHABLE"


class RerouteReason(str, Enum):
    CRITICAL_BATTERY = "CRITICAL_BATTERY"
    LOW_TIRE_PRESSURE = "LOW_TIRE_PRESSURE"
    HIGH_TRAFFIC_AHEAD = "HIGH_TRAFFIC_AHEAD"
    TRAFFIC_ACCUMULATION = "TRAFFIC_ACCUMULATION"
    PEDESTRIAN_BLOCKING = "PEDESTRIAN_BLOCKING"
    BUILDING_IN_PATH = "BUILDING_IN_PATH"
    BUILDING_AHEAD = "BUILDING_AHEAD"
    COLLISION_RISK = "COLLISION_RISK"
    CHARGE_STATION = "CHARGE_STATION"
    RANDOM_DESTINATION = "RANDOM_DESTINATION"


class UnreachableCause(str, Enum):
    BUILDING = "BUILDING"
    COLLISION_RISK = "COLLISION_RISK"
    STORAGE_UNIT = "STORAGE_UNIT"


class LogEvent(str, Enum):
    BATTERY_LOW = "BATTERY_LOW"
    TIRE_PRESSURE = "TIRE_PRESSURE"
    HIGH_TRAFFIC_AVOID = "HIGH_TRAFFIC_AVOID"
    TRAFFIC_ACCUMULATION_REROUTE = "TRAFFIC_ACCUMULATION_REROUTE"
    PEDESTRIAN_BLOCKING_REROUTE = "PEDESTRIAN_BLOCKING_REROUTE"
    PEDESTRIAN_STOP = "PEDESTRIAN_STOP"
    PEDESTRIAN_SLOW = "PEDESTRIAN_SLOW"
    PEDESTRIAN_DETECTED = "PEDESTRIAN_DETECTED"
    BUILDING_AVOID = "BUILDING_AVOID"
    COLLISION_AVOID = "COLLISION_AVOID"
    REROUTE = "REROUTE"
    REROUTE_FAILED = "REROUTE_FAILED"
    UNREACHABLE_DESTINATION = "UNREACHABLE_DESTINATION"
    STORAGE_BLOCKED = "STORAGE_BLOCKED"
    DESTINATION_REACHED = "DESTINATION_REACHED"
    WAYPOINT_ADDED = "WAYPOINT_ADDED"
    LOW_BATTERY_MODE = "LOW_BATTERY_MODE"


_REASON_TEXT = {
    RerouteReason.CRITICAL_BATTERY: "Emergency reroute: critical battery level",
    RerouteReason.LOW_TIRE_PRESSURE: "Reroute: low tire pressure detected",
    RerouteReason.HIGH_TRAFFIC_AHEAD: "Reroute: high traffic zone directly in path",
    RerouteReason.TRAFFIC_ACCUMULATION: "Reroute: significant traffic accumulation ahead",
    RerouteReason.PEDESTRIAN_BLOCKING: "Reroute: blocking pedestrian on upcoming route",
    RerouteReason.BUILDING_IN_PATH: "Reroute: building in path",
    RerouteReason.BUILDING_AHEAD: "Reroute: building detected ahead",
    RerouteReason.COLLISION_RISK: "Reroute: predicted collision course with another vehicle",
    RerouteReason.CHARGE_STATION: "Low battery mode: rerouting to charge station",
    RerouteReason.RANDOM_DESTINATION: "Auto-reroute to random destination",
}

_CAUSE_TEXT = {
    UnreachableCause.BUILDING: "Destination unreachable (building)",
    UnreachableCause.COLLISION_RISK: "Destination unreachable (collision risk)",
    UnreachableCause.STORAGE_UNIT: "Destination unreachable (storage unit)",
}


class Decision(BaseModel):
    """Tagged vehicle state. Consumers branch on ``kind``; ``label`` is display text only."""

    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    waypoint: Optional[int] = None
    reason: Optional[RerouteReason] = None
    cause: Optional[UnreachableCause] = None

    @classmethod
    def of(cls, kind: DecisionKind) -> "Decision":
        return cls(kind=kind)

    @classmethod
    def reached_waypoint(cls, index: int) -> "Decision":
        return cls(kind=DecisionKind.REACHED_WAYPOINT, waypoint=index)

    @classmethod
    def rerouting(cls, reason: RerouteReason) -> "Decision":
        return cls(kind=DecisionKind.REROUTING, reason=reason)

    @classmethod
    def unreachable(cls, cause: UnreachableCause) -> "Decision":
        return cls(kind=DecisionKind.UNREACHABLE, cause=cause)

    @computed_field
    @property
    def label(self) -> str:
        if self.kind == DecisionKind.REACHED_WAYPOINT:
            return f"Reached waypoint {self.waypoint}"
        if self.kind == DecisionKind.REROUTING and self.reason is not None:
            return _REASON_TEXT[self.reason]
        if self.kind == DecisionKind.UNREACHABLE and self.cause is not None:
            return _CAUSE_TEXT[self.cause]
        return {
            DecisionKind.INITIALIZED: "Initialized",
            DecisionKind.MOVING: "Moving",
            DecisionKind.WAYPOINT_ADDED: "New waypoint added",
            DecisionKind.PEDESTRIAN_DETECTED: "Pedestrian detected near path",
            DecisionKind.SLOWING_FOR_PEDESTRIAN: "Slowing for pedestrian",
            DecisionKind.STOPPED_FOR_PEDESTRIAN: "Stopped for pedestrian",
            DecisionKind.DESTINATION_REACHED: "Destination reached",
        }.get(self.kind, "Rerouting")
