from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from avsim.domain.decisions import Decision, DecisionKind, LogEvent, RerouteReason


class MapVariant(str, Enum):
    WAREHOUSE = "warehouse"
    CITY = "city"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class VehicleParameters(BaseModel):
    batteryPercentage: float = Field(ge=0, le=100)
    fuelConsumptionPerBlock: float
    tirePressure: float = Field(ge=60, le=100)
    speed: float
    initialSpeed: float
    mileage: float
    maxBatteryCapacity: float
    maxFuelCapacity: float


class Vehicle(BaseModel):
    id: str
    position: Position
    parameters: VehicleParameters
    route: List[Position]  # route[0] is where the route was computed from
    currentRouteIndex: int = 0
    isMoving: bool = False
    lastDecision: Decision = Decision(kind=DecisionKind.INITIALIZED)
    totalDistance: float = 0.0
    lowBatteryMode: bool = False
    waypoints: List[Position] = []  # Pending targets, last one is the final destination
    latchedAlerts: List[RerouteReason] = []
    rerouteCooldownMs: float = 0.0


class TrafficCondition(BaseModel):
    position: Position
    severity: Severity
    affectedRadius: float = Field(gt=0)


class Pedestrian(BaseModel):
    id: str
    position: Position
    destination: Position
    speed: float
    isBlocking: bool = True


class LogEntry(BaseModel):
    timestamp: float  # ms since epoch
    vehicleId: str
    event: LogEvent
    details: str
    position: Position


# API/Response Models

class SimulationSnapshot(BaseModel):
    tick: int
    time: float  # ms of simulated time
    mapType: MapVariant
    isRunning: bool
    simulationSpeed: float
    selectedVehicleIndex: int
    vehicles: List[Vehicle]
    traffic: List[TrafficCondition]
    pedestrians: List[Pedestrian]


class VehicleCreate(BaseModel):
    id: Optional[str] = None
    position: Position
    route: List[Position] = []


class WaypointAppend(BaseModel):
    position: Position


class PedestrianCreate(BaseModel):
    position: Position
    destination: Position
    speed: float = 3.0
    isBlocking: bool = False


class TrafficGenerate(BaseModel):
    count: int = Field(default=5, ge=0, le=50)


class MapSelection(BaseModel):
    mapType: MapVariant


class SpeedUpdate(BaseModel):
    multiplier: float = Field(gt=0, le=10)


class VehicleSelection(BaseModel):
    index: int = Field(ge=0)


class HealthReport(BaseModel):
    vehicleId: str
    score: int
    status: str  # "good", "fair", "poor"
