import logging
import random
from typing import List, Optional

from avsim.domain import config
from avsim.domain.decisions import Decision, DecisionKind, RerouteReason
from avsim.domain.models import (
    HealthReport, LogEntry, MapVariant, Position, SimulationSnapshot, Vehicle
)
from avsim.domain.state import SimulationState
from avsim.kernel.command_queue import CommandQueue
from avsim.kernel.event_log import EventLog
from avsim.kernel.snapshot_builder import SnapshotBuilder
from avsim.planning.pathfinder import Pathfinder
from avsim.systems.environment import generate_pedestrians, generate_traffic_conditions, place_position
from avsim.systems.pedestrian_system import PedestrianSystem
from avsim.systems.vehicle_system import VehicleSystem, health_report

logger = logging.getLogger(__name__)


class SimulationKernel:
    def __init__(self, pathfinder: Optional[Pathfinder] = None):
        self.state = SimulationState()
        self.dt = config.TICK_INTERVAL_MS
        self.command_queue = CommandQueue()
        self.rng = random.Random()
        self.event_log = EventLog()
        self.vehicle_system = VehicleSystem(pathfinder, rng=self.rng, event_log=self.event_log)
        self.pedestrian_system = PedestrianSystem(self.rng)
        self.snapshot_builder = SnapshotBuilder()
        self.arrivals: List[str] = []
        self.vehicle_system.set_destination_reached_callback(self._on_destination_reached)
        self.initialized = False
        self.seed = 42
        self._vehicle_counter = 0

    def initialize(self, seed: int = 42, map_type: Optional[MapVariant] = None):
        self.seed = seed
        self.rng.seed(seed)
        if map_type is not None:
            self.state.map_type = map_type
        self.state.tick_id = 0
        self.state.time = 0.0
        self.state.selected_index = 0
        self.vehicle_system.set_map_type(self.state.map_type)
        self.event_log.clear()
        self.arrivals = []
        self._initialize_scenario()
        self.initialized = True
        logger.info("Kernel initialized (seed=%d, map=%s)", seed, self.state.map_type.value)

    def _initialize_scenario(self):
        self._vehicle_counter = 0
        self.state.vehicles = []
        if self.state.map_type == MapVariant.CITY:
            for i in range(config.CITY_FLEET_SIZE):
                self.add_vehicle(self.allocate_vehicle_id(), Position(x=100.0 + i * 100.0, y=100.0))
        else:
            self.add_vehicle(self.allocate_vehicle_id(), Position(x=100.0, y=100.0))
        self.generate_traffic(config.DEFAULT_TRAFFIC_COUNT)
        self.generate_pedestrians()

    @property
    def layout(self):
        return self.vehicle_system.layout

    def _on_destination_reached(self, vehicle_id: str):
        self.arrivals.append(vehicle_id)
        logger.info("Vehicle %s reached its destination", vehicle_id)

    def queue_command(self, command):
        self.command_queue.add(command)

    def run_tick(self, delta_ms: Optional[float] = None):
        if not self.initialized: self.initialize()

        # 1. Process Commands
        self.command_queue.apply_all(self)
        if not self.state.is_running:
            return

        dt = delta_ms if delta_ms is not None else self.dt * self.state.speed_multiplier

        # 2. Logic
        if self.state.map_type == MapVariant.CITY:
            self._assign_wander_routes()
        self._update_vehicles(dt)
        self.state.pedestrians = self.pedestrian_system.update(
            self.state.pedestrians, dt, self.state.map_type, self.layout
        )

        # 3. Time Advance
        self.state.time += dt
        self.state.tick_id += 1

    def _update_vehicles(self, dt: float):
        # Every vehicle reads the same pre-tick snapshot
        snapshot = list(self.state.vehicles)
        traffic = list(self.state.traffic)
        pedestrians = list(self.state.pedestrians)
        self.state.vehicles = [
            self.vehicle_system.update(v, traffic, pedestrians, dt, snapshot, self.state.selected_index, i)
            for i, v in enumerate(snapshot)
        ]

    def _is_idle(self, vehicle: Vehicle) -> bool:
        at_end = vehicle.currentRouteIndex >= len(vehicle.route) - 1
        return at_end or vehicle.lastDecision.kind == DecisionKind.UNREACHABLE

    def _assign_wander_routes(self):
        for i, vehicle in enumerate(self.state.vehicles):
            if i == self.state.selected_index or vehicle.lowBatteryMode or not self._is_idle(vehicle):
                continue
            destination = place_position(self.rng, self.state.map_type, self.layout).position
            route = self.vehicle_system.pathfinder.find_path(
                vehicle.position, destination, self.state.traffic, self.state.pedestrians,
                vehicle.parameters, self.state.map_type
            )
            if len(route) > 1:
                self.state.vehicles[i] = vehicle.model_copy(update={
                    "route": route,
                    "waypoints": [destination],
                    "currentRouteIndex": 0,
                    "isMoving": True,
                    "lastDecision": Decision.rerouting(RerouteReason.RANDOM_DESTINATION)
                })

    # Vehicle operations

    def allocate_vehicle_id(self) -> str:
        existing = {v.id for v in self.state.vehicles}
        while True:
            self._vehicle_counter += 1
            vehicle_id = f"AV-{self._vehicle_counter:03d}"
            if vehicle_id not in existing:
                return vehicle_id

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        for v in self.state.vehicles:
            if v.id == vehicle_id:
                return v
        return None

    def _replace_vehicle(self, vehicle: Vehicle):
        for i, v in enumerate(self.state.vehicles):
            if v.id == vehicle.id:
                self.state.vehicles[i] = vehicle
                return

    def add_vehicle(self, vehicle_id: str, position, route=()) -> Optional[Vehicle]:
        if self.get_vehicle(vehicle_id) is not None:
            logger.warning("Vehicle id %s already in use, add ignored", vehicle_id)
            return None
        vehicle = self.vehicle_system.create_vehicle(vehicle_id, position, route)
        self.state.vehicles.append(vehicle)
        return vehicle

    def append_waypoint(self, vehicle_id: str, position) -> Optional[Vehicle]:
        vehicle = self.get_vehicle(vehicle_id)
        if vehicle is None:
            logger.warning("Waypoint for unknown vehicle %s ignored", vehicle_id)
            return None
        updated = self.vehicle_system.append_waypoint(vehicle, position, self.state.traffic, self.state.pedestrians)
        self._replace_vehicle(updated)
        return updated

    def drain_fuel(self, vehicle_id: str) -> Optional[Vehicle]:
        vehicle = self.get_vehicle(vehicle_id)
        if vehicle is None:
            logger.warning("Drain fuel for unknown vehicle %s ignored", vehicle_id)
            return None
        updated = self.vehicle_system.drain_fuel(vehicle, self.state.traffic, self.state.pedestrians)
        self._replace_vehicle(updated)
        return updated

    def health(self, vehicle_id: str) -> Optional[HealthReport]:
        vehicle = self.get_vehicle(vehicle_id)
        return health_report(vehicle) if vehicle else None

    # Environment operations

    def generate_traffic(self, count: int = config.DEFAULT_TRAFFIC_COUNT):
        self.state.traffic = generate_traffic_conditions(self.rng, count, self.state.map_type, self.layout)

    def generate_pedestrians(self):
        self.state.pedestrians = generate_pedestrians(self.rng, self.state.map_type, self.layout)

    def set_map_type(self, map_type: MapVariant):
        self.state.map_type = map_type
        self.vehicle_system.set_map_type(map_type)
        self.state.selected_index = 0
        self._initialize_scenario()
        logger.info("Map switched to %s", map_type.value)

    def reset(self):
        self.initialize(self.seed, self.state.map_type)

    # Read models

    def get_state(self) -> SimulationSnapshot:
        return self.snapshot_builder.build(self.state)

    def get_logs(self) -> List[LogEntry]:
        return self.event_log.get_logs()
