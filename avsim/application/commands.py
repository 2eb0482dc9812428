from abc import ABC, abstractmethod
from typing import Any, List, Optional
from avsim.domain.models import MapVariant, Pedestrian, Position, TrafficCondition

class Command(ABC):
    @abstractmethod
    def execute(self, kernel: Any):
        pass

class AddVehicleCommand(Command):
    def __init__(self, vehicle_id: str, position: Position, route: Optional[List[Position]] = None):
        self.vehicle_id = vehicle_id
        self.position = position
        self.route = route or []

    def execute(self, kernel: Any):
        return kernel.add_vehicle(self.vehicle_id, self.position, self.route)

class AppendWaypointCommand(Command):
    def __init__(self, vehicle_id: str, position: Position):
        self.vehicle_id = vehicle_id
        self.position = position

    def execute(self, kernel: Any):
        return kernel.append_waypoint(self.vehicle_id, self.position)

class DrainFuelCommand(Command):
    def __init__(self, vehicle_id: str):
        self.vehicle_id = vehicle_id

    def execute(self, kernel: Any):
        return kernel.drain_fuel(self.vehicle_id)

class SelectVehicleCommand(Command):
    def __init__(self, index: int):
        self.index = index

    def execute(self, kernel: Any):
        if 0 <= self.index < len(kernel.state.vehicles):
            kernel.state.selected_index = self.index

class AddTrafficCommand(Command):
    def __init__(self, condition: TrafficCondition):
        self.condition = condition

    def execute(self, kernel: Any):
        kernel.state.traffic.append(self.condition)

class GenerateTrafficCommand(Command):
    def __init__(self, count: int):
        self.count = count

    def execute(self, kernel: Any):
        kernel.generate_traffic(self.count)

class ClearTrafficCommand(Command):
    def execute(self, kernel: Any):
        kernel.state.traffic = []

class AddPedestrianCommand(Command):
    def __init__(self, pedestrian: Pedestrian):
        self.pedestrian = pedestrian

    def execute(self, kernel: Any):
        kernel.state.pedestrians.append(self.pedestrian)

class GeneratePedestriansCommand(Command):
    def execute(self, kernel: Any):
        kernel.generate_pedestrians()

class ClearPedestriansCommand(Command):
    def execute(self, kernel: Any):
        kernel.state.pedestrians = []

class SetMapTypeCommand(Command):
    def __init__(self, map_type: MapVariant):
        self.map_type = map_type

    def execute(self, kernel: Any):
        kernel.set_map_type(self.map_type)

class SetRunningCommand(Command):
    def __init__(self, running: bool):
        self.running = running

    def execute(self, kernel: Any):
        kernel.state.is_running = self.running

class SetSpeedCommand(Command):
    def __init__(self, multiplier: float):
        self.multiplier = multiplier

    def execute(self, kernel: Any):
        kernel.state.speed_multiplier = self.multiplier

class ResetCommand(Command):
    def execute(self, kernel: Any):
        kernel.reset()
