from typing import List
from pydantic import BaseModel

from avsim.domain.models import MapVariant, Pedestrian, TrafficCondition, Vehicle


class SimulationState(BaseModel):
    tick_id: int = 0
    time: float = 0.0  # ms of simulated time
    map_type: MapVariant = MapVariant.WAREHOUSE
    vehicles: List[Vehicle] = []
    traffic: List[TrafficCondition] = []
    pedestrians: List[Pedestrian] = []
    selected_index: int = 0
    is_running: bool = True
    speed_multiplier: float = 1.0
