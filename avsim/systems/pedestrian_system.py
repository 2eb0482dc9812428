import random
from typing import List, Optional, Sequence

from avsim.domain import config
from avsim.domain.geometry import distance, move_toward
from avsim.domain.models import MapVariant, Pedestrian, Position
from avsim.domain.obstacles import ObstacleLayout
from avsim.systems.environment import place_position


class PedestrianSystem:
    """Walks pedestrians toward their destinations and hands out a fresh one on arrival."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    def update(self, pedestrians: Sequence[Pedestrian], delta_ms: float,
               map_variant: MapVariant = MapVariant.WAREHOUSE,
               layout: Optional[ObstacleLayout] = None) -> List[Pedestrian]:
        updated = []
        for pedestrian in pedestrians:
            step = pedestrian.speed * delta_ms / 1000.0
            new_pos = move_toward(pedestrian.position, pedestrian.destination, step)
            destination = pedestrian.destination
            if distance(new_pos, destination) < config.PEDESTRIAN_ARRIVAL_DISTANCE:
                destination = place_position(self.rng, map_variant, layout).position
            updated.append(pedestrian.model_copy(update={
                "position": Position(x=new_pos.x, y=new_pos.y),
                "destination": destination
            }))
        return updated
