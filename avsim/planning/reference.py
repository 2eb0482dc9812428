"""Uniform-cost reference planner.

Builds the whole step grid up front (width * height / step^2 cells) and runs
networkx Dijkstra over it with the production cost model and neighbour rules.
Too slow for per-tick use; it exists to cross-check ``Pathfinder`` in tests.
"""
import math
from typing import List, Sequence

from avsim.domain import config
from avsim.domain.geometry import Point, distance
from avsim.domain.graph import GridNetwork
from avsim.domain.models import MapVariant, Pedestrian, Position, TrafficCondition, VehicleParameters
from avsim.domain.obstacles import is_in_any_building
from avsim.planning.pathfinder import Pathfinder


class ReferencePlanner:
    def __init__(self, pathfinder: Pathfinder):
        self.pathfinder = pathfinder

    def grid_cells(self) -> List[Point]:
        step = self.pathfinder.step
        cells = []
        x = 0.0
        while x < self.pathfinder.map_width:
            y = 0.0
            while y < self.pathfinder.map_height:
                cells.append(Point(x, y))
                y += step
            x += step
        return cells

    def snap(self, position) -> Point:
        step = self.pathfinder.step
        max_x = math.ceil(self.pathfinder.map_width / step) * step - step
        max_y = math.ceil(self.pathfinder.map_height / step) * step - step
        x = min(max(round(position.x / step) * step, 0.0), max_x)
        y = min(max(round(position.y / step) * step, 0.0), max_y)
        return Point(float(x), float(y))

    def build_network(self, traffic: Sequence[TrafficCondition], pedestrians: Sequence[Pedestrian],
                      vehicle_parameters: VehicleParameters, map_variant: MapVariant) -> GridNetwork:
        network = GridNetwork()
        cost = self.pathfinder.cost_model(traffic, pedestrians, vehicle_parameters, map_variant)
        layout = self.pathfinder.layout(map_variant)
        for cell in self.grid_cells():
            inside = (map_variant == MapVariant.CITY and
                      is_in_any_building(cell.x, cell.y, config.PLANNER_BUILDING_BUFFER, layout))
            network.add_cell(cell, blocked=inside)
            for neighbor in self.pathfinder.neighbors(cell, map_variant, inside):
                network.add_move(cell, neighbor, cost(cell, neighbor))
        return network

    def find_path(self, start, goal, traffic: Sequence[TrafficCondition], pedestrians: Sequence[Pedestrian],
                  vehicle_parameters: VehicleParameters,
                  map_variant: MapVariant = MapVariant.WAREHOUSE) -> List[Position]:
        network = self.build_network(traffic, pedestrians, vehicle_parameters, map_variant)
        start_pt = Point(float(start.x), float(start.y))
        goal_pt = Point(float(goal.x), float(goal.y))

        cells = network.cheapest_route(self.snap(start_pt), self.snap(goal_pt))
        if not cells:
            return []

        path = [start_pt] + [c for c in cells if c != start_pt]
        if distance(path[-1], goal_pt) > config.GOAL_SNAP_DISTANCE:
            path.append(goal_pt)
        return [Position(x=p.x, y=p.y) for p in self.pathfinder.smooth_path(path, map_variant)]
