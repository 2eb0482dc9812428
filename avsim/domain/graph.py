import networkx as nx
from typing import List

from avsim.domain.geometry import Point


class GridNetwork:
    """Directed movement graph over the full step grid (costs depend on the target cell)."""

    def __init__(self):
        self.graph = nx.DiGraph()

    def add_cell(self, cell: Point, blocked: bool = False):
        self.graph.add_node(cell, pos=(cell.x, cell.y), blocked=blocked)

    def add_move(self, u: Point, v: Point, cost: float):
        self.graph.add_edge(u, v, weight=cost)

    def cheapest_route(self, source: Point, target: Point) -> List[Point]:
        try:
            return nx.dijkstra_path(self.graph, source, target, weight="weight")
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return []
