# routeviz/services/pathfinders.py
"""
Interchangeable shortest-path strategies over an undirected networkx graph.

Every strategy answers `find(from_id, to_id)` with the node ids of a path,
ordered from `from_id` to `to_id`, or an empty list when the nodes are not
connected. Edge cost is `distance(a, b)` and the informed variants estimate
the remaining cost with `heuristic(a, b)`; both receive node attribute dicts.

| key            | algorithm                   | heuristic | optimal                  |
|----------------|-----------------------------|-----------|--------------------------|
| a-greedy-star  | greedy best-first           | yes       | no                       |
| nba            | bidirectional NBA*          | yes       | admissible + consistent  |
| astar-uni      | A*                          | yes       | admissible               |
| dijkstra       | uniform-cost (Dijkstra)     | no        | always                   |
"""
import math
from abc import ABC, abstractmethod
from enum import Enum
from heapq import heappop, heappush
from itertools import count
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, Union

import networkx as nx

from routeviz.core.errors import PathfindingInternalError, UnknownAlgorithm

NodeData = Mapping[str, Any]
DistanceFn = Callable[[NodeData, NodeData], float]


def euclidean_distance(a: NodeData, b: NodeData) -> float:
    return math.hypot(a["x"] - b["x"], a["y"] - b["y"])


class PathFinderKind(str, Enum):
    GREEDY = "a-greedy-star"
    NBA = "nba"
    ASTAR = "astar-uni"
    DIJKSTRA = "dijkstra"

    @classmethod
    def parse(cls, key: Union[str, "PathFinderKind"]) -> "PathFinderKind":
        """
        Resolve a pathfinder key. Unknown keys raise UnknownAlgorithm.
        """
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            raise UnknownAlgorithm(key) from None


class PathFinder(ABC):
    kind: PathFinderKind
    uses_heuristic: bool = True

    def __init__(
        self,
        graph: nx.Graph,
        distance: DistanceFn = euclidean_distance,
        heuristic: DistanceFn = euclidean_distance,
    ) -> None:
        self.graph = graph
        self.distance = distance
        self.heuristic = heuristic

    def find(self, from_id: int, to_id: int) -> List[int]:
        for node_id in (from_id, to_id):
            if not self.graph.has_node(node_id):
                raise PathfindingInternalError(f"Node {node_id!r} is not in the graph")

        if from_id == to_id:
            return [from_id]

        try:
            return self._search(from_id, to_id)
        except nx.NetworkXNoPath:
            return []
        except nx.NodeNotFound as exc:
            raise PathfindingInternalError(str(exc)) from exc

    @abstractmethod
    def _search(self, source: int, target: int) -> List[int]:
        ...

    # networkx weight callback signature: (u, v, edge_data)
    def _edge_cost(self, u: int, v: int, _data: Optional[dict] = None) -> float:
        nodes = self.graph.nodes
        return self.distance(nodes[u], nodes[v])

    def _estimate(self, u: int, v: int) -> float:
        nodes = self.graph.nodes
        return self.heuristic(nodes[u], nodes[v])

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value}>"


class DijkstraPathFinder(PathFinder):
    kind = PathFinderKind.DIJKSTRA
    uses_heuristic = False

    def _search(self, source: int, target: int) -> List[int]:
        return nx.dijkstra_path(self.graph, source, target, weight=self._edge_cost)


class AStarPathFinder(PathFinder):
    kind = PathFinderKind.ASTAR

    def _search(self, source: int, target: int) -> List[int]:
        return nx.astar_path(
            self.graph,
            source,
            target,
            heuristic=self._estimate,
            weight=self._edge_cost,
        )


class GreedyBestFirstPathFinder(PathFinder):
    """
    Expands whichever frontier node looks closest to the target.

    Fast on road networks, but the returned path is not guaranteed shortest.
    """
    kind = PathFinderKind.GREEDY

    def _search(self, source: int, target: int) -> List[int]:
        tie = count()
        frontier = [(self._estimate(source, target), next(tie), source)]
        parents: Dict[int, Optional[int]] = {source: None}

        while frontier:
            _, _, node = heappop(frontier)
            if node == target:
                return _walk_back(parents, target)[::-1]

            for neighbor in self.graph.neighbors(node):
                if neighbor in parents:
                    continue
                parents[neighbor] = node
                heappush(frontier, (self._estimate(neighbor, target), next(tie), neighbor))

        return []


class NBAPathFinder(PathFinder):
    """
    Bidirectional A* after Pijls & Post ("Yet another bidirectional algorithm
    for shortest paths", 2009).

    Both searches share one set of settled nodes. A node popped from either
    side is settled, and expanded only if neither bound proves it cannot lie
    on a path shorter than the best meeting found so far.
    """
    kind = PathFinderKind.NBA

    def _search(self, source: int, target: int) -> List[int]:
        heuristics = (
            lambda v: self._estimate(v, target),  # forward
            lambda v: self._estimate(source, v),  # backward
        )
        tie = count()
        g_score: List[Dict[int, float]] = [{source: 0.0}, {target: 0.0}]
        parents: List[Dict[int, Optional[int]]] = [{source: None}, {target: None}]
        start_f = heuristics[0](source)
        frontiers = [[(start_f, next(tie), source)], [(start_f, next(tie), target)]]
        lowest_f = [start_f, start_f]

        settled = set()
        best = math.inf
        meeting: Optional[int] = None

        while frontiers[0] and frontiers[1]:
            side = 0 if len(frontiers[0]) <= len(frontiers[1]) else 1
            other = 1 - side
            h_side, h_other = heuristics[side], heuristics[other]
            g_side, g_other = g_score[side], g_score[other]

            _, _, node = heappop(frontiers[side])
            if node not in settled:
                settled.add(node)
                g_node = g_side[node]
                pruned = (
                    g_node + h_side(node) >= best
                    or g_node + lowest_f[other] - h_other(node) >= best
                )
                if not pruned:
                    for neighbor in self.graph.neighbors(node):
                        if neighbor in settled:
                            continue
                        tentative = g_node + self._edge_cost(node, neighbor)
                        if tentative >= g_side.get(neighbor, math.inf):
                            continue
                        g_side[neighbor] = tentative
                        parents[side][neighbor] = node
                        heappush(
                            frontiers[side],
                            (tentative + h_side(neighbor), next(tie), neighbor),
                        )
                        if neighbor in g_other:
                            candidate = tentative + g_other[neighbor]
                            if candidate < best:
                                best = candidate
                                meeting = neighbor

            if frontiers[side]:
                lowest_f[side] = frontiers[side][0][0]

        if meeting is None:
            return []

        forward = _walk_back(parents[0], meeting)[::-1]
        backward = _walk_back(parents[1], meeting)
        return forward + backward[1:]


def _walk_back(parents: Mapping[int, Optional[int]], node: int) -> List[int]:
    """
    Follow parent links from `node` to the search root (node first).
    """
    chain = [node]
    while parents[node] is not None:
        node = parents[node]
        chain.append(node)
    return chain


PATHFINDER_TYPES: Dict[PathFinderKind, Type[PathFinder]] = {
    PathFinderKind.GREEDY: GreedyBestFirstPathFinder,
    PathFinderKind.NBA: NBAPathFinder,
    PathFinderKind.ASTAR: AStarPathFinder,
    PathFinderKind.DIJKSTRA: DijkstraPathFinder,
}


def build_pathfinders(
    graph: nx.Graph,
    distance: DistanceFn = euclidean_distance,
    heuristic: DistanceFn = euclidean_distance,
) -> Dict[PathFinderKind, PathFinder]:
    """
    One initialised strategy per PathFinderKind, all bound to `graph`.
    """
    return {
        kind: finder_type(graph, distance=distance, heuristic=heuristic)
        for kind, finder_type in PATHFINDER_TYPES.items()
    }


def path_length(graph: nx.Graph, path: List[int], distance: DistanceFn = euclidean_distance) -> float:
    nodes = graph.nodes
    return sum(distance(nodes[u], nodes[v]) for u, v in zip(path[:-1], path[1:]))
