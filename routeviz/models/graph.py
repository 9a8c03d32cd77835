# routeviz/models/graph.py
from typing import Tuple

import networkx as nx
import numpy as np
from pydantic import BaseModel, ConfigDict


class GraphNode(BaseModel):
    """
    A node of the loaded graph. Ids are stable for the lifetime of the graph.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    x: float
    y: float


class LoadedGraph(BaseModel):
    """
    Result of a graph load.

    `points` is the flat coordinate array [x0, y0, x1, y1, ...]: flat index i
    belongs to graph node i // 2.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    graph: nx.Graph
    # (min_x, min_y, max_x, max_y)
    bbox: Tuple[float, float, float, float]
    points: np.ndarray

    def get_node(self, node_id: int) -> GraphNode:
        data = self.graph.nodes[node_id]
        return GraphNode(id=node_id, x=float(data["x"]), y=float(data["y"]))

    def has_node(self, node_id: int) -> bool:
        return self.graph.has_node(node_id)

    @property
    def node_count(self) -> int:
        return self.graph.number_of_nodes()

    @property
    def link_count(self) -> int:
        return self.graph.number_of_edges()
