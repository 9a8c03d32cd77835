# tests/conftest.py
import asyncio
import os
import sys
from typing import Dict

import networkx as nx
import pytest

# Add the project root directory to sys.path so that "import routeviz" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from routeviz.core.errors import GraphLoadFailed  # noqa: E402
from routeviz.services.app_model import AppModel  # noqa: E402
from routeviz.services.graph_loader import build_loaded_graph  # noqa: E402
from routeviz.services.query_state import QueryStateStore  # noqa: E402

GRID_ROWS = 6
GRID_COLS = 6
GRID_SPACING = 100.0
# Ids of the two-node island that is not connected to the grid
ISLAND = (GRID_ROWS * GRID_COLS, GRID_ROWS * GRID_COLS + 1)


def make_grid_graph() -> nx.Graph:
    """
    6x6 grid (ids r * 6 + c) with slightly uneven coordinates and a few
    diagonals, plus a disconnected two-node island far to the east.
    """
    G = nx.Graph()
    for r in range(GRID_ROWS):
        for c in range(GRID_COLS):
            G.add_node(
                r * GRID_COLS + c,
                x=c * GRID_SPACING + (r * 7) % 13,
                y=r * GRID_SPACING + (c * 5) % 11,
            )

    for r in range(GRID_ROWS):
        for c in range(GRID_COLS):
            node = r * GRID_COLS + c
            if c + 1 < GRID_COLS:
                G.add_edge(node, node + 1)
            if r + 1 < GRID_ROWS:
                G.add_edge(node, node + GRID_COLS)
            if (r + c) % 3 == 0 and r + 1 < GRID_ROWS and c + 1 < GRID_COLS:
                G.add_edge(node, node + GRID_COLS + 1)

    G.add_node(ISLAND[0], x=5000.0, y=5000.0)
    G.add_node(ISLAND[1], x=5100.0, y=5000.0)
    G.add_edge(*ISLAND)
    return G


def make_line_graph() -> nx.Graph:
    """
    15 nodes; 5 and 12 are joined by a direct edge of length 100, and by a
    much longer detour through the chain 5-6-...-12.
    """
    G = nx.Graph()
    for i in range(15):
        G.add_node(i, x=i * 1000.0, y=500.0)
    G.nodes[5].update(x=0.0, y=0.0)
    G.nodes[12].update(x=60.0, y=80.0)
    for i in range(14):
        G.add_edge(i, i + 1)
    G.add_edge(5, 12)
    return G


GRAPHS = {
    "grid": make_grid_graph,
    "line": make_line_graph,
}


class FakeLoader:
    """
    In-memory stand-in for GraphLoader; records every requested name.
    """

    def __init__(self, graphs: Dict = None, fail: bool = False) -> None:
        self.graphs = graphs or GRAPHS
        self.fail = fail
        self.calls = []

    async def __call__(self, name, progress):
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail or name not in self.graphs:
            raise GraphLoadFailed(name, "not available in tests")
        progress.set_message(f"Loading graph {name}")
        return build_loaded_graph(name, self.graphs[name]())


def make_app(graph: str = "grid", finder: str = "dijkstra", loader=None, **query) -> AppModel:
    store = QueryStateStore({"graph": graph, "fromId": -1, "toId": -1, "finder": finder, **query})
    return AppModel(loader=loader or FakeLoader(), store=store, graph_names=list(GRAPHS))


def make_loaded_app(**kwargs) -> AppModel:
    model = make_app(**kwargs)
    assert asyncio.run(model.load_positions())
    return model


@pytest.fixture
def grid_graph() -> nx.Graph:
    return make_grid_graph()


@pytest.fixture
def loaded_grid():
    return build_loaded_graph("grid", make_grid_graph())
