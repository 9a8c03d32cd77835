# routeviz/services/graph_loader.py
import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import networkx as nx
import numpy as np
import osmnx as ox

from routeviz.core.config import settings
from routeviz.core.errors import GraphLoadFailed
from routeviz.core.logger import logger
from routeviz.models.graph import LoadedGraph
from routeviz.services.progress import Progress


def build_loaded_graph(name: str, source: nx.Graph) -> LoadedGraph:
    """
    Turn any networkx graph with numeric `x`/`y` node attributes into a LoadedGraph.

    - Direction and parallel edges are dropped (routes are undirected).
    - Nodes without coordinates are skipped.
    - Node ids are relabelled 0..n-1 in iteration order, so node i owns the
      flat coordinate pair points[2*i], points[2*i + 1].
    """
    graph = nx.Graph()
    relabel: Dict[object, int] = {}
    coords = []

    for node_id, data in source.nodes(data=True):
        x = data.get("x")
        y = data.get("y")
        if x is None or y is None:
            continue
        new_id = len(relabel)
        relabel[node_id] = new_id
        graph.add_node(new_id, x=float(x), y=float(y))
        coords.append((float(x), float(y)))

    skipped = 0
    for u, v in source.edges():
        if u == v or u not in relabel or v not in relabel:
            skipped += 1
            continue
        graph.add_edge(relabel[u], relabel[v])

    points = np.asarray(coords, dtype=float).ravel()
    if coords:
        xs = points[0::2]
        ys = points[1::2]
        bbox = (float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max()))
    else:
        bbox = (0.0, 0.0, 0.0, 0.0)

    logger.info(
        f"Graph {name!r} prepared: {graph.number_of_nodes()} nodes, "
        f"{graph.number_of_edges()} links ({skipped} edges skipped)"
    )
    return LoadedGraph(name=name, graph=graph, bbox=bbox, points=points)


class GraphLoader:
    """
    Loads named road graphs.

    A graph is read from `<GRAPH_CACHE_DIR>/<name>.graphml` when cached;
    otherwise it is downloaded with OSMnx for the place configured in
    settings.GRAPH_PLACES, projected to a metric CRS and cached.
    """

    def __init__(
        self,
        places: Optional[Dict[str, str]] = None,
        cache_dir: Optional[str] = None,
    ) -> None:
        self.places = dict(settings.GRAPH_PLACES if places is None else places)
        self.cache_dir = Path(settings.GRAPH_CACHE_DIR if cache_dir is None else cache_dir)

    @property
    def graph_names(self) -> List[str]:
        return list(self.places)

    async def __call__(self, name: str, progress: Progress) -> LoadedGraph:
        return await self.load(name, progress)

    async def load(self, name: str, progress: Progress) -> LoadedGraph:
        if name not in self.places:
            raise GraphLoadFailed(name, "unknown graph name")

        progress.set_message(f"Loading graph {name}")
        try:
            source = await asyncio.to_thread(self._read_or_download, name)
        except GraphLoadFailed:
            raise
        except Exception as exc:
            raise GraphLoadFailed(name, str(exc)) from exc

        progress.set_message(f"Preparing graph {name}")
        return build_loaded_graph(name, source)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _cache_path(self, name: str) -> Path:
        return self.cache_dir / f"{name}.graphml"

    def _read_or_download(self, name: str) -> nx.MultiDiGraph:
        path = self._cache_path(name)
        if path.exists():
            logger.info(f"Reading cached graph {name!r} from {path}")
            return ox.load_graphml(path)

        place = self.places[name]
        logger.info(f"Downloading graph {name!r} for place {place!r}")
        G: nx.MultiDiGraph = ox.graph_from_place(place, network_type="drive", simplify=True)

        # Planar coordinates so Euclidean distance is in metres
        G = ox.project_graph(G)

        path.parent.mkdir(parents=True, exist_ok=True)
        ox.save_graphml(G, path)
        logger.info(
            f"Graph {name!r} cached at {path}: {G.number_of_nodes()} nodes, "
            f"{G.number_of_edges()} edges"
        )
        return G
