# routeviz/services/app_model.py
import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

import networkx as nx

from routeviz.core.config import settings
from routeviz.core.errors import GraphLoadFailed, IndexNotReady, NoNodesInGraph
from routeviz.core.events import EventChannel
from routeviz.core.logger import logger
from routeviz.models.graph import GraphNode, LoadedGraph
from routeviz.models.routing import PathInfo, RouteStats
from routeviz.services.graph_loader import GraphLoader
from routeviz.services.pathfinders import PathFinder, PathFinderKind, build_pathfinders
from routeviz.services.progress import Progress
from routeviz.services.query_state import QueryStateStore
from routeviz.services.query_sync import QuerySync
from routeviz.services.route_endpoint import RouteEndpoint
from routeviz.services.route_resolver import RouteResolver
from routeviz.services.spatial_index import SpatialIndex

GraphLoaderFn = Callable[[str, Progress], Awaitable[LoadedGraph]]


class AppModel:
    """
    Application state for one visualizer session.

    Owns the loaded graph, its spatial index and pathfinders, the two route
    endpoints, the route resolver and the query state binding. Graph, index
    and pathfinders are replaced wholesale on every load and never mutated.

    Every load gets a generation number; results of a load that was
    superseded by a newer one are discarded.
    """

    def __init__(
        self,
        loader: Optional[GraphLoaderFn] = None,
        store: Optional[QueryStateStore] = None,
        graph_names: Optional[List[str]] = None,
    ) -> None:
        self._loader: GraphLoaderFn = loader or GraphLoader()
        self.graph_names = list(graph_names or settings.GRAPH_PLACES)
        self.store = store or QueryStateStore(
            {"graph": settings.DEFAULT_GRAPH, "fromId": -1, "toId": -1}
        )

        self.progress = Progress()
        self.route_start = RouteEndpoint("start")
        self.route_end = RouteEndpoint("end")
        self.resolver = RouteResolver(self.route_start, self.route_end)
        self.finder_changed: EventChannel[PathFinderKind] = EventChannel("finder.changed")

        self.loaded: Optional[LoadedGraph] = None
        self.index: Optional[SpatialIndex] = None
        self.pathfinders: Dict[PathFinderKind, PathFinder] = {}
        self.requested_graph: Optional[str] = None
        self.load_task: Optional[asyncio.Task] = None
        self._generation = 0

        # Unknown finder keys fail here, at startup
        self.finder_kind = PathFinderKind.parse(self.store.get("finder") or settings.DEFAULT_FINDER)

        self.query_sync = QuerySync(self)
        self.store.set("finder", self.finder_kind.value)

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def graph_name(self) -> str:
        return self.store.get("graph")

    @property
    def finder_names(self) -> List[str]:
        return [kind.value for kind in PathFinderKind]

    @property
    def path_info(self) -> PathInfo:
        return self.resolver.path_info

    @property
    def stats(self) -> RouteStats:
        return self.resolver.stats

    @property
    def pathfinder(self) -> Optional[PathFinder]:
        return self.resolver.pathfinder

    def get_graph(self) -> Optional[nx.Graph]:
        return self.loaded.graph if self.loaded is not None else None

    def get_graph_bbox(self) -> Optional[Tuple[float, float, float, float]]:
        return self.loaded.bbox if self.loaded is not None else None

    # ------------------------------------------------------------------ #
    # Graph lifecycle
    # ------------------------------------------------------------------ #

    async def load_positions(self) -> bool:
        """
        Load the graph named in the query state and build everything that
        depends on it. Returns False if the load failed or was superseded.
        """
        generation = self._begin_load()
        return await self._finish_load(generation, self.requested_graph, self.progress)

    def schedule_load(self) -> asyncio.Task:
        """
        Start `load_positions` as a task on the running event loop.
        """
        loop = asyncio.get_running_loop()
        generation = self._begin_load()
        self.load_task = loop.create_task(
            self._finish_load(generation, self.requested_graph, self.progress)
        )
        return self.load_task

    def request_load(self) -> Optional[asyncio.Task]:
        """
        Schedule a load of the graph named in the query state. Without a running
        event loop nothing is scheduled and the next `load_positions` picks the
        graph up.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.info(f"No running event loop, graph {self.graph_name!r} loads on the next load_positions()")
            return None
        return self.schedule_load()

    async def update_selected_graph(self, name: str) -> bool:
        self.store.set({"graph": name, "fromId": -1, "toId": -1})
        self.clear_route()
        return await self.schedule_load()

    def _begin_load(self) -> int:
        self._generation += 1
        self.requested_graph = self.graph_name

        self.loaded = None
        self.index = None
        self.pathfinders = {}
        self.resolver.attach(None, None)
        self.progress = Progress()

        logger.info(f"Loading graph {self.requested_graph!r} (generation {self._generation})")
        return self._generation

    async def _finish_load(self, generation: int, name: str, progress: Progress) -> bool:
        try:
            loaded = await self._loader(name, progress)
        except Exception as exc:
            if generation != self._generation:
                logger.info(f"Ignoring failure of superseded load {name!r}: {exc}")
                return False
            error = exc if isinstance(exc, GraphLoadFailed) else GraphLoadFailed(name, str(exc))
            progress.set_error("Could not load the graph", error)
            return False

        if generation != self._generation:
            logger.info(f"Discarding graph {name!r} from superseded load (generation {generation})")
            return False

        self._set_application_model_variables(loaded)

        index = SpatialIndex(loaded.points)
        self.index = index
        await index.build_async(progress)

        if generation != self._generation:
            logger.info(f"Spatial index for superseded graph {name!r} discarded")
            return False

        logger.info(f"Graph {name!r} ready")
        return True

    def _set_application_model_variables(self, loaded: LoadedGraph) -> None:
        self.loaded = loaded
        self.pathfinders = build_pathfinders(loaded.graph)
        self.resolver.attach(loaded.graph, self.pathfinders[self.finder_kind])

        self.stats.graph_node_count = f"{loaded.node_count:,}"
        self.stats.graph_links_count = f"{loaded.link_count:,}"

        # Endpoints may come from a shared link
        with self.resolver.batch():
            self.query_sync.restore_endpoints()
            self.resolver.recompute()

    # ------------------------------------------------------------------ #
    # User actions
    # ------------------------------------------------------------------ #

    def update_search_algorithm(self, key: Union[str, PathFinderKind]) -> None:
        """
        Switch the active pathfinder. Unknown keys raise UnknownAlgorithm.
        """
        kind = PathFinderKind.parse(key)
        self.finder_kind = kind
        self.finder_changed.publish(kind)

        if self.pathfinders:
            self.resolver.set_pathfinder(self.pathfinders[kind])

    def find_nearest_point(self, x: float, y: float) -> GraphNode:
        index = self.index
        if self.loaded is None or index is None or not index.ready:
            raise IndexNotReady()
        return self.loaded.get_node(index.nearest(x, y))

    def handle_scene_click(self, x: float, y: float) -> bool:
        """
        First click binds the start, second the end, third clears both.

        Returns False when the click could not be resolved to a graph node.
        """
        if self.route_start.visible and self.route_end.visible:
            self.clear_route()
            return True

        endpoint = self.route_end if self.route_start.visible else self.route_start
        try:
            node = self.find_nearest_point(x, y)
        except (IndexNotReady, NoNodesInGraph) as exc:
            logger.warning(f"Click at ({x:.2f}, {y:.2f}) ignored: {exc}")
            return False

        endpoint.set_from(node)
        return True

    def clear_route(self) -> None:
        with self.resolver.batch():
            self.route_start.clear()
            self.route_end.clear()
