# routeviz/services/route_resolver.py
from contextlib import contextmanager
from time import perf_counter
from typing import Iterator, List, Optional

import networkx as nx

from routeviz.core.config import settings
from routeviz.core.logger import logger
from routeviz.models.routing import (
    PathInfo,
    Point,
    RouteStats,
    RouteStatus,
    SvgPathEntry,
)
from routeviz.services.pathfinders import PathFinder, path_length
from routeviz.services.route_endpoint import RouteEndpoint


class RouteResolver:
    """
    Keeps `path_info` in sync with the two endpoints and the active pathfinder.

    Recomputes on every endpoint notification and on every pathfinder switch:
    - either endpoint unset      -> idle, no search
    - search returns nothing     -> no_path
    - otherwise                  -> found, route appended to `svg_paths`

    `svg_paths` keeps at most `history_limit` routes (oldest dropped) and is
    emptied by `reset()` when a new graph is attached. A negative limit keeps
    every route.
    """

    # Styling for successive routes
    PALETTE = ("#e6194b", "#3cb44b", "#4363d8", "#f58231", "#911eb4", "#42d4f4", "#f032e6")
    OPACITIES = (0.8, 0.7, 0.6, 0.5)
    WIDTHS = (6, 5, 4, 3)

    def __init__(
        self,
        route_start: RouteEndpoint,
        route_end: RouteEndpoint,
        history_limit: Optional[int] = None,
    ) -> None:
        self.route_start = route_start
        self.route_end = route_end
        self.history_limit = settings.ROUTE_HISTORY_LIMIT if history_limit is None else history_limit

        self.graph: Optional[nx.Graph] = None
        self.pathfinder: Optional[PathFinder] = None
        self.path_info = PathInfo()
        self.stats = RouteStats()

        # Number of times a pathfinder was actually invoked
        self.recompute_count = 0
        self._routes_drawn = 0
        self._batch_depth = 0
        self._pending = False

        route_start.changed.subscribe(self._on_endpoint_changed)
        route_end.changed.subscribe(self._on_endpoint_changed)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def attach(self, graph: Optional[nx.Graph], pathfinder: Optional[PathFinder]) -> None:
        """
        Bind a newly loaded graph (or None while loading). Does not recompute.
        """
        self.graph = graph
        self.pathfinder = pathfinder
        self.reset()

    def reset(self) -> None:
        self.path_info = PathInfo()
        self.stats.visible = False
        self.stats.last_search_took = 0.0
        self.stats.path_length = 0.0
        self.stats.path_length_label = "0"

    def set_pathfinder(self, pathfinder: PathFinder) -> None:
        self.pathfinder = pathfinder
        logger.info(f"Active pathfinder: {pathfinder.kind.value}")
        self.recompute()

    @contextmanager
    def batch(self) -> Iterator[None]:
        """
        Defer recomputation until the outermost batch exits, then recompute once
        if anything asked for it.
        """
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._pending = False
                self.recompute()

    def recompute(self) -> None:
        if self._batch_depth:
            self._pending = True
            return

        if not (self.route_start.visible and self.route_end.visible):
            self._set_idle()
            return

        if self.graph is None or self.pathfinder is None:
            logger.debug("Both endpoints set but no graph is attached yet; route stays idle.")
            self._set_idle()
            return

        from_id = self.route_start.point_id
        to_id = self.route_end.point_id
        self.recompute_count += 1

        t0 = perf_counter()
        try:
            path = self.pathfinder.find(from_id, to_id)
        except Exception as exc:
            logger.warning(
                f"{self.pathfinder.kind.value} failed for {from_id} -> {to_id}: {exc}"
            )
            path = []
        took_ms = (perf_counter() - t0) * 1000.0

        self.stats.visible = True
        self.stats.last_search_took = took_ms

        if not path:
            logger.info(f"No path between {from_id} and {to_id} ({took_ms:.2f} ms)")
            self._set_no_path()
            return

        self._set_found(path)
        logger.info(
            f"Path {from_id} -> {to_id}: {len(path)} nodes, "
            f"length={self.stats.path_length:.1f}, took {took_ms:.2f} ms"
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _on_endpoint_changed(self, _endpoint: RouteEndpoint) -> None:
        self.recompute()

    def _set_idle(self) -> None:
        self.path_info.status = RouteStatus.IDLE
        self.path_info.points = []
        self.path_info.svg_path = ""

    def _set_no_path(self) -> None:
        self.path_info.status = RouteStatus.NO_PATH
        self.path_info.points = []
        self.path_info.svg_path = ""
        self.stats.path_length = 0.0
        self.stats.path_length_label = "0"

    def _set_found(self, path: List[int]) -> None:
        nodes = self.graph.nodes
        points = [Point(x=nodes[n]["x"], y=nodes[n]["y"]) for n in path]
        svg_path = to_svg_path(points)

        self.path_info.status = RouteStatus.FOUND
        self.path_info.points = points
        self.path_info.svg_path = svg_path
        self.path_info.svg_paths.append(self._style(svg_path))
        if self.history_limit >= 0:
            overflow = len(self.path_info.svg_paths) - self.history_limit
            if overflow > 0:
                del self.path_info.svg_paths[:overflow]

        length = path_length(self.graph, path, self.pathfinder.distance)
        self.stats.path_length = length
        self.stats.path_length_label = f"{round(length):,}"

    def _style(self, svg_path: str) -> SvgPathEntry:
        n = self._routes_drawn
        self._routes_drawn += 1
        return SvgPathEntry(
            path=svg_path,
            color=self.PALETTE[n % len(self.PALETTE)],
            opacity=self.OPACITIES[n % len(self.OPACITIES)],
            width=self.WIDTHS[n % len(self.WIDTHS)],
        )


def to_svg_path(points: List[Point]) -> str:
    """
    "M x0,y0 x1,y1 ..." or '' for an empty sequence.
    """
    if not points:
        return ""
    return "M" + " ".join(f"{p.x:.15g},{p.y:.15g}" for p in points)
