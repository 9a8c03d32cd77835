# routeviz/services/query_sync.py
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from routeviz.core.logger import logger
from routeviz.models.routing import ExternalState
from routeviz.services.pathfinders import PathFinderKind
from routeviz.services.route_endpoint import UNSET_POINT_ID, RouteEndpoint

if TYPE_CHECKING:
    from routeviz.services.app_model import AppModel


class QuerySync:
    """
    Two-way binding between the query state store and the app model.

    Inbound (store.changed):
    - another graph name  -> clear both endpoints and reload the graph
    - another finder      -> switch the active pathfinder
    - other fromId/toId   -> rebind endpoints against the loaded graph

    Outbound:
    - endpoint bound/cleared -> fromId / toId
    - pathfinder switched    -> finder
    """

    def __init__(self, app: "AppModel") -> None:
        self.app = app
        self.store = app.store
        self._muted_depth = 0

        self.store.changed.subscribe(self._on_external_change)
        app.route_start.changed.subscribe(self._on_start_changed)
        app.route_end.changed.subscribe(self._on_end_changed)
        app.finder_changed.subscribe(self._on_finder_changed)

    # ------------------------------------------------------------------ #
    # Inbound
    # ------------------------------------------------------------------ #

    def _on_external_change(self, state: ExternalState) -> None:
        app = self.app

        with app.resolver.batch():
            if state.finder is None:
                self.store.set("finder", app.finder_kind.value)
            else:
                kind = PathFinderKind.parse(state.finder)
                if kind != app.finder_kind:
                    app.update_search_algorithm(kind)

            if state.graph != app.requested_graph:
                logger.info(f"Graph changed externally: {app.requested_graph!r} -> {state.graph!r}")
                # Keep the incoming ids: they are restored once the new graph is loaded
                with self._muted():
                    app.route_start.clear()
                    app.route_end.clear()
                app.request_load()
                return

            if (state.from_id, state.to_id) != (app.route_start.point_id, app.route_end.point_id):
                self.restore_endpoints()

    def restore_endpoints(self) -> None:
        """
        Bind both endpoints to the ids held in the store. No-op without a graph.
        """
        if self.app.loaded is None:
            return

        with self.app.resolver.batch():
            self._bind(self.app.route_start, self.store.get("fromId", UNSET_POINT_ID))
            self._bind(self.app.route_end, self.store.get("toId", UNSET_POINT_ID))

    def _bind(self, endpoint: RouteEndpoint, node_id: int) -> None:
        loaded = self.app.loaded
        if node_id != UNSET_POINT_ID and loaded.has_node(node_id):
            if endpoint.point_id != node_id or not endpoint.visible:
                endpoint.set_from(loaded.get_node(node_id))
            return

        if node_id != UNSET_POINT_ID:
            logger.warning(f"Node {node_id} from query state is not in graph {loaded.name!r}")
        if endpoint.visible or node_id != UNSET_POINT_ID:
            endpoint.clear()

    # ------------------------------------------------------------------ #
    # Outbound
    # ------------------------------------------------------------------ #

    def _on_start_changed(self, endpoint: RouteEndpoint) -> None:
        if not self._muted_depth:
            self.store.set("fromId", endpoint.point_id)

    def _on_end_changed(self, endpoint: RouteEndpoint) -> None:
        if not self._muted_depth:
            self.store.set("toId", endpoint.point_id)

    def _on_finder_changed(self, kind: PathFinderKind) -> None:
        self.store.set("finder", kind.value)

    @contextmanager
    def _muted(self) -> Iterator[None]:
        self._muted_depth += 1
        try:
            yield
        finally:
            self._muted_depth -= 1
