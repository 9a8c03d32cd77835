# tests/test_route_resolver.py
import pytest

from conftest import ISLAND
from routeviz.models.graph import GraphNode
from routeviz.models.routing import Point, RouteStatus
from routeviz.services.pathfinders import PathFinderKind, build_pathfinders
from routeviz.services.route_endpoint import RouteEndpoint
from routeviz.services.route_resolver import RouteResolver, to_svg_path


def node(graph, node_id):
    data = graph.nodes[node_id]
    return GraphNode(id=node_id, x=data["x"], y=data["y"])


def make_resolver(graph, kind=PathFinderKind.DIJKSTRA, history_limit=3):
    start, end = RouteEndpoint("start"), RouteEndpoint("end")
    resolver = RouteResolver(start, end, history_limit=history_limit)
    finders = build_pathfinders(graph)
    resolver.attach(graph, finders[kind])
    return resolver, start, end, finders


class ExplodingFinder:
    kind = PathFinderKind.DIJKSTRA

    def find(self, from_id, to_id):
        raise RuntimeError("boom")


def test_partial_selection_stays_idle(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)

    start.set_from(node(grid_graph, 0))

    assert resolver.path_info.status == RouteStatus.IDLE
    assert resolver.path_info.svg_path == ""
    assert resolver.recompute_count == 0


def test_both_endpoints_produce_ordered_points(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)

    start.set_from(node(grid_graph, 0))
    end.set_from(node(grid_graph, 35))

    info = resolver.path_info
    assert info.status == RouteStatus.FOUND
    assert not info.no_path
    assert info.points[0] == Point(x=0.0, y=0.0)
    assert info.points[-1] == Point(**grid_graph.nodes[35])
    assert info.svg_path.startswith("M0,0 ")
    assert len(info.svg_paths) == 1
    assert resolver.stats.visible
    assert resolver.stats.path_length > 0
    assert resolver.recompute_count == 1


def test_unreachable_pair_sets_no_path(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)

    start.set_from(node(grid_graph, 0))
    end.set_from(node(grid_graph, ISLAND[0]))

    assert resolver.path_info.status == RouteStatus.NO_PATH
    assert resolver.path_info.no_path
    assert resolver.path_info.points == []
    assert resolver.path_info.svg_paths == []


def test_finder_failure_is_reported_as_no_path(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)
    start.set_from(node(grid_graph, 0))
    end.set_from(node(grid_graph, 1))

    resolver.set_pathfinder(ExplodingFinder())

    assert resolver.path_info.no_path


def test_stale_node_id_is_reported_as_no_path(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)
    start.set_from(node(grid_graph, 0))

    end.set_from(GraphNode(id=4242, x=0.0, y=0.0))

    assert resolver.path_info.no_path


def test_clearing_an_endpoint_returns_to_idle(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)
    start.set_from(node(grid_graph, 0))
    end.set_from(node(grid_graph, 7))

    end.clear()

    assert resolver.path_info.status == RouteStatus.IDLE
    assert resolver.path_info.points == []


def test_switching_finder_recomputes_once(grid_graph):
    resolver, start, end, finders = make_resolver(grid_graph)
    start.set_from(node(grid_graph, 0))
    end.set_from(node(grid_graph, 35))
    before = resolver.recompute_count

    resolver.set_pathfinder(finders[PathFinderKind.NBA])

    assert resolver.recompute_count == before + 1
    assert resolver.path_info.status == RouteStatus.FOUND


def test_history_is_capped(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph, history_limit=3)
    start.set_from(node(grid_graph, 0))

    for target in (5, 10, 15, 20, 25):
        end.set_from(node(grid_graph, target))

    paths = resolver.path_info.svg_paths
    assert len(paths) == 3
    assert paths[-1].path == resolver.path_info.svg_path
    assert len({p.color for p in paths}) == 3


def test_batch_recomputes_once(grid_graph):
    resolver, start, end, _ = make_resolver(grid_graph)

    with resolver.batch():
        start.set_from(node(grid_graph, 0))
        end.set_from(node(grid_graph, 35))
        start.set_from(node(grid_graph, 1))
        assert resolver.recompute_count == 0

    assert resolver.recompute_count == 1
    assert resolver.path_info.points[0] == Point(**grid_graph.nodes[1])


def test_no_graph_attached_stays_idle(grid_graph):
    start, end = RouteEndpoint("start"), RouteEndpoint("end")
    resolver = RouteResolver(start, end)

    start.set_from(node(grid_graph, 0))
    end.set_from(node(grid_graph, 1))

    assert resolver.path_info.status == RouteStatus.IDLE
    assert resolver.recompute_count == 0


def test_svg_path_format():
    assert to_svg_path([]) == ""
    assert to_svg_path([Point(x=1, y=2), Point(x=3.5, y=4)]) == "M1,2 3.5,4"


def test_path_length_matches_line_graph():
    from conftest import make_line_graph

    graph = make_line_graph()
    resolver, start, end, _ = make_resolver(graph)
    start.set_from(node(graph, 5))
    end.set_from(node(graph, 12))

    assert resolver.stats.path_length == pytest.approx(100.0)
    assert resolver.stats.path_length_label == "100"
