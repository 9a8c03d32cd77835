# tests/test_spatial_index.py
import asyncio
import math
import threading

import pytest

from routeviz.core.errors import IndexNotReady, NoNodesInGraph
from routeviz.services import spatial_index
from routeviz.services.progress import Progress
from routeviz.services.spatial_index import SpatialIndex


def brute_force_nearest(points, x, y):
    pairs = list(zip(points[0::2], points[1::2]))
    return min(range(len(pairs)), key=lambda i: math.hypot(pairs[i][0] - x, pairs[i][1] - y))


def test_query_before_build_fails(loaded_grid):
    index = SpatialIndex(loaded_grid.points)

    assert not index.ready
    with pytest.raises(IndexNotReady):
        index.nearest(0.0, 0.0)
    with pytest.raises(IndexNotReady):
        index.query(0.0, 0.0, 100.0)


def test_query_while_tree_is_building_fails(loaded_grid, monkeypatch):
    started = threading.Event()
    release = threading.Event()
    real_tree = spatial_index.cKDTree

    def slow_tree(coords):
        started.set()
        release.wait(timeout=5)
        return real_tree(coords)

    monkeypatch.setattr(spatial_index, "cKDTree", slow_tree)
    index = SpatialIndex(loaded_grid.points)
    worker = threading.Thread(target=index.build)
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert not index.ready
        with pytest.raises(IndexNotReady):
            index.nearest(1.0, 1.0)
    finally:
        release.set()
        worker.join(timeout=5)

    assert index.ready
    assert index.nearest(1.0, 1.0) == 0


def test_flat_indices_map_to_node_ids(loaded_grid):
    index = SpatialIndex(loaded_grid.points).build()

    flat = index.points_around(0.0, 0.0, 1.0)
    assert flat == [0]

    # node 7 sits at (100 + 7, 100 + 5)
    flat = index.points_around(107.0, 105.0, 1.0)
    assert flat == [14]
    assert index.query(107.0, 105.0, 1.0) == [7]


def test_nearest_matches_brute_force(loaded_grid):
    index = SpatialIndex(loaded_grid.points).build()
    points = list(loaded_grid.points)

    for x, y in [(0, 0), (149.0, 251.0), (333.3, 12.0), (560.0, 560.0), (4990.0, 5001.0)]:
        assert index.nearest(x, y) == brute_force_nearest(points, x, y)


def test_nearest_is_not_beaten_by_larger_radius(loaded_grid):
    index = SpatialIndex(loaded_grid.points).build()
    x, y = 222.0, 318.0

    best = index.nearest(x, y, radius=150.0)
    best_distance = index.distance_to(best, x, y)

    for radius in (150.0, 300.0, 1000.0, 10000.0):
        for node_id in index.query(x, y, radius):
            assert best_distance <= index.distance_to(node_id, x, y)


def test_nearest_grows_radius_until_something_is_found(loaded_grid):
    index = SpatialIndex(loaded_grid.points).build()

    # Nothing within the initial 10 units: the radius has to double several times
    node_id = index.nearest(2500.0, 2500.0, radius=10.0)

    assert node_id == brute_force_nearest(list(loaded_grid.points), 2500.0, 2500.0)


def test_nearest_gives_up_after_max_iterations(loaded_grid):
    index = SpatialIndex(loaded_grid.points).build()

    with pytest.raises(NoNodesInGraph):
        index.nearest(1e9, 1e9, radius=1.0, max_iterations=3)


def test_empty_index_has_no_nearest_point():
    index = SpatialIndex([]).build()

    assert index.ready
    assert index.query(0.0, 0.0, 10.0) == []
    with pytest.raises(NoNodesInGraph):
        index.nearest(0.0, 0.0)


def test_odd_length_point_array_is_rejected():
    with pytest.raises(ValueError):
        SpatialIndex([1.0, 2.0, 3.0])


def test_async_build_reports_progress(loaded_grid):
    progress = Progress()
    index = asyncio.run(SpatialIndex(loaded_grid.points).build_async(progress))

    assert index.ready
    assert progress.tree_ready
    assert progress.completed == "100%"
