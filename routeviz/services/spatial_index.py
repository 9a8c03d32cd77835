# routeviz/services/spatial_index.py
import asyncio
import math
from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from routeviz.core.config import settings
from routeviz.core.errors import IndexNotReady, NoNodesInGraph
from routeviz.core.logger import logger
from routeviz.services.progress import Progress


class SpatialIndex:
    """
    Radius queries over the node coordinates of a loaded graph.

    Built once from the flat coordinate array [x0, y0, x1, y1, ...] and never
    modified afterwards. Flat index i belongs to node i // 2, and node ids of
    a loaded graph are the positions 0..n-1 of its coordinate pairs.
    """

    def __init__(self, points: Sequence[float]) -> None:
        flat = np.asarray(points, dtype=float).ravel()
        if flat.size % 2 != 0:
            raise ValueError(f"Flat point array must have even length, got {flat.size}")

        self._flat = flat
        self._coords: Optional[np.ndarray] = None
        self._tree: Optional[cKDTree] = None

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @property
    def ready(self) -> bool:
        return self._coords is not None

    @property
    def size(self) -> int:
        return self._flat.size // 2

    def build(self, progress: Optional[Progress] = None) -> "SpatialIndex":
        """
        Build the KD-tree. Progress is reported every INDEX_PROGRESS_STEP points.
        """
        total = self.size
        step = max(1, settings.INDEX_PROGRESS_STEP)
        coords = np.empty((total, 2), dtype=float)

        for start in range(0, total, step):
            stop = min(start + step, total)
            coords[start:stop] = self._flat[2 * start:2 * stop].reshape(-1, 2)
            if progress is not None:
                progress.set_completed(stop, total)

        tree = cKDTree(coords) if total else None
        self._tree = tree
        # Assigned last: queries stay IndexNotReady until the tree exists
        self._coords = coords
        if progress is not None:
            progress.tree_ready = True

        logger.info(f"Spatial index ready: {total} points")
        return self

    async def build_async(self, progress: Optional[Progress] = None) -> "SpatialIndex":
        return await asyncio.to_thread(self.build, progress)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def points_around(self, x: float, y: float, radius: float) -> List[int]:
        """
        Flat-array indices (always even) of the points within `radius` of (x, y).
        """
        self._ensure_ready()
        if self._tree is None:
            return []
        return [2 * int(i) for i in self._tree.query_ball_point([x, y], r=radius)]

    def query(self, x: float, y: float, radius: float) -> List[int]:
        """
        Node ids within `radius` of (x, y). Order is not meaningful.
        """
        return [idx // 2 for idx in self.points_around(x, y, radius)]

    def distance_to(self, node_id: int, x: float, y: float) -> float:
        self._ensure_ready()
        nx_, ny_ = self._coords[node_id]
        return math.hypot(nx_ - x, ny_ - y)

    def nearest(
        self,
        x: float,
        y: float,
        radius: Optional[float] = None,
        max_iterations: Optional[int] = None,
    ) -> int:
        """
        Id of the node closest to (x, y).

        Starts with `radius` and doubles it while the query comes back empty.
        Raises NoNodesInGraph once `max_iterations` queries returned nothing.
        """
        self._ensure_ready()

        radius = settings.NEAREST_POINT_RADIUS if radius is None else radius
        if max_iterations is None:
            max_iterations = settings.NEAREST_POINT_MAX_ITERATIONS

        if self.size == 0:
            raise NoNodesInGraph(x, y, radius)

        for _ in range(max_iterations):
            candidates = self.query(x, y, radius)
            if candidates:
                return min(candidates, key=lambda node_id: self.distance_to(node_id, x, y))
            radius *= 2

        raise NoNodesInGraph(x, y, radius / 2)

    def _ensure_ready(self) -> None:
        if self._coords is None:
            raise IndexNotReady()
