# routeviz/core/errors.py
"""
Error taxonomy for the route-resolution pipeline.

- IndexNotReady / NoNodesInGraph: spatial lookup failures, recovered locally.
- PathfindingInternalError: raised by a pathfinder, swallowed into "no path".
- GraphLoadFailed: surfaced to the user through the progress sink.
- UnknownAlgorithm: configuration defect, always raised.
"""


class RouteVizError(Exception):
    """Base class for all routeviz errors."""


class IndexNotReady(RouteVizError):
    """Spatial query issued before the index finished building."""

    def __init__(self, message: str = "Spatial index is not ready yet.") -> None:
        super().__init__(message)


class NoNodesInGraph(RouteVizError):
    """Nearest-point search found nothing within its radius budget."""

    def __init__(self, x: float, y: float, radius: float) -> None:
        self.x = x
        self.y = y
        self.radius = radius
        super().__init__(
            f"No graph nodes found around ({x:.3f}, {y:.3f}) up to radius {radius:.1f}"
        )


class UnknownAlgorithm(RouteVizError, ValueError):
    """Pathfinder key outside the supported set."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"Cannot find pathfinder {key!r}")


class GraphLoadFailed(RouteVizError):
    """The graph loader could not produce a graph."""

    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        message = f"Could not load the graph {name!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PathfindingInternalError(RouteVizError):
    """A pathfinder failed while searching (e.g. a stale node id)."""
