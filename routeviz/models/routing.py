# routeviz/models/routing.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """
    Plain 2D coordinate in graph units.
    """
    x: float
    y: float


class RouteStatus(str, Enum):
    IDLE = "idle"          # at least one endpoint unset, nothing attempted
    FOUND = "found"
    NO_PATH = "no_path"    # both endpoints set, search returned nothing


class SvgPathEntry(BaseModel):
    """
    One rendered route. `path` uses the SVG form "M x,y x,y ...".
    """
    path: str
    color: str
    opacity: float
    width: int


class PathInfo(BaseModel):
    """
    Drawable state of the current route.

    - `points` is the ordered coordinate sequence of the current route.
    - `svg_path` is the same route as an SVG path string ('' when idle).
    - `svg_paths` keeps the most recent found routes, newest last.
    """
    status: RouteStatus = RouteStatus.IDLE
    points: List[Point] = []
    svg_path: str = ""
    svg_paths: List[SvgPathEntry] = []

    @property
    def no_path(self) -> bool:
        return self.status == RouteStatus.NO_PATH


class RouteStats(BaseModel):
    visible: bool = False
    # milliseconds spent in the last pathfinder call
    last_search_took: float = 0.0
    path_length: float = 0.0
    path_length_label: str = "0"
    graph_node_count: str = ""
    graph_links_count: str = ""


class EndpointView(BaseModel):
    point_id: int
    x: float
    y: float
    visible: bool
    being_dragged: bool
    r: int


class ExternalState(BaseModel):
    """
    Shareable state mirrored in the URL query string.
    """
    model_config = ConfigDict(populate_by_name=True)

    graph: str
    from_id: int = Field(default=-1, alias="fromId")
    to_id: int = Field(default=-1, alias="toId")
    finder: Optional[str] = None


class ProgressView(BaseModel):
    message: str
    completed: str
    error: str
    tree_ready: bool


class RouteViewResponse(BaseModel):
    """
    Full view state for the /route endpoint.
    """
    graph: str
    finder: str
    graph_loaded: bool
    no_path: bool
    path_info: PathInfo
    stats: RouteStats
    route_start: EndpointView
    route_end: EndpointView
    query: ExternalState
    progress: ProgressView


class ClickRequest(BaseModel):
    x: float
    y: float


class ClickResponse(BaseModel):
    accepted: bool
    route: RouteViewResponse


class NearestPointResponse(BaseModel):
    id: int
    x: float
    y: float
    distance: float


class FinderRequest(BaseModel):
    finder: str


class GraphRequest(BaseModel):
    graph: str


class QueryRequest(BaseModel):
    """
    Raw query string, e.g. "graph=amsterdam-roads&fromId=5&toId=12&finder=nba".
    """
    query: str


class QueryResponse(BaseModel):
    query: str
    state: ExternalState


class OptionsResponse(BaseModel):
    """
    Choices offered by the graph and pathfinder selectors.
    """
    graphs: List[str]
    finders: List[str]
    graph: str
    finder: str
