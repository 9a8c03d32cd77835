# routeviz/services/route_endpoint.py
from typing import Tuple

from routeviz.core.events import EventChannel
from routeviz.models.graph import GraphNode
from routeviz.models.routing import EndpointView

UNSET_POINT_ID = -1


class RouteEndpoint:
    """
    One of the two route handles (start or end).

    States:
    - unset: point_id == -1, visible is False
    - bound: visible is True, point_id/x/y describe a graph node

    `set_from` and `clear` are the only mutators and both publish on
    `changed`, even when the state did not actually change.
    """

    # Handle radius used by the renderer
    HANDLE_RADIUS = 18

    def __init__(self, name: str) -> None:
        self.name = name
        self.visible = False
        self.being_dragged = False
        self.point_id = UNSET_POINT_ID
        self.x = 0.0
        self.y = 0.0
        self.r = self.HANDLE_RADIUS
        self.changed: EventChannel["RouteEndpoint"] = EventChannel(f"{name}.changed")

    def set_from(self, node: GraphNode) -> None:
        self.visible = True
        self.point_id = node.id
        self.x = node.x
        self.y = node.y
        self.changed.publish(self)

    def clear(self) -> None:
        self.visible = False
        self.point_id = UNSET_POINT_ID
        self.x = 0.0
        self.y = 0.0
        self.changed.publish(self)

    def snapshot(self) -> Tuple[int, float, float, bool]:
        return self.point_id, self.x, self.y, self.visible

    def to_view(self) -> EndpointView:
        return EndpointView(
            point_id=self.point_id,
            x=self.x,
            y=self.y,
            visible=self.visible,
            being_dragged=self.being_dragged,
            r=self.r,
        )

    def __repr__(self) -> str:
        return f"<RouteEndpoint {self.name} point_id={self.point_id} visible={self.visible}>"
