"""
Pointer interaction - drag nodes, pan the canvas, expand classes, wheel zoom.

The controller is a small state machine per diagram:

    idle --down on node--> dragging_node --up--> idle
    idle --down on background--> panning --up--> idle

Hosts feed it screen-space pointer coordinates; conversion to content space
goes through the diagram's current view state. Every call completes
synchronously and only touches the owning session's caches.
"""

import logging
from enum import Enum
from typing import Optional, TYPE_CHECKING

from .layout import fit_to_content, resolve_overlaps, size_node
from .viewport import pan_by, screen_to_content, wheel_factor, zoom_at

if TYPE_CHECKING:
    from .models import DiagramNode, DiagramView
    from .session import DiagramSession


logger = logging.getLogger(__name__)

Point = tuple[float, float]


class InteractionMode(str, Enum):
    """States of the pointer state machine."""
    IDLE = "idle"
    DRAGGING_NODE = "dragging_node"
    PANNING = "panning"


def apply_pointer_delta(offset: Point, content_point: Point) -> Point:
    """New node origin for a drag: pointer position minus the grab offset."""
    return (content_point[0] - offset[0], content_point[1] - offset[1])


def hit_test(nodes: list["DiagramNode"], cx: float, cy: float) -> Optional["DiagramNode"]:
    """Topmost node containing a content point (later nodes draw on top)."""
    for node in reversed(nodes):
        if node.contains(cx, cy):
            return node
    return None


class InteractionController:
    """
    Pointer state for one model path's diagram.

    Dragging writes node positions into the live diagram and re-routes all
    edges on every move; the final position reaches the session's layout
    cache on pointer-up. Panning only changes the view state.
    """

    def __init__(self, session: "DiagramSession", model_path: str):
        self._session = session
        self._path = model_path
        self.mode = InteractionMode.IDLE
        self._drag_node_id: Optional[str] = None
        self._drag_offset: Point = (0.0, 0.0)
        self._pan_start_pointer: Point = (0.0, 0.0)
        self._pan_start: Point = (0.0, 0.0)

    @property
    def model_path(self) -> str:
        return self._path

    @property
    def dragging_node_id(self) -> Optional[str]:
        return self._drag_node_id

    def _diagram(self) -> Optional["DiagramView"]:
        return self._session.get_diagram(self._path)

    # --- Pointer events ---

    def pointer_down(self, sx: float, sy: float) -> InteractionMode:
        """Start dragging the node under the pointer, or panning if none."""
        diagram = self._diagram()
        if diagram is None:
            return self.mode

        cx, cy = screen_to_content(diagram.view, sx, sy)
        node = hit_test(diagram.nodes, cx, cy)
        if node is not None:
            self.mode = InteractionMode.DRAGGING_NODE
            self._drag_node_id = node.id
            self._drag_offset = (cx - node.x, cy - node.y)
        else:
            self.mode = InteractionMode.PANNING
            self._pan_start_pointer = (sx, sy)
            self._pan_start = (diagram.view.pan_x, diagram.view.pan_y)
        return self.mode

    def pointer_move(self, sx: float, sy: float) -> bool:
        """
        Continue the current gesture.

        Returns:
            True if the diagram or its view changed
        """
        diagram = self._diagram()
        if diagram is None or self.mode == InteractionMode.IDLE:
            return False

        if self.mode == InteractionMode.PANNING:
            view = diagram.view
            view.pan_x, view.pan_y = self._pan_start
            pan_by(view, sx - self._pan_start_pointer[0], sy - self._pan_start_pointer[1])
            return True

        node = diagram.get_node(self._drag_node_id) if self._drag_node_id else None
        if node is None:
            self._end()
            return False

        node.x, node.y = apply_pointer_delta(self._drag_offset, screen_to_content(diagram.view, sx, sy))
        # Shared-side grouping can move neighbouring edges too
        self._session.reroute(self._path)
        return True

    def pointer_up(self, sx: float, sy: float) -> InteractionMode:
        """Finish the gesture; a drag commits its node to the layout cache."""
        finished = self.mode
        if finished == InteractionMode.DRAGGING_NODE:
            self.pointer_move(sx, sy)
            diagram = self._diagram()
            node = diagram.get_node(self._drag_node_id) if diagram and self._drag_node_id else None
            if node is not None:
                self._session.remember_node(self._path, node)
                logger.debug("Moved %s to (%.1f, %.1f) in %r", node.id, node.x, node.y, self._path)
        self._end()
        return finished

    def _end(self) -> None:
        self.mode = InteractionMode.IDLE
        self._drag_node_id = None

    def wheel(self, sx: float, sy: float, delta_y: float) -> bool:
        """Zoom one step at the pointer; no inertia."""
        diagram = self._diagram()
        if diagram is None:
            return False
        settings = self._session.settings.viewport
        zoom_at(diagram.view, sx, sy, wheel_factor(delta_y, settings), settings)
        return True

    # --- Expand / collapse ---

    def toggle_expand(self, class_id: str) -> Optional[bool]:
        """
        Flip a node's attribute list open or closed.

        When the box size changes, overlaps are resolved and the layout is
        refitted across the whole diagram; edges are always re-routed.

        Returns:
            The new expanded flag, or None if the node is not on the diagram
        """
        diagram = self._diagram()
        node = diagram.get_node(class_id) if diagram else None
        if node is None:
            return None

        node.expanded = not node.expanded
        expanded = self._session.expanded_ids(self._path)
        if node.expanded:
            expanded.add(class_id)
        else:
            expanded.discard(class_id)

        settings = self._session.settings.layout
        if size_node(node, settings):
            resolve_overlaps(diagram.nodes, settings)
            diagram.surface_width, diagram.surface_height = fit_to_content(diagram.nodes, settings)
            self._session.remember_layout(self._path)

        self._session.reroute(self._path)
        return node.expanded
