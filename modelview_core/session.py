"""
Diagram Session - per-session state for rendering and interacting with models.

This module implements:
- Selection of a model path and derivation of its diagram (local + visiting classes)
- Session-scoped caches keyed by model path: layouts, view states,
  expanded classes, layout modes and the last rendered diagram
- Layout operations delegated to the layout module
- Routing delegated to the routing module
- Change callbacks for real-time sync

Nothing here is persisted: a new session starts with empty caches.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Optional

from .archetypes import classify
from .interaction import InteractionController
from .layout import arrange, content_bounds, fit_to_content, resolve_overlaps, size_node
from .models import (
    DiagramNode, DiagramView, EdgeSpec, EntityGraph, FitState, Geometry,
    LayoutMode, ModelClass, ViewState, is_within, normalize_path,
)
from .resolver import ReferenceResolver
from .routing import collect_edges, route_edges
from .settings import ViewerSettings
from . import viewport


logger = logging.getLogger(__name__)


class DiagramSession:
    """
    Owns one entity graph and every derived per-model cache.

    Features:
    - O(1) class reference resolution via the resolver's indexes
    - Remembered node positions per model path (carried across selections)
    - View state per model path, auto-fitted the first time a path renders
    - Change callbacks receiving the affected model path

    Several sessions can coexist without sharing state.
    """

    def __init__(self, graph: Optional[EntityGraph] = None, settings: Optional[ViewerSettings] = None):
        self._graph = graph or EntityGraph()
        self._settings = settings or ViewerSettings()
        self._resolver = ReferenceResolver(self._graph)
        self._viewport_size = (self._settings.viewport.viewport_width,
                               self._settings.viewport.viewport_height)
        self._current_path: Optional[str] = None
        self._on_change_callbacks: list[Callable[[str], None]] = []

        # Per model path caches
        self._layouts: dict[str, dict[str, Geometry]] = {}    # path -> class id -> geometry
        self._views: dict[str, ViewState] = {}
        self._expanded: dict[str, set[str]] = {}
        self._layout_modes: dict[str, LayoutMode] = {}
        self._diagrams: dict[str, DiagramView] = {}
        self._edge_specs: dict[str, list[EdgeSpec]] = {}
        self._interactions: dict[str, InteractionController] = {}

    # --- Properties ---

    @property
    def graph(self) -> EntityGraph:
        return self._graph

    @property
    def settings(self) -> ViewerSettings:
        return self._settings

    @property
    def resolver(self) -> ReferenceResolver:
        return self._resolver

    @property
    def current_path(self) -> Optional[str]:
        """The most recently selected model path."""
        return self._current_path

    @property
    def viewport_size(self) -> tuple[float, float]:
        return self._viewport_size

    # --- Change Callbacks ---

    def on_change(self, callback: Callable[[str], None]):
        """Register a callback for diagram changes (once per callback)."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def _notify_change(self, model_path: str):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            callback(model_path)

    # --- Graph ---

    def load_graph(self, graph: EntityGraph) -> EntityGraph:
        """Replace the graph and drop every derived cache."""
        self._graph = graph
        self._resolver = ReferenceResolver(graph)
        self._current_path = None
        for cache in (self._layouts, self._views, self._expanded, self._layout_modes,
                      self._diagrams, self._edge_specs, self._interactions):
            cache.clear()
        logger.info("Loaded graph: %d models, %d classes, %d associations",
                    len(graph.models), len(graph.classes), len(graph.associations))
        self._notify_change(graph.root_path())
        return graph

    def open_graph(self, file_path: str | Path) -> EntityGraph:
        """Load a graph from an ingestion result saved as JSON."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Graph file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {path}")

        return self.load_graph(EntityGraph.from_json_dict(data))

    def model_tree(self, path: Optional[str] = None) -> Optional[dict]:
        """Nested model hierarchy with class counts, children sorted by path."""
        path = self._graph.root_path() if path is None else normalize_path(path)
        model = self._graph.get_model(path)
        if model is None:
            return None
        return {
            "path": model.path,
            "name": model.name,
            "class_count": len(model.classes),
            "submodels": [self.model_tree(sub) for sub in sorted(model.submodels)
                          if sub in self._graph.models],
        }

    # --- Diagram derivation ---

    def visible_classes(self, path: str) -> tuple[list[ModelClass], list[ModelClass]]:
        """
        Classes shown for a model.

        Returns:
            (local classes, referenced classes from elsewhere), each in
            discovery order without duplicates
        """
        model = self._graph.get_model(path)
        if model is None:
            return [], []

        local = [self._graph.classes[cid] for cid in model.classes if cid in self._graph.classes]
        local_ids = {c.id for c in local}
        referenced: dict[str, ModelClass] = {}

        if self._graph.has_associations:
            for assoc in self._graph.associations:
                for near, far in ((assoc.from_id, assoc.to_id), (assoc.to_id, assoc.from_id)):
                    if near in local_ids and far not in local_ids and far in self._graph.classes:
                        referenced.setdefault(far, self._graph.classes[far])
        else:
            for cls in local:
                for ref in cls.refs:
                    target = self._resolver.resolve(ref, cls.home_model_path)
                    if target is not None and target.id not in local_ids:
                        referenced.setdefault(target.id, target)

        return local, list(referenced.values())

    def _build_nodes(self, path: str, classes: list[ModelClass]) -> list[DiagramNode]:
        expanded = self.expanded_ids(path)
        nodes = []
        for cls in classes:
            node = DiagramNode(
                id=cls.id,
                name=cls.name,
                home_model_path=cls.home_model_path,
                is_visiting=not is_within(cls.home_model_path, path),
                archetype=classify(cls),
                expanded=cls.id in expanded,
                attributes=list(cls.attributes),
            )
            size_node(node, self._settings.layout)
            nodes.append(node)
        return nodes

    def select_model(self, path: str) -> Optional[DiagramView]:
        """
        Render the diagram for a model path.

        Nodes reuse remembered positions (or the source's shape hints). If
        any node has neither, the whole set is laid out with the path's
        layout mode, force-directed by default. The view is fitted the
        first time a path renders and reused afterwards.

        Returns:
            The diagram, or None if the model does not exist
        """
        path = normalize_path(path)
        model = self._graph.get_model(path)
        if model is None:
            logger.info("Model not found: %r", path)
            return None

        local, referenced = self.visible_classes(path)
        nodes = self._build_nodes(path, local + referenced)
        visible_ids = {n.id for n in nodes}
        edge_specs = collect_edges(self._graph, self._resolver, [c.id for c in local], visible_ids)
        pairs = [(e.source, e.target) for e in edge_specs]

        remembered = self._layouts.get(path, {})
        seeds: dict[str, tuple[float, float]] = {}
        hinted = False
        for node in nodes:
            geometry = remembered.get(node.id) or self._graph.shape_hint(path, node.id)
            if geometry is None:
                continue
            seeds[node.id] = (geometry.x, geometry.y)
            if node.id not in remembered:
                hinted = True
                # Source shapes act as a floor for the computed size
                node.w = max(node.w, geometry.w)
                node.h = max(node.h, geometry.h)

        mode = self._layout_modes.get(path, LayoutMode.FORCE)
        if len(seeds) < len(nodes):
            surface = arrange(nodes, pairs, mode, self._settings.layout, seeds=seeds)
        else:
            for node in nodes:
                node.x, node.y = seeds[node.id]
            if hinted:
                # Widened hint boxes may now collide
                resolve_overlaps(nodes, self._settings.layout)
            surface = fit_to_content(nodes, self._settings.layout)

        view = self.view_state(path)
        diagram = DiagramView(
            model_path=path,
            model_name=model.name,
            nodes=nodes,
            surface_width=surface[0],
            surface_height=surface[1],
            view=view,
            layout_mode=mode,
        )
        self._diagrams[path] = diagram
        self._edge_specs[path] = edge_specs
        self._current_path = path
        self.remember_layout(path)
        self.reroute(path)

        if view.fit_state != FitState.FITTED:
            self._fit(diagram)

        logger.debug("Rendered %r: %d nodes (%d visiting), %d edges", path, len(nodes),
                     sum(1 for n in nodes if n.is_visiting), len(diagram.edges))
        self._notify_change(path)
        return diagram

    def get_diagram(self, path: str) -> Optional[DiagramView]:
        """The live diagram for a path, rendering it on first use."""
        path = normalize_path(path)
        diagram = self._diagrams.get(path)
        if diagram is None:
            return self.select_model(path)
        return diagram

    # --- Layout Operations ---

    def relayout(self, path: str, mode: Optional[LayoutMode] = None) -> Optional[DiagramView]:
        """
        Re-arrange a diagram from scratch.

        Without a mode, cycles to the next one (force, grid, radial, layered).
        The view is refitted afterwards.
        """
        diagram = self.get_diagram(path)
        if diagram is None:
            return None
        path = diagram.model_path

        mode = mode or diagram.layout_mode.next()
        pairs = [(e.source, e.target) for e in self._edge_specs.get(path, [])]
        diagram.surface_width, diagram.surface_height = arrange(
            diagram.nodes, pairs, mode, self._settings.layout
        )
        diagram.layout_mode = mode
        self._layout_modes[path] = mode
        self.remember_layout(path)
        self.reroute(path)
        self._fit(diagram)
        logger.info("Laid out %r with %s", path, mode.value)
        self._notify_change(path)
        return diagram

    def reroute(self, path: str) -> Optional[DiagramView]:
        """Route every edge of a diagram against its current node rectangles."""
        diagram = self._diagrams.get(normalize_path(path))
        if diagram is None:
            return None
        diagram.edges = route_edges(diagram.nodes, self._edge_specs.get(diagram.model_path, []),
                                    self._settings.router)
        return diagram

    def remember_node(self, path: str, node: DiagramNode):
        """Store one node's geometry in the path's layout cache."""
        self._layouts.setdefault(normalize_path(path), {})[node.id] = node.geometry()
        self._notify_change(normalize_path(path))

    def remember_layout(self, path: str):
        """Store every node's geometry of a rendered diagram."""
        diagram = self._diagrams.get(normalize_path(path))
        if diagram is None:
            return
        self._layouts[diagram.model_path] = {n.id: n.geometry() for n in diagram.nodes}

    def remembered_layout(self, path: str) -> dict[str, Geometry]:
        return dict(self._layouts.get(normalize_path(path), {}))

    def forget_layout(self, path: str):
        """Drop remembered positions so the next selection lays out afresh."""
        path = normalize_path(path)
        self._layouts.pop(path, None)
        self._diagrams.pop(path, None)
        self._edge_specs.pop(path, None)

    def expanded_ids(self, path: str) -> set[str]:
        """Mutable set of expanded class ids for a path."""
        return self._expanded.setdefault(normalize_path(path), set())

    # --- View ---

    def view_state(self, path: str) -> ViewState:
        """Get or create the view state for a path."""
        return self._views.setdefault(normalize_path(path), ViewState())

    def set_viewport_size(self, width: float, height: float):
        self._viewport_size = (width, height)

    def _fit(self, diagram: DiagramView):
        viewport.zoom_to_fit(diagram.view, content_bounds(diagram.nodes),
                             self._viewport_size[0], self._viewport_size[1],
                             self._settings.viewport)

    def fit_view(self, path: str) -> Optional[ViewState]:
        """Zoom a diagram to fit the viewport."""
        diagram = self.get_diagram(path)
        if diagram is None:
            return None
        self._fit(diagram)
        self._notify_change(diagram.model_path)
        return diagram.view

    def reset_view(self, path: str) -> ViewState:
        """Reset to identity; the next render of the path refits."""
        path = normalize_path(path)
        view = viewport.reset_view(self.view_state(path))
        self._diagrams.pop(path, None)
        self._notify_change(path)
        return view

    def zoom_at(self, path: str, sx: float, sy: float, factor: float) -> Optional[ViewState]:
        diagram = self.get_diagram(path)
        if diagram is None:
            return None
        viewport.zoom_at(diagram.view, sx, sy, factor, self._settings.viewport)
        self._notify_change(diagram.model_path)
        return diagram.view

    def pan(self, path: str, dx: float, dy: float) -> Optional[ViewState]:
        diagram = self.get_diagram(path)
        if diagram is None:
            return None
        viewport.pan_by(diagram.view, dx, dy)
        self._notify_change(diagram.model_path)
        return diagram.view

    # --- Interaction ---

    def interaction(self, path: str) -> InteractionController:
        """Get or create the pointer controller for a path."""
        path = normalize_path(path)
        controller = self._interactions.get(path)
        if controller is None:
            controller = InteractionController(self, path)
            self._interactions[path] = controller
        return controller

    def toggle_expanded(self, path: str, class_id: str) -> Optional[bool]:
        """Expand or collapse a class's attribute rows."""
        result = self.interaction(path).toggle_expand(class_id)
        if result is not None:
            self._notify_change(normalize_path(path))
        return result

    def get_state(self) -> dict:
        """Get a summary of the session for API responses."""
        return {
            "models": len(self._graph.models),
            "classes": len(self._graph.classes),
            "associations": len(self._graph.associations),
            "root_path": self._graph.root_path(),
            "current_path": self._current_path,
            "viewport": {"width": self._viewport_size[0], "height": self._viewport_size[1]},
        }
