"""
Model Viewer Core - Entity graph, layout, routing and interaction for class diagrams.

This module provides the core functionality used by both the backend API
and the CLI, ensuring a single source of truth for all diagram logic.
"""

from .models import (
    # Enums
    Archetype,
    Side,
    LayoutMode,
    FitState,
    # Entity graph
    Attribute,
    Geometry,
    Model,
    ModelClass,
    Association,
    EntityGraph,
    # Diagram records
    DiagramNode,
    EdgeSpec,
    LabelPlacement,
    RoutedEdge,
    ContentBounds,
    ViewState,
    DiagramView,
    make_class_id,
)

from .settings import LayoutSettings, RouterSettings, ViewportSettings, ViewerSettings
from .resolver import ReferenceResolver
from .archetypes import classify, classify_name, normalize_archetype_tag
from .layout import (
    force_layout, grid_layout, radial_layout, layered_layout,
    resolve_overlaps, fit_to_content, content_bounds, size_node, arrange,
)
from .routing import route_edges, collect_edges, choose_sides
from .viewport import screen_to_content, content_to_screen, zoom_at, zoom_to_fit, pan_by
from .interaction import InteractionController, InteractionMode, apply_pointer_delta
from .session import DiagramSession
from .validation import validate_graph, validation_summary, ValidationIssue, IssueSeverity
from .analysis import summarize_diagram, find_connected_components
from .demo import build_demo_graph

__all__ = [
    # Enums
    "Archetype",
    "Side",
    "LayoutMode",
    "FitState",
    # Entity graph
    "Attribute",
    "Geometry",
    "Model",
    "ModelClass",
    "Association",
    "EntityGraph",
    "make_class_id",
    # Diagram records
    "DiagramNode",
    "EdgeSpec",
    "LabelPlacement",
    "RoutedEdge",
    "ContentBounds",
    "ViewState",
    "DiagramView",
    # Settings
    "LayoutSettings",
    "RouterSettings",
    "ViewportSettings",
    "ViewerSettings",
    # Resolution / classification
    "ReferenceResolver",
    "classify",
    "classify_name",
    "normalize_archetype_tag",
    # Layout
    "force_layout",
    "grid_layout",
    "radial_layout",
    "layered_layout",
    "resolve_overlaps",
    "fit_to_content",
    "content_bounds",
    "size_node",
    "arrange",
    # Routing
    "route_edges",
    "collect_edges",
    "choose_sides",
    # Viewport
    "screen_to_content",
    "content_to_screen",
    "zoom_at",
    "zoom_to_fit",
    "pan_by",
    # Interaction / session
    "InteractionController",
    "InteractionMode",
    "apply_pointer_delta",
    "DiagramSession",
    # Validation
    "validate_graph",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Analysis
    "summarize_diagram",
    "find_connected_components",
    "build_demo_graph",
]
