"""
Tunable constants for layout, routing and the viewport.

Module-level defaults are grouped into settings objects so a session (or a
test) can override individual values without touching the algorithms.
"""

from pydantic import BaseModel, Field


# Virtual canvas the force simulation runs on
CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 800

# Force simulation
GRAVITY = 0.05
MIN_DISTANCE = 0.01
BASE_ITERATIONS = 100
ITERATIONS_PER_NODE = 15
MAX_ITERATIONS = 400
TEMPERATURE_EPSILON = 0.05

# Overlap resolution / fitting
OVERLAP_MARGIN = 8
OVERLAP_PASSES = 50
FIT_MARGIN = 24

# Alternate arrangements
GRID_GAP_X = 40
GRID_GAP_Y = 40
RADIAL_BASE_RADIUS = 120
RADIAL_RADIUS_PER_NODE = 30
LAYER_GAP_X = 40
LAYER_GAP_Y = 80

# Node boxes
MIN_BOX_WIDTH = 180
BOX_HEIGHT = 60
ATTRIBUTE_ROW_HEIGHT = 18
TEXT_PADDING = 12
TOGGLE_WIDTH = 20
CHAR_WIDTH = 7.0

# Edge routing
CORNER_INSET = 10
STUB_LENGTH = 16
LABEL_OFFSET = 6
LABEL_LIFT = 4

# Viewport
MIN_SCALE = 0.1
MAX_SCALE = 8.0
FIT_PADDING = 24
ZOOM_STEP = 1.1
DEFAULT_VIEWPORT_WIDTH = 900
DEFAULT_VIEWPORT_HEIGHT = 600


class LayoutSettings(BaseModel):
    """Parameters for the layout engine and node sizing."""
    canvas_width: float = CANVAS_WIDTH
    canvas_height: float = CANVAS_HEIGHT
    gravity: float = GRAVITY
    min_distance: float = MIN_DISTANCE
    base_iterations: int = BASE_ITERATIONS
    iterations_per_node: int = ITERATIONS_PER_NODE
    max_iterations: int = MAX_ITERATIONS
    temperature_epsilon: float = TEMPERATURE_EPSILON
    overlap_margin: float = OVERLAP_MARGIN
    overlap_passes: int = OVERLAP_PASSES
    fit_margin: float = FIT_MARGIN
    grid_gap_x: float = GRID_GAP_X
    grid_gap_y: float = GRID_GAP_Y
    radial_base_radius: float = RADIAL_BASE_RADIUS
    radial_radius_per_node: float = RADIAL_RADIUS_PER_NODE
    layer_gap_x: float = LAYER_GAP_X
    layer_gap_y: float = LAYER_GAP_Y
    min_box_width: float = MIN_BOX_WIDTH
    box_height: float = BOX_HEIGHT
    attribute_row_height: float = ATTRIBUTE_ROW_HEIGHT
    text_padding: float = TEXT_PADDING
    toggle_width: float = TOGGLE_WIDTH
    char_width: float = CHAR_WIDTH

    def iteration_count(self, node_count: int) -> int:
        """Annealing steps for a node set of the given size."""
        return min(self.max_iterations, self.base_iterations + self.iterations_per_node * node_count)


class RouterSettings(BaseModel):
    """Parameters for edge attachment and label placement."""
    corner_inset: float = CORNER_INSET
    stub_length: float = STUB_LENGTH
    label_offset: float = LABEL_OFFSET
    label_lift: float = LABEL_LIFT


class ViewportSettings(BaseModel):
    """Zoom limits and fit padding."""
    min_scale: float = MIN_SCALE
    max_scale: float = MAX_SCALE
    fit_padding: float = FIT_PADDING
    zoom_step: float = ZOOM_STEP
    viewport_width: float = DEFAULT_VIEWPORT_WIDTH
    viewport_height: float = DEFAULT_VIEWPORT_HEIGHT


class ViewerSettings(BaseModel):
    """All settings a diagram session needs."""
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    router: RouterSettings = Field(default_factory=RouterSettings)
    viewport: ViewportSettings = Field(default_factory=ViewportSettings)
