"""
Viewport transforms - pan, zoom and fit for a diagram's view state.

Screen space is the host's pixel space; content space is the layout's
coordinate space. A view state maps content to screen as

    screen = content * scale + pan

All functions mutate the given ViewState in place and never raise: a
degenerate viewport or empty content falls back to scale 1 and zero pan.
"""

import logging

from .models import ContentBounds, FitState, ViewState
from .settings import ViewportSettings


logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = ViewportSettings()


def clamp_scale(scale: float, settings: ViewportSettings = DEFAULT_SETTINGS) -> float:
    return max(settings.min_scale, min(settings.max_scale, scale))


def screen_to_content(view: ViewState, sx: float, sy: float) -> tuple[float, float]:
    """Convert a screen point to content coordinates."""
    return ((sx - view.pan_x) / view.scale, (sy - view.pan_y) / view.scale)


def content_to_screen(view: ViewState, cx: float, cy: float) -> tuple[float, float]:
    """Convert a content point to screen coordinates."""
    return (cx * view.scale + view.pan_x, cy * view.scale + view.pan_y)


def reset_view(view: ViewState) -> ViewState:
    """Back to identity transform; the next render refits."""
    view.pan_x = 0.0
    view.pan_y = 0.0
    view.scale = 1.0
    view.fit_state = FitState.RESET
    return view


def pan_by(view: ViewState, dx: float, dy: float) -> ViewState:
    """Shift the view by a screen-space delta."""
    view.pan_x += dx
    view.pan_y += dy
    return view


def zoom_at(
    view: ViewState,
    sx: float,
    sy: float,
    factor: float,
    settings: ViewportSettings = DEFAULT_SETTINGS,
) -> ViewState:
    """
    Multiply the scale by `factor`, keeping the content point under the
    screen point (sx, sy) fixed.
    """
    if factor <= 0:
        return view
    cx, cy = screen_to_content(view, sx, sy)
    view.scale = clamp_scale(view.scale * factor, settings)
    view.pan_x = sx - cx * view.scale
    view.pan_y = sy - cy * view.scale
    return view


def wheel_factor(delta_y: float, settings: ViewportSettings = DEFAULT_SETTINGS) -> float:
    """Zoom factor for one wheel event: scrolling up zooms in."""
    if delta_y < 0:
        return settings.zoom_step
    if delta_y > 0:
        return 1 / settings.zoom_step
    return 1.0


def zoom_to_fit(
    view: ViewState,
    bounds: ContentBounds,
    viewport_width: float,
    viewport_height: float,
    settings: ViewportSettings = DEFAULT_SETTINGS,
) -> ViewState:
    """
    Scale and pan so `bounds` fits the viewport minus padding on each side.

    The smaller of the two axis scales is used so the aspect ratio holds,
    and the content's top-left lands at (padding, padding).
    """
    padding = settings.fit_padding
    avail_w = viewport_width - 2 * padding
    avail_h = viewport_height - 2 * padding

    if bounds.is_empty or avail_w <= 0 or avail_h <= 0:
        logger.debug("Degenerate fit (bounds=%s, viewport=%sx%s)", bounds, viewport_width, viewport_height)
        view.scale = 1.0
        view.pan_x = 0.0
        view.pan_y = 0.0
        view.fit_state = FitState.FITTED
        return view

    scales = []
    if bounds.width > 0:
        scales.append(avail_w / bounds.width)
    if bounds.height > 0:
        scales.append(avail_h / bounds.height)

    view.scale = clamp_scale(min(scales), settings)
    view.pan_x = padding - bounds.x * view.scale
    view.pan_y = padding - bounds.y * view.scale
    view.fit_state = FitState.FITTED
    return view
