"""
Model Viewer Backend - FastAPI Application

This is the main entry point for the model viewer backend.
It provides:
- REST API for model navigation, diagram rendering, layout and view operations
- Pointer interaction endpoints (drag, pan, wheel, expand/collapse)
- WebSocket endpoint for real-time updates
- CORS configuration for local frontend development

Configuration (environment):
- MODELVIEW_GRAPH: graph JSON to load at startup (demo project otherwise)
- MODELVIEW_HOST / MODELVIEW_PORT: bind address for `python -m modelview_backend.main`
- MODELVIEW_LOG_LEVEL / MODELVIEW_LOG_FILE: logging setup
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from modelview_core import (
    Archetype, DiagramSession, LayoutMode, build_demo_graph,
    summarize_diagram, validate_graph, validation_summary,
)

from .logging_config import parse_level, setup_logging
from .websocket_manager import viewer_channel


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765

GRAPH_PATH = os.environ.get("MODELVIEW_GRAPH")
HOST = os.environ.get("MODELVIEW_HOST", DEFAULT_HOST)
PORT = int(os.environ.get("MODELVIEW_PORT", DEFAULT_PORT))
LOG_LEVEL = parse_level(os.environ.get("MODELVIEW_LOG_LEVEL"))
LOG_FILE = os.environ.get("MODELVIEW_LOG_FILE")

logger = logging.getLogger(__name__)

# Global session for the application
session = DiagramSession()


def load_initial_graph():
    """Load MODELVIEW_GRAPH if set, otherwise the demo project."""
    if GRAPH_PATH:
        try:
            session.open_graph(GRAPH_PATH)
            return
        except (OSError, ValueError) as e:
            logger.error("Failed to load %s (%s); falling back to demo project", GRAPH_PATH, e)
    session.load_graph(build_demo_graph())


# --- Async change notification ---
# Bridge between sync DiagramSession callbacks and async WebSocket broadcasts

_change_event: Optional[asyncio.Event] = None
_changed_paths: set[str] = set()


def on_diagram_change(model_path: str):
    """Callback for diagram changes - records the path and wakes the broadcaster."""
    _changed_paths.add(model_path)
    if _change_event is not None:
        _change_event.set()


async def change_broadcaster(event: asyncio.Event):
    """Background task that broadcasts changes to WebSocket clients."""
    while True:
        await event.wait()
        event.clear()

        paths = sorted(_changed_paths)
        _changed_paths.clear()
        for path in paths:
            await viewer_channel.notify_diagram_updated(path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event
    setup_logging(LOG_LEVEL, LOG_FILE)
    # The event belongs to this loop; a new one is made per app start
    _change_event = asyncio.Event()
    session.on_change(on_diagram_change)
    load_initial_graph()

    broadcaster_task = asyncio.create_task(change_broadcaster(_change_event))

    yield

    _change_event = None

    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass


# --- FastAPI App ---

app = FastAPI(
    title="Model Viewer API",
    description="Backend API for navigating and laying out class model diagrams",
    version="1.0.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _diagram_or_404(path: str):
    diagram = session.get_diagram(path)
    if diagram is None:
        raise HTTPException(status_code=404, detail=f"Model not found: {path!r}")
    return diagram


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": viewer_channel.connection_count}


# --- Graph ---

@app.get("/api/graph")
async def get_graph():
    """Get counts and selection state of the loaded graph."""
    return session.get_state()


class OpenGraphRequest(BaseModel):
    file_path: str


@app.post("/api/graph/open")
async def open_graph(request: OpenGraphRequest):
    """Load a graph from a JSON file, replacing the current one."""
    try:
        graph = session.open_graph(request.file_path)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Failed to open graph: {e}")
    await viewer_channel.notify_graph_loaded(graph.root_path())
    return {"success": True, "state": session.get_state()}


@app.post("/api/graph/demo")
async def load_demo():
    """Replace the current graph with the demo project."""
    graph = session.load_graph(build_demo_graph())
    await viewer_channel.notify_graph_loaded(graph.root_path())
    return {"success": True, "state": session.get_state()}


@app.get("/api/graph/validate")
async def validate_current_graph():
    """
    Validate the loaded graph for structural issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    issues = validate_graph(session.graph)
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


@app.get("/api/models")
async def get_models():
    """Get the model tree with per-model class counts."""
    return {"success": True, "tree": session.model_tree()}


# --- Diagram ---

@app.get("/api/diagram")
async def get_diagram(path: str = Query(default="")):
    """Select a model and return its diagram."""
    diagram = session.select_model(path)
    if diagram is None:
        raise HTTPException(status_code=404, detail=f"Model not found: {path!r}")
    return {"success": True, "diagram": diagram.to_json_dict()}


@app.get("/api/diagram/summary")
async def summarize_current_diagram(path: str = Query(default="")):
    """
    Get a structural summary of a model's diagram.

    Returns node counts by archetype, home/visiting split, connected
    components, and most connected classes.
    """
    diagram = _diagram_or_404(path)
    return {"success": True, "summary": summarize_diagram(diagram).to_dict()}


class LayoutRequest(BaseModel):
    path: str = ""
    mode: Optional[LayoutMode] = None  # None cycles to the next mode


@app.post("/api/diagram/layout")
async def layout_diagram(request: LayoutRequest):
    """Re-arrange a diagram with the given (or next) layout mode."""
    diagram = session.relayout(request.path, request.mode)
    if diagram is None:
        raise HTTPException(status_code=404, detail=f"Model not found: {request.path!r}")
    return {"success": True, "diagram": diagram.to_json_dict()}


class PathRequest(BaseModel):
    path: str = ""


@app.post("/api/diagram/fit")
async def fit_diagram(request: PathRequest):
    """Zoom a diagram to fit the viewport."""
    view = session.fit_view(request.path)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Model not found: {request.path!r}")
    return {"success": True, "view": view.model_dump(mode="json")}


@app.post("/api/diagram/reset-view")
async def reset_diagram_view(request: PathRequest):
    """Reset a diagram's view; it is refitted on next render."""
    _diagram_or_404(request.path)
    view = session.reset_view(request.path)
    return {"success": True, "view": view.model_dump(mode="json")}


class ZoomRequest(BaseModel):
    path: str = ""
    x: float
    y: float
    factor: float


@app.post("/api/diagram/zoom")
async def zoom_diagram(request: ZoomRequest):
    """Zoom by a factor around a screen point."""
    if request.factor <= 0:
        raise HTTPException(status_code=400, detail="Zoom factor must be positive")
    view = session.zoom_at(request.path, request.x, request.y, request.factor)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Model not found: {request.path!r}")
    return {"success": True, "view": view.model_dump(mode="json")}


class WheelRequest(BaseModel):
    path: str = ""
    x: float
    y: float
    delta_y: float


@app.post("/api/diagram/wheel")
async def wheel_diagram(request: WheelRequest):
    """Zoom one wheel step at the pointer."""
    diagram = _diagram_or_404(request.path)
    session.interaction(diagram.model_path).wheel(request.x, request.y, request.delta_y)
    return {"success": True, "view": diagram.view.model_dump(mode="json")}


class PanRequest(BaseModel):
    path: str = ""
    dx: float
    dy: float


@app.post("/api/diagram/pan")
async def pan_diagram(request: PanRequest):
    """Pan by a screen-space delta."""
    view = session.pan(request.path, request.dx, request.dy)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Model not found: {request.path!r}")
    return {"success": True, "view": view.model_dump(mode="json")}


class ViewportRequest(BaseModel):
    width: float
    height: float


@app.post("/api/viewport")
async def set_viewport(request: ViewportRequest):
    """Tell the backend the size of the host's drawing viewport."""
    if request.width <= 0 or request.height <= 0:
        raise HTTPException(status_code=400, detail="Viewport size must be positive")
    session.set_viewport_size(request.width, request.height)
    return {"success": True, "viewport": {"width": request.width, "height": request.height}}


# --- Interaction ---

class PointerRequest(BaseModel):
    path: str = ""
    phase: str  # down, move, up
    x: float
    y: float


@app.post("/api/diagram/pointer")
async def pointer_event(request: PointerRequest):
    """Feed a screen-space pointer event to the diagram's state machine."""
    diagram = _diagram_or_404(request.path)
    controller = session.interaction(diagram.model_path)

    if request.phase == "down":
        controller.pointer_down(request.x, request.y)
    elif request.phase == "move":
        controller.pointer_move(request.x, request.y)
    elif request.phase == "up":
        controller.pointer_up(request.x, request.y)
    else:
        raise HTTPException(status_code=400, detail=f"Unknown pointer phase: {request.phase}")

    return {"success": True, "mode": controller.mode.value, "diagram": diagram.to_json_dict()}


class ToggleRequest(BaseModel):
    path: str = ""
    class_id: str


@app.post("/api/diagram/toggle")
async def toggle_class(request: ToggleRequest):
    """Expand or collapse a class's attribute rows."""
    diagram = _diagram_or_404(request.path)
    expanded = session.toggle_expanded(diagram.model_path, request.class_id)
    if expanded is None:
        raise HTTPException(status_code=404, detail=f"Class not on diagram: {request.class_id}")
    return {"success": True, "expanded": expanded, "diagram": diagram.to_json_dict()}


# --- Enums for Frontend ---

@app.get("/api/enums/archetypes")
async def get_archetypes():
    """Get available archetypes."""
    return {"archetypes": [a.value for a in Archetype]}


@app.get("/api/enums/layout-modes")
async def get_layout_modes():
    """Get layout modes in cycling order."""
    return {"modes": [m.value for m in LayoutMode]}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Viewers receive diagram_updated events here and may send "ping" or
    {"type": "subscribe", "model_path": ...} to follow a single model.
    """
    await viewer_channel.connect(websocket)

    try:
        while True:
            reply = await viewer_channel.handle(websocket, await websocket.receive_text())
            await websocket.send_json(reply)
    except WebSocketDisconnect:
        await viewer_channel.disconnect(websocket)


def run(host: str = HOST, port: int = PORT):
    """Serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
