"""
Viewer channel - live diagram events for connected canvases.

Each connected viewer may subscribe to one model path. Diagram events
for other models are not sent to it; an unsubscribed viewer hears about
every model. Graph reloads go to everyone.
"""
import asyncio
import json
import logging
from typing import Iterable, Literal, Optional

from fastapi import WebSocket
from pydantic import BaseModel, ValidationError


logger = logging.getLogger(__name__)


class ViewerMessage(BaseModel):
    """A command sent by a viewer over the socket."""
    type: Literal["ping", "subscribe", "unsubscribe"]
    model_path: Optional[str] = None


class ViewerChannel:
    """
    Tracks connected viewers and the model path each one follows.

    A viewer whose send fails is forgotten; the remaining viewers still
    get the event.
    """

    def __init__(self):
        # socket -> followed model path (None follows all models)
        self._viewers: dict[WebSocket, Optional[str]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._viewers[websocket] = None
        logger.info("Viewer connected (%d open)", len(self._viewers))

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._viewers.pop(websocket, None)
        logger.info("Viewer disconnected (%d open)", len(self._viewers))

    def following(self, websocket: WebSocket) -> Optional[str]:
        """Model path a viewer follows, None when it follows everything."""
        return self._viewers.get(websocket)

    async def handle(self, websocket: WebSocket, text: str) -> dict:
        """
        Apply one viewer command and build the reply.

        Accepts the bare text "ping" as well as JSON commands of the form
        {"type": "subscribe", "model_path": "Domain/Orders"}.
        """
        if text == "ping":
            return {"type": "pong"}
        try:
            message = ViewerMessage.model_validate_json(text)
        except ValidationError as e:
            logger.debug("Rejected viewer message %r: %s", text, e)
            return {"type": "error", "detail": "Unrecognized message"}

        if message.type == "ping":
            return {"type": "pong"}
        path = message.model_path if message.type == "subscribe" else None
        async with self._lock:
            if websocket in self._viewers:
                self._viewers[websocket] = path
        logger.debug("Viewer now follows %r", path)
        return {"type": "subscribed", "model_path": path}

    async def _send(self, targets: Iterable[WebSocket], message: dict):
        text = json.dumps(message)
        dead: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.debug("Forgetting viewer after failed send: %s", e)
                dead.append(websocket)
        for websocket in dead:
            self._viewers.pop(websocket, None)

    async def notify_diagram_updated(self, model_path: str):
        """
        Tell the viewers following a model that its diagram changed.

        Viewers re-fetch it via GET /api/diagram?path=...
        """
        async with self._lock:
            targets = [ws for ws, path in self._viewers.items() if path is None or path == model_path]
            await self._send(targets, {"type": "diagram_updated", "model_path": model_path})

    async def notify_graph_loaded(self, root_path: str):
        """Tell every viewer the whole graph was replaced."""
        async with self._lock:
            await self._send(list(self._viewers), {"type": "graph_loaded", "root_path": root_path})

    @property
    def connection_count(self) -> int:
        return len(self._viewers)


viewer_channel = ViewerChannel()
