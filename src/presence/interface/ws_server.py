"""HTTP + WebSocket front end of the presence hub.

Runs as a FastAPI application.  Browser clients connect to ``/ws`` with
the shared token and exchange JSON text frames (see
:mod:`presence.protocol`).  Each frame is validated, handed to the hub
and the resulting effects are delivered by the connection manager.

Routes
------
``GET  /``            static client (if present)
``GET  /health``      liveness and counters
``GET  /admin``       HTML report, token-gated
``GET  /api/report``  JSON report, token-gated
``WS   /ws``          event stream, token-gated
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from presence.config import Settings, get_settings
from presence.core.hub import Hub
from presence.errors import ProtocolError, Unauthorized
from presence.interface.relay import ConnectionManager
from presence.interface.report import build_report, check_token
from presence.protocol import (
    ErrorMessage,
    FaceSample,
    Ping,
    Pong,
    RtcSignal,
    SmartHomeRequest,
    SpatialFrame,
    VoiceTranscript,
    parse_message,
)
from presence.store import MemoryStore

logger = logging.getLogger(__name__)

_TEMPLATES = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[MemoryStore] = None,
) -> FastAPI:
    """Build the hub application.

    The Memory document is loaded once here; the hub owns it for the
    lifetime of the app and flushes it again on shutdown.
    """
    settings = settings or get_settings()
    store = store or MemoryStore(settings.memory_path)
    hub = Hub(
        store,
        threshold=settings.match_threshold,
        greeting_emotion=settings.greeting_emotion,
    )
    connections = ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Presence hub online, memory at %s", store.path)
        yield
        await hub.flush()

    app = FastAPI(title="Presence Hub", version="0.1.0", lifespan=lifespan)
    app.state.hub = hub
    app.state.connections = connections
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    @app.get("/")
    async def index():
        """Serve the browser client."""
        index_path = static_dir / "index.html"
        if index_path.exists():
            return FileResponse(str(index_path), media_type="text/html")
        return HTMLResponse("<h1>Presence Hub</h1><p>Web client not found.</p>")

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "connections": len(connections),
            "faces": len(hub.memory.faces),
        }

    # ---- reporting ----

    @app.get("/admin", response_class=HTMLResponse)
    async def admin(request: Request, token: Optional[str] = None):
        try:
            check_token(token, settings.admin_token)
        except Unauthorized:
            return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)
        report = build_report(await hub.snapshot())
        return _TEMPLATES.TemplateResponse(request, "admin.html", {"report": report})

    @app.get("/api/report")
    async def api_report(token: Optional[str] = None):
        try:
            check_token(token, settings.admin_token)
        except Unauthorized:
            return JSONResponse({"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)
        report = build_report(await hub.snapshot())
        return report.model_dump()

    # ---- WebSocket handler ----

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        try:
            check_token(ws.query_params.get("token"), settings.admin_token)
        except Unauthorized:
            logger.warning("Rejected socket with bad token")
            await ws.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await ws.accept()
        conn = connections.connect(ws, settings.room)
        try:
            while True:
                msg = await ws.receive()
                if msg["type"] == "websocket.disconnect":
                    break

                # Binary frames (raw microphone audio) belong to the
                # transcription service, not to the hub.
                text = msg.get("text")
                if not text:
                    continue

                try:
                    message = parse_message(text)
                except ProtocolError as exc:
                    await conn.send(ErrorMessage(message=str(exc)))
                    continue

                if isinstance(message, Ping):
                    await conn.send(Pong())
                    continue

                if isinstance(message, RtcSignal):
                    await connections.relay(conn, message)
                    continue

                if isinstance(message, FaceSample):
                    effects = await hub.handle_face_sample(message)
                elif isinstance(message, VoiceTranscript):
                    effects = await hub.handle_transcript(message.text)
                elif isinstance(message, SmartHomeRequest):
                    effects = await hub.handle_smart_home(message)
                elif isinstance(message, SpatialFrame):
                    effects = await hub.handle_spatial_frame(message.frame)
                else:
                    continue
                await connections.deliver(conn, effects)

        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("WebSocket error")
        finally:
            connections.disconnect(conn)

    return app
