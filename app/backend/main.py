from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nurviz_core import InvalidParameterError, UnknownCellError, __version__
from viz.utils import build_cytoscape_elements

from .hub import NoSessionError, SessionHub


class FocusRequest(BaseModel):
    cell_id: str


class ParametersRequest(BaseModel):
    max_depth: Optional[int] = None
    direction: Optional[str] = None


class LayoutConfigureRequest(BaseModel):
    options: Dict[str, Any]


async def _call(hub: SessionHub, command: str, *args, **kwargs):
    try:
        return await hub.run(command, *args, **kwargs)
    except NoSessionError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except UnknownCellError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidParameterError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _require(hub: SessionHub) -> None:
    if not hub.loaded:
        raise HTTPException(status_code=503, detail="no network loaded")


def create_app(hub: Optional[SessionHub] = None) -> FastAPI:
    """Build the HTTP adapter; without a hub one is loaded from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.hub is None:
            app.state.hub = SessionHub.from_environment()
        app.state.hub.bind_loop(asyncio.get_running_loop())
        yield
        app.state.hub.close()

    app = FastAPI(title="nurviz API", version=__version__, lifespan=lifespan)
    app.state.hub = hub

    # Allow local dev frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def current() -> SessionHub:
        return app.state.hub

    @app.get("/graph")
    async def get_graph(format: Literal["graph", "cytoscape"] = "graph"):
        hub = current()
        _require(hub)
        graph = hub.session.graph
        if format == "cytoscape":
            return JSONResponse(jsonable_encoder(build_cytoscape_elements(graph)))
        return JSONResponse(jsonable_encoder(graph.to_dict()))

    @app.get("/state")
    async def get_state():
        hub = current()
        _require(hub)
        return JSONResponse(jsonable_encoder(hub.state()))

    @app.post("/focus")
    async def post_focus(body: FocusRequest):
        visited = await _call(current(), "select_focus", body.cell_id)
        return {"ok": True, "visible": len(visited)}

    @app.post("/parameters")
    async def post_parameters(body: ParametersRequest):
        visited = await _call(
            current(), "set_parameters", max_depth=body.max_depth, direction=body.direction
        )
        return {"ok": True, "visible": len(visited)}

    @app.post("/clear")
    async def post_clear():
        await _call(current(), "clear")
        return {"ok": True}

    @app.post("/hide-all")
    async def post_hide_all():
        await _call(current(), "hide_all")
        return {"ok": True}

    @app.post("/layout/configure")
    async def post_layout_configure(body: LayoutConfigureRequest):
        options = await _call(current(), "configure_layout", body.options)
        return {"ok": True, "options": options.to_dict()}

    @app.post("/layout/{cmd}")
    async def post_layout(cmd: Literal["start", "stop", "tick"]):
        hub = current()
        if cmd == "start":
            started = await _call(hub, "start_layout")
            return {"ok": True, "started": started}
        if cmd == "stop":
            await _call(hub, "stop_layout")
            return {"ok": True}
        ran = await _call(hub, "tick_layout")
        return {"ok": True, "ran": ran}

    @app.websocket("/stream")
    async def ws_stream(ws: WebSocket):
        await ws.accept()
        hub = current()
        if not hub.loaded:
            await ws.send_json({"type": "error", "detail": "no network loaded"})
            await ws.close()
            return

        # Subscribe before the initial graph goes out
        q = hub.subscribe()

        async def pump() -> None:
            while True:
                update = await q.get()
                await ws.send_json(jsonable_encoder(update))

        pusher: Optional[asyncio.Task] = None
        try:
            await ws.send_json({
                "type": "init",
                "state": jsonable_encoder(hub.state()),
                "graph": jsonable_encoder(hub.session.graph.to_dict()),
            })
            pusher = asyncio.create_task(pump())

            # Client messages are ignored; reading only detects the disconnect
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except WebSocketDisconnect:
            pass
        finally:
            if pusher is not None:
                pusher.cancel()
            hub.unsubscribe(q)

    @app.get("/")
    async def root():
        hub = current()
        return {"service": "nurviz", "status": "ok", "loaded": bool(hub and hub.loaded)}

    return app


app = create_app()
