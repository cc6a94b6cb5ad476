"""REST and websocket front end for the PlantUML gateway."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect

from plantuml_gateway.gateway import PlantUmlGateway
from plantuml_gateway.messaging.handler import MessageHandler
from plantuml_gateway.schemas import RenderRequest, RenderResult

logger = logging.getLogger(__name__)


def create_app(gateway: PlantUmlGateway | None = None) -> FastAPI:
    """Build the app. The gateway lives exactly as long as the app's lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.gateway = gateway or PlantUmlGateway.create()
        try:
            yield
        finally:
            await app.state.gateway.dispose()

    app = FastAPI(title="PlantUML Rendering Gateway", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        gw: PlantUmlGateway = request.app.state.gateway
        return {"status": "ok", "renderer": gw.state.value}

    @app.post("/render", response_model=RenderResult, response_model_exclude_none=True)
    async def render(payload: RenderRequest, request: Request) -> RenderResult:
        gw: PlantUmlGateway = request.app.state.gateway
        return await gw.render(payload.code)

    @app.websocket("/ws")
    async def messages(websocket: WebSocket) -> None:
        await websocket.accept()
        handler = MessageHandler(websocket.app.state.gateway, websocket.send_json)
        # Each message runs on its own task so a slow render never holds up the next one.
        inflight: set = set()
        try:
            while True:
                data = await websocket.receive_json()
                task = asyncio.ensure_future(handler.handle_raw(data))
                inflight.add(task)
                task.add_done_callback(inflight.discard)
        except WebSocketDisconnect:
            logger.debug("Websocket client disconnected")
        finally:
            for task in inflight:
                task.cancel()

    return app


app = create_app()
