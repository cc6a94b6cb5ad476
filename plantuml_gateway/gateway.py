"""Public entry point for rendering PlantUML diagrams."""
from __future__ import annotations

import logging
from typing import Optional

from plantuml_gateway.errors import GatewayError
from plantuml_gateway.renderers.plantuml_server import PlantUmlServer, ServerProcessState
from plantuml_gateway.schemas import RenderResult
from plantuml_gateway.utils.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class PlantUmlGateway:
    """Caller-owned handle around one PlantUML server process.

    Create it when the host session starts and dispose it when the session
    ends; `async with PlantUmlGateway.create() as gateway:` does both.
    """

    def __init__(self, server: PlantUmlServer) -> None:
        self._server = server
        self._disposed = False

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        *,
        jar_path: Optional[str] = None,
        **server_options,
    ) -> "PlantUmlGateway":
        settings = settings or default_settings
        return cls(PlantUmlServer(jar_path, settings, **server_options))

    @property
    def server(self) -> PlantUmlServer:
        return self._server

    @property
    def state(self) -> ServerProcessState:
        return self._server.state

    @property
    def is_running(self) -> bool:
        return self._server.is_running

    async def start(self) -> None:
        """Start the renderer now, raising setup errors instead of folding them into a result."""
        if self._disposed:
            raise GatewayError("PlantUML gateway has been disposed")
        await self._server.ensure_started()

    async def render(self, source_text: str) -> RenderResult:
        if self._disposed:
            return RenderResult.failure("PlantUML gateway has been disposed")
        try:
            return await self._server.render(source_text)
        except Exception as exc:  # render never raises to callers
            logger.exception("Unexpected PlantUML render failure")
            return RenderResult.failure(str(exc) or exc.__class__.__name__)

    async def dispose(self) -> None:
        self._disposed = True
        await self._server.stop()

    async def __aenter__(self) -> "PlantUmlGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
