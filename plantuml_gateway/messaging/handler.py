"""Host side of the render message boundary."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from plantuml_gateway.gateway import PlantUmlGateway
from plantuml_gateway.schemas import (
    ErrorMessage,
    GetServerStatusMessage,
    PlantUmlResultMessage,
    RenderPlantUmlMessage,
    ServerStatusMessage,
    ServerStatusPayload,
    dump_message,
    parse_extension_message,
)

logger = logging.getLogger(__name__)


class MessageHandler:
    def __init__(self, gateway: PlantUmlGateway, post_message: Callable[[dict], Awaitable[Any]]) -> None:
        self._gateway = gateway
        self._post_message = post_message

    async def handle_raw(self, data: Any) -> None:
        """Validate an untyped incoming message and dispatch it."""
        try:
            message = parse_extension_message(data)
        except ValidationError as exc:
            logger.warning("Rejected malformed message: %s", exc.errors()[:1])
            await self._post_message(dump_message(ErrorMessage(payload=f"Invalid message: {exc.error_count()} error(s)")))
            return
        await self.handle(message)

    async def handle(self, message) -> None:
        if isinstance(message, RenderPlantUmlMessage):
            await self._render(message)
        elif isinstance(message, GetServerStatusMessage):
            await self._status()

    async def _render(self, message: RenderPlantUmlMessage) -> None:
        request_id = message.payload.request_id
        result = await self._gateway.render(message.payload.code)
        await self._post_message(dump_message(PlantUmlResultMessage.from_result(request_id, result)))

    async def _status(self) -> None:
        state = self._gateway.state
        payload = ServerStatusPayload(state=state.value, running=self._gateway.is_running)
        await self._post_message(dump_message(ServerStatusMessage(payload=payload)))
