"""Caller side of the render message boundary."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

from plantuml_gateway.messaging.correlator import RequestCorrelator
from plantuml_gateway.schemas import (
    PlantUmlResultMessage,
    RenderPlantUmlMessage,
    RenderRequestPayload,
    RenderResult,
    dump_message,
)

logger = logging.getLogger(__name__)

PostMessage = Callable[[dict], Awaitable[Any]]


def new_request_id(prefix: str = "plantuml") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class RenderClient:
    """Sends `renderPlantUml` requests and matches the results that come back.

    `post_message` delivers a JSON-ready dict to the host. Results must be fed
    back through `handle_result` by whatever reads the host's messages.
    """

    def __init__(self, post_message: PostMessage, timeout: float = 60.0) -> None:
        self._post_message = post_message
        self._timeout = timeout
        self._pending: RequestCorrelator[Callable[[RenderResult], None]] = RequestCorrelator()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def render(self, code: str, request_id: Optional[str] = None) -> RenderResult:
        request_id = request_id or new_request_id()
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def deliver(result: RenderResult) -> None:
            if not future.done():
                future.set_result(result)

        self._pending.register(request_id, deliver)
        message = RenderPlantUmlMessage(payload=RenderRequestPayload(code=code, request_id=request_id))
        try:
            await self._post_message(dump_message(message))
            return await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("No PlantUML result for %s within %.1fs", request_id, self._timeout)
            return RenderResult.failure(f"No response for render request {request_id}")
        except Exception as exc:
            # Only the post can fail here; the future is resolved with results, never errors.
            logger.warning("Could not send render request %s: %s", request_id, exc)
            return RenderResult.failure(f"Failed to send render request {request_id}: {exc}")
        finally:
            self._pending.unregister(request_id)

    def handle_result(self, message: PlantUmlResultMessage) -> bool:
        """Deliver a result to its waiting request. Returns False for unknown ids."""
        callback = self._pending.resolve(message.payload.request_id)
        if callback is None:
            logger.debug("Ignoring PlantUML result for unknown request %s", message.payload.request_id)
            return False
        callback(message.payload.to_result())
        return True
