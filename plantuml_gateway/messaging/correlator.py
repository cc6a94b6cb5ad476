"""Request/response correlation for asynchronous cross-boundary requests."""
from __future__ import annotations

from typing import Dict, Generic, Optional, TypeVar


T = TypeVar("T")


class RequestCorrelator(Generic[T]):
    """Keyed single-use callback registry.

    One instance per request kind. Entries leave the registry exactly once,
    through `resolve` or `unregister`; there is no expiry, so callers that
    give up on a request must unregister it themselves.
    """

    def __init__(self) -> None:
        self._callbacks: Dict[str, T] = {}

    def register(self, request_id: str, callback: T) -> None:
        self._callbacks[request_id] = callback

    def resolve(self, request_id: str) -> Optional[T]:
        return self._callbacks.pop(request_id, None)

    def unregister(self, request_id: str) -> None:
        self._callbacks.pop(request_id, None)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)
