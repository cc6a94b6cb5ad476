"""Pydantic schemas for render results and boundary messages."""
from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class RenderResult(BaseModel):
    """Outcome of one render: exactly one of `svg` / `error` is set."""

    svg: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "RenderResult":
        if (self.svg is None) == (self.error is None):
            raise ValueError("RenderResult needs exactly one of svg or error")
        return self

    @classmethod
    def success(cls, svg: str) -> "RenderResult":
        return cls(svg=svg)

    @classmethod
    def failure(cls, error: str) -> "RenderResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.svg is not None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RenderRequestPayload(_Payload):
    code: str
    request_id: str = Field(alias="requestId")


class RenderResultPayload(_Payload):
    request_id: str = Field(alias="requestId")
    svg: Optional[str] = None
    error: Optional[str] = None

    def to_result(self) -> RenderResult:
        if self.svg is not None:
            return RenderResult.success(self.svg)
        return RenderResult.failure(self.error or "Unknown error")


class RenderPlantUmlMessage(BaseModel):
    """Caller → host: render this code and answer with the same request id."""

    type: Literal["renderPlantUml"] = "renderPlantUml"
    payload: RenderRequestPayload


class PlantUmlResultMessage(BaseModel):
    """Host → caller: result for a previous `renderPlantUml` request."""

    type: Literal["plantUmlResult"] = "plantUmlResult"
    payload: RenderResultPayload

    @classmethod
    def from_result(cls, request_id: str, result: RenderResult) -> "PlantUmlResultMessage":
        return cls(payload=RenderResultPayload(request_id=request_id, svg=result.svg, error=result.error))


class GetServerStatusMessage(BaseModel):
    """Caller → host: report the renderer process state."""

    type: Literal["getServerStatus"] = "getServerStatus"


class ServerStatusPayload(BaseModel):
    state: str
    running: bool


class ServerStatusMessage(BaseModel):
    type: Literal["serverStatus"] = "serverStatus"
    payload: ServerStatusPayload


class ErrorMessage(BaseModel):
    """Host → caller: an incoming message could not be understood."""

    type: Literal["error"] = "error"
    payload: str


ExtensionMessage = Annotated[Union[RenderPlantUmlMessage, GetServerStatusMessage], Field(discriminator="type")]
WebviewMessage = Annotated[Union[PlantUmlResultMessage, ServerStatusMessage, ErrorMessage], Field(discriminator="type")]

_extension_adapter: TypeAdapter[Any] = TypeAdapter(ExtensionMessage)
_webview_adapter: TypeAdapter[Any] = TypeAdapter(WebviewMessage)


def parse_extension_message(data: Any):
    """Validate a message sent to the host. Raises pydantic.ValidationError."""
    return _extension_adapter.validate_python(data)


def parse_webview_message(data: Any):
    """Validate a message sent back to the caller. Raises pydantic.ValidationError."""
    return _webview_adapter.validate_python(data)


def dump_message(message: BaseModel) -> dict:
    return message.model_dump(by_alias=True, exclude_none=True)


class RenderRequest(BaseModel):
    code: str
