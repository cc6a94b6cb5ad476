"""Render PlantUML diagrams through a local picoweb server."""
from plantuml_gateway.errors import ConfigurationError, GatewayError, ProcessStartupError
from plantuml_gateway.gateway import PlantUmlGateway
from plantuml_gateway.schemas import RenderResult
from plantuml_gateway.utils.plantuml_encode import plantuml_encode

__all__ = [
    "ConfigurationError",
    "GatewayError",
    "PlantUmlGateway",
    "ProcessStartupError",
    "RenderResult",
    "plantuml_encode",
]
