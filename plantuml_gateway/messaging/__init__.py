from plantuml_gateway.messaging.client import RenderClient, new_request_id
from plantuml_gateway.messaging.correlator import RequestCorrelator

__all__ = ["RenderClient", "RequestCorrelator", "new_request_id"]
