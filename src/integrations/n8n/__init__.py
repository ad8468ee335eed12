"""n8n automation engine integration."""

from src.integrations.n8n.client import (
    N8nClient,
    N8nError,
    N8nResponse,
    N8nTransportError,
    get_n8n_client,
    parse_response_body,
)

__all__ = [
    "N8nClient",
    "N8nError",
    "N8nResponse",
    "N8nTransportError",
    "get_n8n_client",
    "parse_response_body",
]
