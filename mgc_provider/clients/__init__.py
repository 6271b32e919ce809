"""Cloud API clients.

- ResourceClient: Abstract per-kind CRUD contract consumed by reconcilers
- HttpResourceClient: httpx-based REST implementation
- factory: Endpoint registry and client construction by type name
"""

from mgc_provider.clients.base import (
    ApiError,
    NotFoundError,
    ResourceClient,
    is_not_found,
    is_transient,
    parse_api_error,
)
from mgc_provider.clients.factory import get_client, list_endpoints, register_endpoint
from mgc_provider.clients.http import EndpointSpec, HttpResourceClient, build_http_client

__all__ = [
    "ApiError",
    "EndpointSpec",
    "HttpResourceClient",
    "NotFoundError",
    "ResourceClient",
    "build_http_client",
    "get_client",
    "is_not_found",
    "is_transient",
    "list_endpoints",
    "parse_api_error",
    "register_endpoint",
]
