"""Client factory -- builds the REST client of a resource kind by name.

The factory maintains a registry mapping each resource type name to the
``EndpointSpec`` describing where that kind lives in the API.  New kinds
are added with ``register_endpoint``.

Usage::

    from mgc_provider.clients.factory import get_client

    client = get_client("mgc_virtual_machine_instances", http)
    detail = await client.get(instance_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mgc_provider.clients.http import EndpointSpec, HttpResourceClient
from mgc_provider.core.constants import (
    BS_SNAPSHOTS,
    BS_VOLUMES,
    DBAAS_CLUSTERS,
    DBAAS_ENGINES,
    DBAAS_INSTANCE_SNAPSHOTS,
    DBAAS_INSTANCE_TYPES,
    DBAAS_INSTANCES,
    DBAAS_REPLICAS,
    K8S_CLUSTER,
    K8S_NODEPOOL,
    LOAD_BALANCERS,
    NETWORK_VPC_ROUTES,
    NETWORK_VPCS,
    VM_INSTANCES,
)
from mgc_provider.core.exceptions import RequestValidationError

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Endpoint registry
# ---------------------------------------------------------------------------

_ENDPOINT_REGISTRY: dict[str, EndpointSpec] = {}


def _register_builtin_endpoints() -> None:
    """Register the built-in resource kinds.

    Called once on first lookup.
    """
    _ENDPOINT_REGISTRY.update(
        {
            VM_INSTANCES: EndpointSpec(
                path="/compute/v1/instances",
                error_field="error.message",
                actions={"rename": ("PATCH", "rename"), "retype": ("POST", "retype")},
            ),
            BS_VOLUMES: EndpointSpec(
                path="/volume/v1/volumes",
                error_field="error.message",
                actions={
                    "rename": ("PATCH", "rename"),
                    "retype": ("POST", "retype"),
                    "extend": ("POST", "extend"),
                    "attach": ("POST", "attach/{virtual_machine_id}"),
                    "detach": ("POST", "detach"),
                },
            ),
            BS_SNAPSHOTS: EndpointSpec(
                path="/volume/v1/snapshots",
                error_field="error.message",
                actions={"rename": ("PATCH", "rename")},
            ),
            DBAAS_INSTANCES: EndpointSpec(
                path="/database/v2/instances",
                actions={"resize": ("POST", "resize")},
            ),
            DBAAS_CLUSTERS: EndpointSpec(
                path="/database/v2/clusters",
                actions={"resize": ("POST", "resize")},
            ),
            DBAAS_INSTANCE_SNAPSHOTS: EndpointSpec(path="/database/v2/instances/{parent}/snapshots"),
            DBAAS_REPLICAS: EndpointSpec(
                path="/database/v2/replicas",
                actions={"resize": ("POST", "resize")},
            ),
            K8S_CLUSTER: EndpointSpec(
                path="/kubernetes/v0/clusters",
                status_field="status.state",
                error_field="status.message",
            ),
            K8S_NODEPOOL: EndpointSpec(
                path="/kubernetes/v0/clusters/{parent}/node_pools",
                status_field="status.state",
                error_field="status.messages",
            ),
            NETWORK_VPCS: EndpointSpec(path="/network/v0/vpcs"),
            NETWORK_VPC_ROUTES: EndpointSpec(path="/network/v0/vpcs/{parent}/routes"),
            LOAD_BALANCERS: EndpointSpec(
                path="/network/v0/load-balancers",
                update_method="PUT",
                actions={
                    "acls": ("PUT", "acls"),
                    "health_checks": ("PUT", "health-checks"),
                    "backends": ("PUT", "backends"),
                },
            ),
            DBAAS_ENGINES: EndpointSpec(path="/database/v2/engines"),
            DBAAS_INSTANCE_TYPES: EndpointSpec(path="/database/v2/instance-types"),
        }
    )


def _ensure_registry() -> None:
    """Initialise the endpoint registry once (idempotent)."""
    if not _ENDPOINT_REGISTRY:
        _register_builtin_endpoints()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_endpoint(kind: str, endpoint: EndpointSpec) -> None:
    """Register (or replace) the endpoint of a resource kind.

    Raises:
        ValueError: If the kind is empty.
    """
    if not kind:
        msg = "Resource kind must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ENDPOINT_REGISTRY[kind] = endpoint
    logger.debug("Registered endpoint: %s -> %s", kind, endpoint.path)


def get_endpoint(kind: str) -> EndpointSpec:
    """Return the endpoint registered for *kind*.

    Raises:
        RequestValidationError: If the kind is not registered.
    """
    _ensure_registry()
    endpoint = _ENDPOINT_REGISTRY.get(kind)
    if endpoint is None:
        available = ", ".join(sorted(_ENDPOINT_REGISTRY))
        msg = f"Unknown resource kind: {kind!r}. Available: {available}"
        raise RequestValidationError(msg, operation="configure")
    return endpoint


def get_client(kind: str, http: httpx.AsyncClient) -> HttpResourceClient:
    """Create the REST client of *kind* on top of the shared *http* client."""
    return HttpResourceClient(kind, get_endpoint(kind), http)


def list_endpoints() -> list[str]:
    """Return the names of all registered resource kinds."""
    _ensure_registry()
    return sorted(_ENDPOINT_REGISTRY)
