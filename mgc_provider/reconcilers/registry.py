"""Reconciler registry -- selects the reconciler of a resource type by name.

Each entry maps a registered type name to a zero-argument loader that
returns the reconciler *class*.  Loaders import lazily so that only the
service modules actually used are loaded.

Usage::

    from mgc_provider.reconcilers.registry import get_reconciler

    reconciler = get_reconciler("mgc_dbaas_clusters", client_for, settings)
    state = await reconciler.create(desired)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mgc_provider.core.constants import (
    BS_SNAPSHOTS,
    BS_VOLUME_ATTACHMENT,
    BS_VOLUMES,
    DBAAS_CLUSTERS,
    DBAAS_INSTANCE_SNAPSHOTS,
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
    from collections.abc import Callable

    from mgc_provider.clients.base import ResourceClient
    from mgc_provider.core.config import ProviderSettings
    from mgc_provider.reconcilers.base import Reconciler

logger = logging.getLogger(__name__)

_RECONCILER_REGISTRY: dict[str, Callable[[], type[Reconciler]]] = {}


def _register_builtin_reconcilers() -> None:
    """Register the built-in resource types.

    Called once on first lookup.  Each registration is a lazy import thunk.
    """

    def _vm() -> type[Reconciler]:
        from mgc_provider.reconcilers.compute import VirtualMachineInstanceReconciler

        return VirtualMachineInstanceReconciler

    def _volumes() -> type[Reconciler]:
        from mgc_provider.reconcilers.block_storage import VolumeReconciler

        return VolumeReconciler

    def _snapshots() -> type[Reconciler]:
        from mgc_provider.reconcilers.block_storage import SnapshotReconciler

        return SnapshotReconciler

    def _attachment() -> type[Reconciler]:
        from mgc_provider.reconcilers.block_storage import VolumeAttachmentReconciler

        return VolumeAttachmentReconciler

    def _dbaas_instances() -> type[Reconciler]:
        from mgc_provider.reconcilers.database import DBaaSInstanceReconciler

        return DBaaSInstanceReconciler

    def _dbaas_clusters() -> type[Reconciler]:
        from mgc_provider.reconcilers.database import DBaaSClusterReconciler

        return DBaaSClusterReconciler

    def _dbaas_snapshots() -> type[Reconciler]:
        from mgc_provider.reconcilers.database import DBaaSInstanceSnapshotReconciler

        return DBaaSInstanceSnapshotReconciler

    def _dbaas_replicas() -> type[Reconciler]:
        from mgc_provider.reconcilers.database import DBaaSReplicaReconciler

        return DBaaSReplicaReconciler

    def _k8s_cluster() -> type[Reconciler]:
        from mgc_provider.reconcilers.kubernetes import KubernetesClusterReconciler

        return KubernetesClusterReconciler

    def _k8s_nodepool() -> type[Reconciler]:
        from mgc_provider.reconcilers.kubernetes import NodePoolReconciler

        return NodePoolReconciler

    def _vpcs() -> type[Reconciler]:
        from mgc_provider.reconcilers.network import VpcReconciler

        return VpcReconciler

    def _vpc_routes() -> type[Reconciler]:
        from mgc_provider.reconcilers.network import VpcRouteReconciler

        return VpcRouteReconciler

    def _load_balancers() -> type[Reconciler]:
        from mgc_provider.reconcilers.load_balancer import LoadBalancerReconciler

        return LoadBalancerReconciler

    _RECONCILER_REGISTRY.update(
        {
            VM_INSTANCES: _vm,
            BS_VOLUMES: _volumes,
            BS_SNAPSHOTS: _snapshots,
            BS_VOLUME_ATTACHMENT: _attachment,
            DBAAS_INSTANCES: _dbaas_instances,
            DBAAS_CLUSTERS: _dbaas_clusters,
            DBAAS_INSTANCE_SNAPSHOTS: _dbaas_snapshots,
            DBAAS_REPLICAS: _dbaas_replicas,
            K8S_CLUSTER: _k8s_cluster,
            K8S_NODEPOOL: _k8s_nodepool,
            NETWORK_VPCS: _vpcs,
            NETWORK_VPC_ROUTES: _vpc_routes,
            LOAD_BALANCERS: _load_balancers,
        }
    )


def _ensure_registry() -> None:
    """Initialise the reconciler registry once (idempotent)."""
    if not _RECONCILER_REGISTRY:
        _register_builtin_reconcilers()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_reconciler(type_name: str, loader: Callable[[], type[Reconciler]]) -> None:
    """Register a custom reconciler.

    Args:
        type_name: Resource type name (e.g. ``"mgc_custom_things"``).
        loader: A zero-argument callable that returns the reconciler class.

    Raises:
        ValueError: If the name is empty.
    """
    if not type_name:
        msg = "Resource type name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _RECONCILER_REGISTRY[type_name] = loader
    logger.debug("Registered reconciler: %s", type_name)


def get_reconciler_class(type_name: str) -> type[Reconciler]:
    """Return the reconciler class registered for *type_name*.

    Raises:
        RequestValidationError: If the type is not registered.
    """
    _ensure_registry()
    loader = _RECONCILER_REGISTRY.get(type_name)
    if loader is None:
        available = ", ".join(sorted(_RECONCILER_REGISTRY))
        msg = f"Unknown resource type: {type_name!r}. Available: {available}"
        raise RequestValidationError(msg)
    return loader()


def get_reconciler(
    type_name: str,
    client_for: Callable[[str], ResourceClient],
    settings: ProviderSettings,
) -> Reconciler:
    """Create the reconciler of *type_name* with *settings* applied."""
    reconciler_cls = get_reconciler_class(type_name)
    logger.info("Creating reconciler: %s", type_name)
    return reconciler_cls.from_settings(client_for, settings)


def list_reconcilers() -> list[str]:
    """Return the names of all registered resource types."""
    _ensure_registry()
    return sorted(_RECONCILER_REGISTRY)
