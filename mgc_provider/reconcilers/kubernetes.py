"""Kubernetes reconcilers: clusters and node pools.

Cluster states are compared lower-cased; a cluster is ready in either
``running`` or ``provisioned``.  With ``async_creation`` set, ``create``
returns right after the create call without waiting.

Node pools live under their cluster and import from
``"cluster_id,nodepool_id"``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mgc_provider.core.constants import K8S_CLUSTER, K8S_NODEPOOL
from mgc_provider.models.resources import PollTiming
from mgc_provider.models.status import K8S_CLUSTER_STATUS, NODEPOOL_STATUS
from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig, UpdateStep

if TYPE_CHECKING:
    from collections.abc import Mapping


def _drop_none(request: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in request.items() if value is not None}


class KubernetesClusterReconciler(Reconciler):
    """``mgc_kubernetes_cluster``."""

    config = ReconcilerConfig(
        kind=K8S_CLUSTER,
        taxonomy=K8S_CLUSTER_STATUS,
        targets=("running", "provisioned"),
        timing=PollTiming.minutes(100, 60),
        delete_targets=("deleted",),
        deleting_statuses=("deleting",),
        update_steps=(UpdateStep(name="allowed_cidrs", fields=("allowed_cidrs",)),),
        state_fields={
            "name": "name",
            "version": "version",
            "description": "description",
            "allowed_cidrs": "allowed_cidrs",
            "enabled_server_group": "enabled_server_group",
        },
        input_fields=("async_creation",),
    )

    def should_wait(self, desired: Mapping[str, Any]) -> bool:
        return not desired.get("async_creation", False)

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",  # noqa: ARG002
    ) -> dict[str, Any]:
        return _drop_none(
            {
                "name": desired.get("name"),
                "version": desired.get("version"),
                "description": desired.get("description"),
                "allowed_cidrs": desired.get("allowed_cidrs"),
                "enabled_server_group": desired.get("enabled_server_group"),
            }
        )


def _scale_request(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    request: dict[str, Any] = {}
    if "replicas" in changes:
        request["replicas"] = changes["replicas"]
    if "min_replicas" in changes or "max_replicas" in changes:
        request["auto_scale"] = _drop_none(
            {
                "min_replicas": prepared.get("auto_scale", {}).get("min_replicas"),
                "max_replicas": prepared.get("auto_scale", {}).get("max_replicas"),
            }
        )
    return request


class NodePoolReconciler(Reconciler):
    """``mgc_kubernetes_nodepool``."""

    config = ReconcilerConfig(
        kind=K8S_NODEPOOL,
        taxonomy=NODEPOOL_STATUS,
        targets=("Running",),
        timing=PollTiming.minutes(90, 30),
        delete_targets=("Deleted",),
        deleting_statuses=("Deleting",),
        update_steps=(
            UpdateStep(
                name="scale",
                fields=("replicas", "min_replicas", "max_replicas"),
                build=_scale_request,
            ),
        ),
        state_fields={
            "name": "name",
            "flavor": "instance_template.flavor.name",
            "replicas": "replicas",
            "min_replicas": "auto_scale.min_replicas",
            "max_replicas": "auto_scale.max_replicas",
            "tags": "tags",
        },
        parent_field="cluster_id",
        import_parts=2,
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",  # noqa: ARG002
    ) -> dict[str, Any]:
        auto_scale = _drop_none(
            {"min_replicas": desired.get("min_replicas"), "max_replicas": desired.get("max_replicas")}
        )
        return _drop_none(
            {
                "name": desired.get("name"),
                "flavor": desired.get("flavor"),
                "replicas": desired.get("replicas"),
                "auto_scale": auto_scale or None,
                "tags": desired.get("tags"),
            }
        )
