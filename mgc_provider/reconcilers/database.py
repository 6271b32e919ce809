"""Database-as-a-service reconcilers: instances, clusters, replicas and instance snapshots.

Engine and instance-type names are resolved to ids through the API's
list endpoints before any mutating call; a name that does not resolve
is a ``RequestValidationError`` and nothing is created.  State maps the
ids the API returns back to names, so imported resources match created
ones.

Clusters are only ready when the status is ``ACTIVE`` *and* the
``apply_parameters_pending`` flag is cleared.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mgc_provider.core.constants import (
    DBAAS_CLUSTERS,
    DBAAS_ENGINES,
    DBAAS_INSTANCE_SNAPSHOTS,
    DBAAS_INSTANCE_TYPES,
    DBAAS_INSTANCES,
    DBAAS_REPLICAS,
)
from mgc_provider.core.exceptions import RequestValidationError
from mgc_provider.models.resources import PollTiming
from mgc_provider.models.status import (
    DBAAS_CLUSTER_STATUS,
    DBAAS_INSTANCE_STATUS,
    DBAAS_REPLICA_STATUS,
    DBAAS_SNAPSHOT_STATUS,
)
from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig, UpdateStep

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from mgc_provider.clients.base import ResourceClient
    from mgc_provider.models.resources import ResourceDetail, ResourceState

logger = logging.getLogger(__name__)

SINGLE_INSTANCE_FAMILY = "SINGLE_INSTANCE"
CLUSTER_FAMILY = "CLUSTER"
REPLICA_FAMILY = "SINGLE_INSTANCE_REPLICA"
_ACTIVE = "ACTIVE"
_INSTANCE_TYPE_PAGE = 50


def _drop_none(request: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in request.items() if value is not None}


class _NameResolvingReconciler(Reconciler):
    """Shared engine / instance-type name resolution."""

    product_family: str = ""

    def __init__(
        self,
        client: ResourceClient,
        *,
        engines: ResourceClient,
        instance_types: ResourceClient,
        timing: PollTiming | None = None,
        delete_timing: PollTiming | None = None,
        transient_retries: int = 0,
        retry_base: float = 5.0,
    ) -> None:
        super().__init__(
            client,
            timing=timing,
            delete_timing=delete_timing,
            transient_retries=transient_retries,
            retry_base=retry_base,
        )
        self._engines = engines
        self._instance_types = instance_types

    @classmethod
    def build(cls, client_for: Callable[[str], ResourceClient], **options: Any) -> Reconciler:
        return cls(
            client_for(cls.config.kind),
            engines=client_for(DBAAS_ENGINES),
            instance_types=client_for(DBAAS_INSTANCE_TYPES),
            **options,
        )

    async def resolve_engine_id(self, name: str, version: str) -> str:
        """Return the id of the active engine *name* / *version*."""
        engines = await self._engines.list(params={"status": _ACTIVE})
        for engine in engines:
            if engine.get("name") == name and str(engine.get("version")) == str(version):
                return engine.id
        msg = f"engine {name!r} version {version!r} not found"
        raise RequestValidationError(msg)

    async def resolve_instance_type_id(self, label: str) -> str:
        """Return the id of the active instance type *label* of this product family."""
        instance_types = await self._instance_types.list(
            params={"status": _ACTIVE, "_limit": _INSTANCE_TYPE_PAGE}
        )
        for instance_type in instance_types:
            if (
                instance_type.get("label") == label
                and instance_type.get("compatible_product") == self.product_family
            ):
                return instance_type.id
        msg = (
            f"instance type {label!r} not found, not active or not compatible "
            f"with the {self.product_family.lower()} family"
        )
        raise RequestValidationError(msg)

    async def resolve_names(self, desired: Mapping[str, Any], operation: str) -> dict[str, str]:
        """Resolve the engine and instance-type names present in *desired*."""
        if operation == "create":
            missing = [k for k in ("engine_name", "engine_version", "instance_type") if not desired.get(k)]
            if missing:
                msg = f"missing required field(s): {', '.join(missing)}"
                raise RequestValidationError(msg, operation=operation)

        resolved: dict[str, str] = {}
        if desired.get("engine_name"):
            resolved["engine_id"] = await self.resolve_engine_id(
                str(desired["engine_name"]),
                str(desired.get("engine_version", "")),
            )
        if desired.get("instance_type"):
            resolved["instance_type_id"] = await self.resolve_instance_type_id(str(desired["instance_type"]))
        return resolved

    async def observe(
        self,
        detail: ResourceDetail,
        *,
        parent: str = "",
        inputs: Mapping[str, Any] | None = None,
    ) -> ResourceState:
        """Build state, mapping ``engine_id`` and ``instance_type_id`` back to names.

        The API only returns ids; the names are looked up by id so an
        imported resource carries the same attributes as a created one.
        """
        state = self.to_state(detail, parent=parent, inputs=inputs)
        attributes = state.attributes
        engine_id = attributes.get("engine_id")
        if engine_id:
            engine = await self._engines.get(str(engine_id))
            attributes["engine_name"] = engine.get("name")
            attributes["engine_version"] = str(engine.get("version"))
        instance_type_id = attributes.get("instance_type_id")
        if instance_type_id:
            instance_type = await self._instance_types.get(str(instance_type_id))
            attributes["instance_type"] = instance_type.get("label")
        for name in ("engine_name", "engine_version", "instance_type"):
            if attributes.get(name) is None and inputs and name in inputs:
                attributes[name] = inputs[name]
        return state


# ---------------------------------------------------------------------------
# Instances
# ---------------------------------------------------------------------------


def _instance_type_resize(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG001
    return {"instance_type_id": prepared["instance_type_id"]}


def _volume_resize(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG001
    return {"volume": {"size": changes["volume_size"]}}


def _backup_settings(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG001
    return _drop_none(
        {
            "backup_retention_days": prepared.get("backup_retention_days"),
            "backup_start_at": prepared.get("backup_start_at"),
        }
    )


class DBaaSInstanceReconciler(_NameResolvingReconciler):
    """``mgc_dbaas_instances``."""

    product_family = SINGLE_INSTANCE_FAMILY

    config = ReconcilerConfig(
        kind=DBAAS_INSTANCES,
        taxonomy=DBAAS_INSTANCE_STATUS,
        targets=("ACTIVE",),
        timing=PollTiming.minutes(90, 10),
        delete_targets=("DELETED",),
        deleting_statuses=("DELETING",),
        update_steps=(
            UpdateStep(
                name="resize_instance_type",
                fields=("instance_type",),
                action="resize",
                build=_instance_type_resize,
            ),
            UpdateStep(
                name="resize_volume",
                fields=("volume_size",),
                action="resize",
                build=_volume_resize,
            ),
            UpdateStep(
                name="backup",
                fields=("backup_retention_days", "backup_start_at"),
                build=_backup_settings,
            ),
        ),
        state_fields={
            "name": "name",
            "engine_id": "engine_id",
            "instance_type_id": "instance_type_id",
            "volume_size": "volume.size",
            "backup_retention_days": "backup_retention_days",
            "backup_start_at": "backup_start_at",
            "availability_zone": "availability_zone",
            "parameter_group": "parameter_group_id",
        },
        input_fields=("user", "password"),
        write_only=("user", "password"),
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",
    ) -> dict[str, Any]:
        resolved = await self.resolve_names(desired, operation)
        volume_size = desired.get("volume_size")
        return _drop_none(
            {
                "name": desired.get("name"),
                "user": desired.get("user"),
                "password": desired.get("password"),
                "engine_id": resolved.get("engine_id"),
                "instance_type_id": resolved.get("instance_type_id"),
                "volume": {"size": volume_size} if volume_size is not None else None,
                "backup_retention_days": desired.get("backup_retention_days"),
                "backup_start_at": desired.get("backup_start_at"),
                "availability_zone": desired.get("availability_zone"),
                "parameter_group_id": desired.get("parameter_group"),
            }
        )


# ---------------------------------------------------------------------------
# Clusters
# ---------------------------------------------------------------------------


def _cluster_ready(detail: ResourceDetail) -> bool:
    return not detail.get("apply_parameters_pending", False)


def _cluster_resize(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    request: dict[str, Any] = {}
    if "instance_type" in changes:
        request["instance_type_id"] = prepared["instance_type_id"]
    if "volume_size" in changes:
        request["volume"] = {"size": changes["volume_size"]}
    return request


def _cluster_settings(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    request: dict[str, Any] = {}
    if "parameter_group" in changes:
        request["parameter_group_id"] = changes["parameter_group"]
    if "backup_retention_days" in changes or "backup_start_at" in changes:
        request.update(_backup_settings(prepared, changes))
    return request


class DBaaSClusterReconciler(_NameResolvingReconciler):
    """``mgc_dbaas_clusters``.

    Deletion skips the delete call when the cluster is already
    ``DELETING`` and then waits for the cluster to disappear.
    """

    product_family = CLUSTER_FAMILY

    config = ReconcilerConfig(
        kind=DBAAS_CLUSTERS,
        taxonomy=DBAAS_CLUSTER_STATUS,
        targets=("ACTIVE",),
        timing=PollTiming.minutes(90, 15),
        delete_timing=PollTiming.minutes(90, 10),
        deleting_statuses=("DELETING",),
        ready=_cluster_ready,
        update_steps=(
            UpdateStep(
                name="resize",
                fields=("instance_type", "volume_size"),
                action="resize",
                build=_cluster_resize,
            ),
            UpdateStep(
                name="settings",
                fields=("parameter_group", "backup_retention_days", "backup_start_at"),
                build=_cluster_settings,
            ),
        ),
        state_fields={
            "name": "name",
            "engine_id": "engine_id",
            "instance_type_id": "instance_type_id",
            "volume_size": "volume.size",
            "volume_type": "volume.type",
            "parameter_group": "parameter_group_id",
            "backup_retention_days": "backup_retention_days",
            "backup_start_at": "backup_start_at",
            "apply_parameters_pending": "apply_parameters_pending",
        },
        input_fields=("user", "password"),
        write_only=("user", "password"),
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",
    ) -> dict[str, Any]:
        resolved = await self.resolve_names(desired, operation)
        volume = _drop_none({"size": desired.get("volume_size"), "type": desired.get("volume_type")})
        return _drop_none(
            {
                "name": desired.get("name"),
                "user": desired.get("user"),
                "password": desired.get("password"),
                "engine_id": resolved.get("engine_id"),
                "instance_type_id": resolved.get("instance_type_id"),
                "volume": volume or None,
                "parameter_group_id": desired.get("parameter_group"),
                "backup_retention_days": desired.get("backup_retention_days"),
                "backup_start_at": desired.get("backup_start_at"),
            }
        )


# ---------------------------------------------------------------------------
# Replicas
# ---------------------------------------------------------------------------


class DBaaSReplicaReconciler(_NameResolvingReconciler):
    """``mgc_dbaas_replicas``.

    A read replica of an instance.  Only the instance type can change in
    place; the engine is inherited from the source instance.
    """

    product_family = REPLICA_FAMILY

    config = ReconcilerConfig(
        kind=DBAAS_REPLICAS,
        taxonomy=DBAAS_REPLICA_STATUS,
        targets=("ACTIVE",),
        timing=PollTiming.minutes(90, 10),
        delete_targets=("DELETED",),
        deleting_statuses=("DELETING",),
        update_steps=(
            UpdateStep(
                name="resize",
                fields=("instance_type",),
                action="resize",
                build=_instance_type_resize,
            ),
        ),
        state_fields={
            "name": "name",
            "source_id": "source_id",
            "engine_id": "engine_id",
            "instance_type_id": "instance_type_id",
            "volume_size": "volume.size",
        },
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",
    ) -> dict[str, Any]:
        if operation == "create":
            missing = [k for k in ("name", "source_id", "instance_type") if not desired.get(k)]
            if missing:
                msg = f"missing required field(s): {', '.join(missing)}"
                raise RequestValidationError(msg, operation=operation)
        instance_type_id = None
        if desired.get("instance_type"):
            instance_type_id = await self.resolve_instance_type_id(str(desired["instance_type"]))
        return _drop_none(
            {
                "source_id": desired.get("source_id"),
                "name": desired.get("name"),
                "instance_type_id": instance_type_id,
            }
        )


# ---------------------------------------------------------------------------
# Instance snapshots
# ---------------------------------------------------------------------------


class DBaaSInstanceSnapshotReconciler(Reconciler):
    """``mgc_dbaas_instances_snapshots``.

    Snapshots live under their instance; they import from
    ``"instance_id,snapshot_id"``.
    """

    config = ReconcilerConfig(
        kind=DBAAS_INSTANCE_SNAPSHOTS,
        taxonomy=DBAAS_SNAPSHOT_STATUS,
        targets=("AVAILABLE",),
        timing=PollTiming.minutes(70, 10),
        delete_targets=("DELETED",),
        deleting_statuses=("DELETING",),
        update_steps=(UpdateStep(name="rename", fields=("name", "description")),),
        state_fields={
            "name": "name",
            "description": "description",
            "instance_id": "instance_id",
            "size": "allocated_size",
        },
        parent_field="instance_id",
        import_parts=2,
    )
