"""Block storage reconcilers: volumes, snapshots and volume attachments.

Volumes and snapshots settle in ``completed``.  Volumes treat any status
containing ``error`` as failed; snapshots only statuses ending in it.

A volume attachment is not a remote object of its own: attaching and
detaching are actions on the volume, and both are confirmed by polling
the volume back to ``completed``.  Its handle is the volume id and its
parent the virtual machine id, so it imports from
``"virtual_machine_id,block_storage_id"``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mgc_provider.clients.base import is_not_found
from mgc_provider.core.constants import BS_SNAPSHOTS, BS_VOLUME_ATTACHMENT, BS_VOLUMES
from mgc_provider.core.exceptions import MgcError, ReconcileError, RequestValidationError
from mgc_provider.models.resources import PollTiming, ResourceState
from mgc_provider.models.status import SNAPSHOT_STATUS, VOLUME_STATUS
from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig, UpdateStep
from mgc_provider.utils.helpers import get_path, split_import_id

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable, Mapping

    from mgc_provider.clients.base import ResourceClient
    from mgc_provider.models.resources import ResourceDetail

logger = logging.getLogger(__name__)


def _drop_none(request: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in request.items() if value is not None}


# ---------------------------------------------------------------------------
# Volumes
# ---------------------------------------------------------------------------


def _volume_retype_request(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG001
    return {"new_type": {"name": changes["type"]}}


class VolumeReconciler(Reconciler):
    """``mgc_block_storage_volumes``."""

    config = ReconcilerConfig(
        kind=BS_VOLUMES,
        taxonomy=VOLUME_STATUS,
        targets=("completed",),
        timing=PollTiming.minutes(60, 10),
        delete_targets=("deleted",),
        deleting_statuses=("deleting", "deleting_pending"),
        update_steps=(
            UpdateStep(name="rename", fields=("name",), action="rename"),
            UpdateStep(name="retype", fields=("type",), action="retype", build=_volume_retype_request),
            UpdateStep(name="extend", fields=("size",), action="extend"),
        ),
        state_fields={
            "name": "name",
            "size": "size",
            "type": "type.name",
            "availability_zone": "availability_zone",
            "encrypted": "encrypted",
        },
        input_fields=("snapshot_id",),
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",  # noqa: ARG002
    ) -> dict[str, Any]:
        snapshot_id = desired.get("snapshot_id")
        return _drop_none(
            {
                "name": desired.get("name"),
                "size": desired.get("size"),
                "type": {"name": desired["type"]} if desired.get("type") else None,
                "availability_zone": desired.get("availability_zone"),
                "encrypted": desired.get("encrypted"),
                "snapshot": {"id": snapshot_id} if snapshot_id else None,
            }
        )

    def check_update(self, current: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
        super().check_update(current, changes)
        if "size" in changes and current.get("size") is not None and changes["size"] < current["size"]:
            msg = f"volume size can only grow (current {current['size']}, requested {changes['size']})"
            raise RequestValidationError(msg, operation="update")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


class SnapshotReconciler(Reconciler):
    """``mgc_block_storage_snapshots``."""

    config = ReconcilerConfig(
        kind=BS_SNAPSHOTS,
        taxonomy=SNAPSHOT_STATUS,
        targets=("completed",),
        timing=PollTiming.minutes(70, 10),
        delete_targets=("deleted",),
        deleting_statuses=("deleting",),
        update_steps=(UpdateStep(name="rename", fields=("name",), action="rename"),),
        state_fields={
            "name": "name",
            "description": "description",
            "volume_id": "volume.id",
            "type": "type",
            "size": "size",
        },
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",  # noqa: ARG002
    ) -> dict[str, Any]:
        volume_id = desired.get("volume_id")
        return _drop_none(
            {
                "name": desired.get("name"),
                "description": desired.get("description"),
                "type": desired.get("type"),
                "volume": {"id": volume_id} if volume_id else None,
            }
        )


# ---------------------------------------------------------------------------
# Volume attachments
# ---------------------------------------------------------------------------


class VolumeAttachmentReconciler(Reconciler):
    """``mgc_block_storage_volume_attachment``.

    Operates on the volumes client; the persisted state carries
    ``block_storage_id`` and ``virtual_machine_id``.  Any change means
    replacement.
    """

    config = ReconcilerConfig(
        kind=BS_VOLUME_ATTACHMENT,
        taxonomy=VOLUME_STATUS,
        targets=("completed",),
        timing=PollTiming.minutes(5, 10),
        import_parts=2,
    )

    @classmethod
    def build(cls, client_for: Callable[[str], ResourceClient], **options: Any) -> Reconciler:
        return cls(client_for(BS_VOLUMES), **options)

    def to_state(
        self,
        detail: ResourceDetail,
        *,
        parent: str = "",
        inputs: Mapping[str, Any] | None = None,  # noqa: ARG002
    ) -> ResourceState:
        return ResourceState(
            kind=self.kind,
            id=detail.id,
            attributes={
                "id": detail.id,
                "block_storage_id": detail.id,
                "virtual_machine_id": parent,
                "status": detail.status,
            },
            parent_id=parent,
        )

    async def create(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",
        cancel: asyncio.Event | None = None,
    ) -> ResourceState:
        volume_id = str(desired.get("block_storage_id") or "")
        machine_id = str(desired.get("virtual_machine_id") or parent)
        if not volume_id or not machine_id:
            exc = RequestValidationError(
                "block_storage_id and virtual_machine_id are required",
                operation="create",
            )
            raise ReconcileError(self.kind, "create", exc) from exc

        partial = ResourceState(
            kind=self.kind,
            id=volume_id,
            attributes={"id": volume_id, "block_storage_id": volume_id, "virtual_machine_id": machine_id},
            parent_id=machine_id,
        )
        logger.info("attach started | volume=%s | instance=%s", volume_id, machine_id)
        try:
            await self._client.update(volume_id, {"virtual_machine_id": machine_id}, action="attach")
            detail = await self.wait(volume_id, operation="create", cancel=cancel)
        except MgcError as exc:
            raise ReconcileError(self.kind, "create", exc, handle=volume_id, state=partial) from exc
        return self.to_state(detail, parent=machine_id)

    async def read(
        self,
        handle: str,
        *,
        parent: str = "",
        prior: Mapping[str, Any] | None = None,  # noqa: ARG002
    ) -> ResourceState | None:
        try:
            detail = await self._client.get(handle)
        except MgcError as exc:
            if is_not_found(exc):
                return None
            raise ReconcileError(self.kind, "read", exc, handle=handle) from exc

        attached_to = get_path(detail.attributes, "attachment.instance.id")
        if not attached_to or (parent and attached_to != parent):
            logger.info(
                "read: attachment gone | volume=%s | expected=%s | attached=%s",
                handle,
                parent,
                attached_to,
            )
            return None
        return self.to_state(detail, parent=str(attached_to))

    async def delete(
        self,
        handle: str,
        *,
        parent: str = "",  # noqa: ARG002
        cancel: asyncio.Event | None = None,
    ) -> None:
        logger.info("detach started | volume=%s", handle)
        try:
            try:
                await self._client.update(handle, {}, action="detach")
            except MgcError as exc:
                if is_not_found(exc):
                    return
                raise
            await self.wait(handle, operation="delete", cancel=cancel)
        except MgcError as exc:
            raise ReconcileError(self.kind, "delete", exc, handle=handle) from exc

    async def import_state(self, import_id: str) -> ResourceState:
        try:
            machine_id, volume_id = split_import_id(import_id)
        except MgcError as exc:
            raise ReconcileError(self.kind, "import", exc, handle=import_id) from exc
        state = await self.read(volume_id, parent=machine_id)
        if state is None:
            exc = RequestValidationError(
                f"volume {volume_id} is not attached to instance {machine_id}",
                operation="import",
            )
            raise ReconcileError(self.kind, "import", exc, handle=import_id) from exc
        return state
