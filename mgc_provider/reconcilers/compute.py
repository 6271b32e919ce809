"""Virtual machine instance reconciler.

Instances settle in ``completed`` after create, rename and retype.  The
error rule is the explicit set of ``*_error*`` statuses the compute API
documents; ``deleting_network_error`` is not part of it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mgc_provider.core.constants import VM_INSTANCES
from mgc_provider.models.resources import PollTiming
from mgc_provider.models.status import VM_INSTANCE_STATUS
from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig, UpdateStep

if TYPE_CHECKING:
    from collections.abc import Mapping


def _retype_request(prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG001
    return {"machine_type": {"name": changes["machine_type"]}}


class VirtualMachineInstanceReconciler(Reconciler):
    """``mgc_virtual_machine_instances``."""

    config = ReconcilerConfig(
        kind=VM_INSTANCES,
        taxonomy=VM_INSTANCE_STATUS,
        targets=("completed",),
        timing=PollTiming.minutes(60, 10),
        delete_targets=("deleted",),
        deleting_statuses=("deleting", "deleting_pending"),
        update_steps=(
            UpdateStep(name="rename", fields=("name",), action="rename"),
            UpdateStep(name="retype", fields=("machine_type",), action="retype", build=_retype_request),
        ),
        state_fields={
            "name": "name",
            "machine_type": "machine_type.name",
            "image": "image.name",
            "ssh_key_name": "ssh_key_name",
            "availability_zone": "availability_zone",
            "state": "state",
        },
        input_fields=("user_data",),
    )

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",  # noqa: ARG002
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "name": desired.get("name"),
            "machine_type": {"name": desired.get("machine_type")},
            "image": {"name": desired.get("image")},
            "ssh_key_name": desired.get("ssh_key_name"),
            "availability_zone": desired.get("availability_zone"),
            "user_data": desired.get("user_data"),
        }
        return {key: value for key, value in request.items() if value is not None}
