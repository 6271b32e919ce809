"""VPC and VPC route reconcilers.

VPCs settle in ``created``; any change means replacement, and deletion
is confirmed only once the VPC can no longer be found.

Routes live under their VPC and import from ``"vpc_id,route_id"``.
Their statuses are compared case-insensitively and cannot be updated.
"""

from __future__ import annotations

from mgc_provider.core.constants import NETWORK_VPC_ROUTES, NETWORK_VPCS
from mgc_provider.models.resources import PollTiming
from mgc_provider.models.status import VPC_ROUTE_STATUS, VPC_STATUS
from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig


class VpcReconciler(Reconciler):
    """``mgc_network_vpcs``."""

    config = ReconcilerConfig(
        kind=NETWORK_VPCS,
        taxonomy=VPC_STATUS,
        targets=("created",),
        timing=PollTiming.minutes(5, 10),
        deleting_statuses=("deleting",),
        state_fields={
            "name": "name",
            "description": "description",
            "is_default": "is_default",
        },
    )


class VpcRouteReconciler(Reconciler):
    """``mgc_network_vpcs_route``."""

    config = ReconcilerConfig(
        kind=NETWORK_VPC_ROUTES,
        taxonomy=VPC_ROUTE_STATUS,
        targets=("created",),
        timing=PollTiming.minutes(100, 60),
        delete_targets=("deleted",),
        deleting_statuses=("deleting",),
        state_fields={
            "port_id": "port_id",
            "cidr_destination": "cidr_destination",
            "description": "description",
            "next_hop": "next_hop",
            "type": "type",
        },
        parent_field="vpc_id",
        import_parts=2,
    )
