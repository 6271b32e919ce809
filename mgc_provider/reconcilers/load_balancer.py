"""Network load balancer reconciler.

In-place changes are applied in a fixed order (name and description,
then ACLs, then health checks, then backends), each one waited back to
``running`` before the next, because the backend rejects overlapping
structural changes.
"""

from __future__ import annotations

from mgc_provider.core.constants import LOAD_BALANCERS
from mgc_provider.models.resources import PollTiming
from mgc_provider.models.status import LOAD_BALANCER_STATUS
from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig, UpdateStep


class LoadBalancerReconciler(Reconciler):
    """``mgc_network_load_balancers``."""

    config = ReconcilerConfig(
        kind=LOAD_BALANCERS,
        taxonomy=LOAD_BALANCER_STATUS,
        targets=("running",),
        timing=PollTiming.minutes(90, 10),
        delete_targets=("deleted",),
        deleting_statuses=("deleting",),
        update_steps=(
            UpdateStep(name="details", fields=("name", "description")),
            UpdateStep(name="acls", fields=("acls",), action="acls"),
            UpdateStep(name="health_checks", fields=("health_checks",), action="health_checks"),
            UpdateStep(name="backends", fields=("backends",), action="backends"),
        ),
        state_fields={
            "name": "name",
            "description": "description",
            "type": "type",
            "visibility": "visibility",
            "vpc_id": "vpc_id",
            "acls": "acls",
            "health_checks": "health_checks",
            "backends": "backends",
            "listeners": "listeners",
        },
    )
