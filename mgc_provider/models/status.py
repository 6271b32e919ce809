"""Status classification for asynchronously provisioned resources.

Every backend service reports its own status alphabet and encodes errors
its own way (``_error`` suffixes, an ``ERROR`` substring, an explicit
``failed`` value...).  The alphabets are not unified here; each resource
kind gets a ``StatusTaxonomy`` that maps its raw strings onto the
four-way ``StatusClass`` the poll driver understands.

Classification order for a raw status:

1. equal to one of the requested targets  -> ``SUCCESS``
2. matches the kind's error rule          -> ``ERROR``
3. part of the kind's known alphabet      -> ``PENDING``
4. anything else                          -> ``UNKNOWN``

Targets are checked first, so a target value can never be reported as an
error, and ``UNKNOWN`` never collides with ``SUCCESS``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Collection


class StatusClass(enum.Enum):
    """Outcome of classifying one observed status.

    Values:
        PENDING: Transitional; keep polling.
        SUCCESS: The awaited target status was reached.
        ERROR:   The resource entered an error state.
        UNKNOWN: Not part of the kind's alphabet; polled like PENDING.
    """

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    UNKNOWN = "unknown"


def _identity(status: str) -> str:
    return status


def _lower(status: str) -> str:
    return status.lower()


# ---------------------------------------------------------------------------
# Error rules
# ---------------------------------------------------------------------------


def error_in(statuses: Collection[str]) -> Callable[[str], bool]:
    """Error when the status is one of an explicit set."""
    frozen = frozenset(statuses)
    return lambda status: status in frozen


def error_contains(word: str) -> Callable[[str], bool]:
    """Error when *word* appears anywhere in the status."""
    return lambda status: word in status


def error_suffix(word: str) -> Callable[[str], bool]:
    """Error when the status ends with *word*."""
    return lambda status: status.endswith(word)


def error_equals(*words: str) -> Callable[[str], bool]:
    """Error when the status equals one of *words*."""
    frozen = frozenset(words)
    return lambda status: status in frozen


@dataclass(frozen=True, slots=True)
class StatusTaxonomy:
    """Status alphabet and error convention of one resource kind.

    Attributes:
        name: Resource kind the taxonomy belongs to.
        known: Every status value the backend is documented to emit,
            already in normalised form.
        is_error: Error rule applied to the normalised status.
        normalize: Applied to raw statuses and targets before matching
            (identity by default, ``str.lower`` for case-insensitive kinds).
    """

    name: str
    known: frozenset[str]
    is_error: Callable[[str], bool]
    normalize: Callable[[str], str] = _identity

    def classify(self, raw: str, targets: Collection[str]) -> StatusClass:
        """Classify *raw* against the awaited *targets*."""
        status = self.normalize(raw)
        if status in {self.normalize(t) for t in targets}:
            return StatusClass.SUCCESS
        if self.is_error(status):
            return StatusClass.ERROR
        if status in self.known:
            return StatusClass.PENDING
        return StatusClass.UNKNOWN

    def matches(self, raw: str, candidates: Collection[str]) -> bool:
        """Return ``True`` if *raw* equals one of *candidates* after normalising."""
        return self.normalize(raw) in {self.normalize(c) for c in candidates}


# ---------------------------------------------------------------------------
# Virtual machines
# ---------------------------------------------------------------------------

VM_ERROR_STATUSES: frozenset[str] = frozenset(
    {
        "creating_error",
        "creating_error_capacity",
        "creating_network_error",
        "creating_error_quota",
        "creating_error_quota_ram",
        "creating_error_quota_vcpu",
        "creating_error_quota_disk",
        "creating_error_quota_instance",
        "creating_error_quota_floating_ip",
        "creating_error_quota_network",
        "retyping_error",
        "retyping_error_quota_ram",
        "retyping_error_quota_vcpu",
        "retyping_error_quota",
        "deleting_error",
    }
)

VM_INSTANCE_STATUS = StatusTaxonomy(
    name="virtual_machine_instance",
    known=VM_ERROR_STATUSES
    | {
        "attaching_nic",
        "detaching_nic",
        "attach_nic_pending",
        "detach_nic_pending",
        "provisioning",
        "creating",
        "completed",
        "retyping_pending",
        "retyping",
        "retyping_confirmed",
        "stopping_pending",
        "stopping",
        "suspending_pending",
        "suspending",
        "rebooting_pending",
        "rebooting",
        "starting_pending",
        "starting",
        "deleting_pending",
        "deleting",
        "deleting_network_error",
        "deleted",
    },
    is_error=error_in(VM_ERROR_STATUSES),
)

# ---------------------------------------------------------------------------
# Block storage
# ---------------------------------------------------------------------------

VOLUME_STATUS = StatusTaxonomy(
    name="block_storage_volume",
    known=frozenset(
        {
            "provisioning",
            "creating",
            "creating_error",
            "creating_error_quota",
            "completed",
            "extend_pending",
            "extending",
            "extend_error",
            "extend_error_quota",
            "attaching_pending",
            "attaching_error",
            "attaching",
            "detaching_pending",
            "detaching_error",
            "detaching",
            "retype_pending",
            "retyping",
            "retype_error",
            "retype_error_quota",
            "deleting_pending",
            "deleting",
            "deleted",
            "deleted_error",
        }
    ),
    is_error=error_contains("error"),
)

SNAPSHOT_STATUS = StatusTaxonomy(
    name="block_storage_snapshot",
    known=frozenset(
        {
            "provisioning",
            "creating",
            "creating_error",
            "creating_error_quota",
            "completed",
            "deleting",
            "deleted",
            "deleted_error",
            "replicating",
            "replicating_error",
            "restoring",
            "restoring_error",
            "reserved",
        }
    ),
    is_error=error_suffix("error"),
)

# ---------------------------------------------------------------------------
# Database as a service
# ---------------------------------------------------------------------------

DBAAS_INSTANCE_STATUS = StatusTaxonomy(
    name="dbaas_instance",
    known=frozenset(
        {
            "CREATING",
            "ERROR",
            "STOPPED",
            "REBOOT",
            "PENDING",
            "RESIZING",
            "DELETED",
            "ACTIVE",
            "STARTING",
            "STOPPING",
            "BACKING_UP",
            "DELETING",
            "RESTORING",
            "ERROR_DELETING",
            "MAINTENANCE",
        }
    ),
    is_error=error_contains("ERROR"),
)

DBAAS_CLUSTER_STATUS = StatusTaxonomy(
    name="dbaas_cluster",
    known=frozenset(
        {
            "creating",
            "error",
            "stopped",
            "reboot",
            "pending",
            "resizing",
            "deleted",
            "active",
            "starting",
            "stopping",
            "backing_up",
            "deleting",
            "restoring",
            "error_deleting",
            "maintenance",
        }
    ),
    is_error=error_contains("error"),
    normalize=_lower,
)

DBAAS_SNAPSHOT_STATUS = StatusTaxonomy(
    name="dbaas_instance_snapshot",
    known=frozenset({"PENDING", "CREATING", "AVAILABLE", "RESTORING", "ERROR", "DELETING", "DELETED"}),
    is_error=error_equals("ERROR"),
)

DBAAS_REPLICA_STATUS = StatusTaxonomy(
    name="dbaas_replica",
    known=DBAAS_INSTANCE_STATUS.known,
    is_error=error_contains("ERROR"),
)

# ---------------------------------------------------------------------------
# Kubernetes
# ---------------------------------------------------------------------------

K8S_CLUSTER_STATUS = StatusTaxonomy(
    name="kubernetes_cluster",
    known=frozenset(
        {"pending", "provisioning", "provisioned", "running", "updating", "deleting", "deleted", "failed"}
    ),
    is_error=error_equals("failed"),
    normalize=_lower,
)


def _nodepool_error(status: str) -> bool:
    lowered = status.lower()
    return lowered == "failed" or "error" in lowered


NODEPOOL_STATUS = StatusTaxonomy(
    name="kubernetes_nodepool",
    known=frozenset(
        {"Pending", "Provisioning", "Running", "Updating", "Scaling", "Deleting", "Deleted", "Failed"}
    ),
    is_error=_nodepool_error,
)

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

VPC_STATUS = StatusTaxonomy(
    name="network_vpc",
    known=frozenset({"pending", "creating", "created", "deleting", "deleted", "error"}),
    is_error=error_contains("error"),
)

LOAD_BALANCER_STATUS = StatusTaxonomy(
    name="network_load_balancer",
    known=frozenset({"creating", "running", "updating", "deleting", "deleted", "failed"}),
    is_error=error_equals("failed"),
)

VPC_ROUTE_STATUS = StatusTaxonomy(
    name="network_vpc_route",
    known=frozenset({"pending", "creating", "created", "deleting", "deleted", "error"}),
    is_error=error_equals("error"),
    normalize=_lower,
)
