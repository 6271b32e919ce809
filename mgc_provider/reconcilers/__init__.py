"""Resource reconcilers.

Implements the lifecycle contract per resource type:
- Reconciler: Generic create/read/update/delete/import driven by a ReconcilerConfig
- compute, block_storage, database, kubernetes, network, load_balancer: per-service kinds

The reconciler of a type is selected by name through the registry.
"""

from mgc_provider.reconcilers.base import Reconciler, ReconcilerConfig, UpdateStep
from mgc_provider.reconcilers.registry import (
    get_reconciler,
    get_reconciler_class,
    list_reconcilers,
    register_reconciler,
)

__all__ = [
    "Reconciler",
    "ReconcilerConfig",
    "UpdateStep",
    "get_reconciler",
    "get_reconciler_class",
    "list_reconcilers",
    "register_reconciler",
]
