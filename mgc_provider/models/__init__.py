"""Typed models shared by the clients, the poll driver, the reconcilers and the facade."""

from mgc_provider.models.diagnostics import Diagnostic, OperationResult
from mgc_provider.models.resources import PollTiming, ResourceDetail, ResourceState
from mgc_provider.models.status import StatusClass, StatusTaxonomy

__all__ = [
    "Diagnostic",
    "OperationResult",
    "PollTiming",
    "ResourceDetail",
    "ResourceState",
    "StatusClass",
    "StatusTaxonomy",
]
