"""Shared helper functions used across clients and reconcilers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mgc_provider.core.constants import (
    DEFAULT_ENV,
    DEFAULT_REGION,
    IMPORT_ID_SEPARATOR,
    REGION_URLS,
)
from mgc_provider.core.exceptions import RequestValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping


def split_import_id(import_id: str, *, parts: int = 2) -> tuple[str, ...]:
    """Split a composite import identifier such as ``"parent_id,child_id"``.

    Args:
        import_id: The identifier supplied by the operator.
        parts: Number of components expected.

    Returns:
        The stripped components, in order.

    Raises:
        RequestValidationError: If the component count is wrong or any
            component is empty.
    """
    pieces = tuple(p.strip() for p in import_id.split(IMPORT_ID_SEPARATOR))
    if len(pieces) != parts or not all(pieces):
        example = IMPORT_ID_SEPARATOR.join(f"id{i + 1}" for i in range(parts))
        msg = f"invalid import id {import_id!r}: expected {parts} comma-separated values ({example})"
        raise RequestValidationError(msg, operation="import")
    return pieces


def changed_fields(current: Mapping[str, Any], desired: Mapping[str, Any]) -> dict[str, Any]:
    """Return the desired values that differ from *current*.

    Only keys present in *desired* are compared; ``None`` in *desired*
    means "not managed" and is skipped.
    """
    return {
        key: value
        for key, value in desired.items()
        if value is not None and current.get(key) != value
    }


def get_path(data: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Look up a dotted *path* (``"status.state"``) in nested mappings."""
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def region_url(region: str = DEFAULT_REGION, env: str = DEFAULT_ENV, server_url: str = "") -> str:
    """Resolve the API base URL.

    An explicit *server_url* wins.  Otherwise the region/environment table
    is used, falling back to ``prod`` for an unknown environment and to
    ``br-se1`` for an unknown region.
    """
    if server_url:
        return server_url.rstrip("/")
    regions = REGION_URLS.get(env, REGION_URLS[DEFAULT_ENV])
    return regions.get(region, regions[DEFAULT_REGION])
