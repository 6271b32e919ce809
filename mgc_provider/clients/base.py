"""ResourceClient abstract base class and API error types.

Defines the contract every per-kind cloud API client implements.  The
reconcilers and the poll driver interact exclusively with this
interface; they never know whether an HTTP client, a test fake or
something else sits behind it.

Lifecycle:
    1. ``create(spec)``           -- issue the create call, return the handle.
    2. ``get(handle)``            -- observe the resource (status + body).
    3. ``update(handle, delta)``  -- mutate in place, optionally via a named action.
    4. ``delete(handle)``         -- request deletion.
    5. ``list()``                 -- enumerate (used for name lookups).

Sub-resources (node pools, DBaaS snapshots) address their owner through
the ``parent`` keyword.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

from mgc_provider.core.exceptions import MgcError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from mgc_provider.models.resources import ResourceDetail

# Status codes worth retrying: request timeout, throttling, server-side failures.
_RETRYABLE_STATUS: frozenset[int] = frozenset({408, 425, 429, 500, 502, 503, 504})

SUMMARY_HTTP_ERROR = "API request failed with HTTP error"
SUMMARY_VALIDATION_ERROR = "Request validation failed"
SUMMARY_GENERIC_ERROR = "An unexpected error occurred"


class ResourceClient(abc.ABC):
    """Abstract base class for per-kind cloud API clients.

    Concrete implementations must override ``create``, ``get``, ``update``,
    ``delete`` and ``list``.  Every method raises ``ApiError`` (or its
    ``NotFoundError`` subclass) on failure.
    """

    def __init__(self, kind: str) -> None:
        self._kind = kind

    @property
    def kind(self) -> str:
        """Return the resource kind this client serves."""
        return self._kind

    @abc.abstractmethod
    async def create(self, spec: Mapping[str, Any], *, parent: str = "") -> str:
        """Create the resource and return its handle.

        Args:
            spec: Request body.
            parent: Owner handle for sub-resources.

        Raises:
            ApiError: On any API failure.
        """

    @abc.abstractmethod
    async def get(self, handle: str, *, parent: str = "") -> ResourceDetail:
        """Fetch the current detail of the resource.

        Raises:
            NotFoundError: If the resource does not exist.
            ApiError: On any other API failure.
        """

    @abc.abstractmethod
    async def update(
        self,
        handle: str,
        delta: Mapping[str, Any],
        *,
        parent: str = "",
        action: str = "",
    ) -> None:
        """Apply *delta* to the resource.

        Args:
            handle: Remote resource handle.
            delta: Request body carrying only the changed fields.
            parent: Owner handle for sub-resources.
            action: Named mutation endpoint (``"rename"``, ``"resize"``...);
                "" for a plain in-place update.

        Raises:
            ApiError: On any API failure.
        """

    @abc.abstractmethod
    async def delete(self, handle: str, *, parent: str = "") -> None:
        """Request deletion of the resource.

        Raises:
            NotFoundError: If the resource is already gone.
            ApiError: On any other API failure.
        """

    @abc.abstractmethod
    async def list(
        self,
        *,
        parent: str = "",
        params: Mapping[str, Any] | None = None,
    ) -> list[ResourceDetail]:
        """List resources of this kind, optionally filtered by query *params*."""

    async def aclose(self) -> None:  # noqa: B027
        """Release client resources (no-op by default)."""


# ---------------------------------------------------------------------------
# API errors
# ---------------------------------------------------------------------------


class ApiError(MgcError):
    """A cloud API call failed.

    Attributes:
        status_code: HTTP status code (0 for transport failures).
        body: Response body, verbatim.
        url: Request URL.
        method: HTTP method.
    """

    default_code = "API_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        body: str = "",
        url: str = "",
        method: str = "",
        request_id: str = "",
        retryable: bool | None = None,
        operation: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        self.method = method
        if retryable is None:
            retryable = status_code == 0 or status_code in _RETRYABLE_STATUS
        super().__init__(
            message,
            operation=operation,
            code=f"HTTP_{status_code}" if status_code else "API_TRANSPORT_ERROR",
            retryable=retryable,
            request_id=request_id,
        )

    @property
    def detail(self) -> str:
        """Multi-line description that operators can match with backend logs."""
        if not self.status_code:
            return self.message
        return (
            "HTTP Error:\n"
            f"  Status: {self.status_code}\n"
            f"  Body: {self.body}\n"
            f"  URL: {self.url}\n"
            f"  Request ID: {self.request_id}"
        )


class NotFoundError(ApiError):
    """The API answered 404 for the addressed resource."""

    default_code = "NOT_FOUND"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 404)
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)
        self.code = self.default_code


def is_not_found(exc: BaseException) -> bool:
    """Return ``True`` if *exc* means the addressed resource does not exist.

    Errors from other layers that only embed the status code in their
    text (``"... 404 ..."``) are accepted too.
    """
    if isinstance(exc, ApiError):
        return exc.status_code == 404
    if isinstance(exc, MgcError):
        return False
    return "404" in str(exc)


def is_transient(exc: BaseException) -> bool:
    """Return ``True`` if retrying the call that raised *exc* may succeed."""
    return isinstance(exc, MgcError) and exc.retryable


def parse_api_error(exc: BaseException | None) -> tuple[str, str]:
    """Turn any exception into a ``(summary, detail)`` pair for diagnostics."""
    if exc is None:
        return SUMMARY_GENERIC_ERROR, "nil error provided"
    if isinstance(exc, ApiError):
        if exc.status_code:
            return SUMMARY_HTTP_ERROR, exc.detail
        return SUMMARY_GENERIC_ERROR, exc.message
    if isinstance(exc, MgcError) and exc.category == "validation":
        return SUMMARY_VALIDATION_ERROR, exc.message
    return SUMMARY_GENERIC_ERROR, str(exc)
