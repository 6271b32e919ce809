"""Unified provider exception taxonomy.

Every error raised by the provider inherits from ``MgcError`` and carries
structured context fields so that the orchestrator facade can turn any
failure into a diagnostic without inspecting concrete types.

Taxonomy categories
-------------------
- ``ValidationError``: malformed desired state or settings, never retryable.
- ``TransientError``: temporary failures (network, throttling), retryable.
- ``PermanentError``: the remote resource failed or the wait gave up.

Polling outcomes get dedicated subclasses so callers can tell an error
status reported by the backend (``ResourceStatusError``) apart from a wait
that simply ran out of time (``PollTimeoutError``).

Every exception exposes ``to_error_dict()`` for a stable structured
payload suitable for logging and diagnostics.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mgc_provider.models.resources import ResourceState


class MgcError(Exception):
    """Base exception for all provider errors.

    Attributes:
        message: Human-readable error description.
        operation: Lifecycle operation that failed
            (e.g. ``"create"``, ``"delete"``, ``"poll"``).
        code: Machine-readable error code (e.g. ``"POLL_TIMEOUT"``).
        retryable: Whether re-running the operation may succeed.
        request_id: Backend request identifier, when one is known.
    """

    #: Default operation for subclasses (override via class attribute or kwarg).
    default_operation: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        operation: str = "",
        code: str = "",
        retryable: bool = False,
        request_id: str = "",
    ) -> None:
        self.message = message
        self.operation = operation or self.default_operation
        self.code = code or self.default_code
        self.retryable = retryable
        self.request_id = request_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "operation": self.operation,
            "message": self.message,
            "retryable": self.retryable,
            "request_id": self.request_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(MgcError):
    """Input or settings validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(MgcError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(MgcError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Concrete errors
# ---------------------------------------------------------------------------


class RequestValidationError(ValidationError):
    """Desired state cannot be turned into an API request.

    Raised before any mutating call, e.g. for an engine name the API does
    not know or a malformed composite import identifier.
    """

    default_operation = "validate"
    default_code = "REQUEST_VALIDATION_FAILED"


class ResourceStatusError(PermanentError):
    """The remote resource reported an error status.

    Attributes:
        kind: Resource kind (type name) being polled.
        handle: Remote resource identifier.
        status: The status string the backend reported.
        detail: Backend error text, verbatim, when the API exposes one.
    """

    default_operation = "poll"
    default_code = "RESOURCE_ERROR_STATE"

    def __init__(
        self,
        kind: str,
        handle: str,
        status: str,
        *,
        detail: str = "",
        operation: str = "",
    ) -> None:
        self.kind = kind
        self.handle = handle
        self.status = status
        self.detail = detail
        message = f"{kind} {handle} entered error state {status!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, operation=operation)


class PollTimeoutError(PermanentError):
    """The deadline passed before the resource reached a target status.

    Attributes:
        kind: Resource kind (type name) being polled.
        handle: Remote resource identifier.
        targets: Status values that would have ended the wait.
        last_status: Last status observed before the deadline ("" if none).
        timeout: The timeout that elapsed, in seconds.
        poll_count: Number of fetches performed.
    """

    default_operation = "poll"
    default_code = "POLL_TIMEOUT"

    def __init__(
        self,
        kind: str,
        handle: str,
        targets: Iterable[str],
        *,
        last_status: str = "",
        timeout: float = 0.0,
        poll_count: int = 0,
        operation: str = "",
    ) -> None:
        self.kind = kind
        self.handle = handle
        self.targets = tuple(targets)
        self.last_status = last_status
        self.timeout = timeout
        self.poll_count = poll_count
        wanted = " or ".join(repr(t) for t in self.targets) or "deletion"
        message = (
            f"timeout after {timeout:g}s waiting for {kind} {handle} to reach "
            f"status {wanted} (last status {last_status!r}, {poll_count} polls)"
        )
        super().__init__(message, operation=operation)


class PollCancelledError(PermanentError):
    """The cancel signal was set while a poll session was waiting."""

    default_operation = "poll"
    default_code = "POLL_CANCELLED"

    def __init__(self, kind: str, handle: str, *, operation: str = "") -> None:
        self.kind = kind
        self.handle = handle
        super().__init__(
            f"polling of {kind} {handle} was cancelled",
            operation=operation,
        )


class ReconcileError(MgcError):
    """A lifecycle operation failed.

    Wraps the underlying cause and carries whatever state the operation
    had already established, so that a handle obtained before a failed
    wait is still persisted by the caller.

    Attributes:
        kind: Resource kind (type name).
        handle: Remote resource identifier ("" if none was obtained).
        state: Partial state to persist, or ``None``.
        cause: The underlying exception.
    """

    default_code = "RECONCILE_FAILED"

    def __init__(
        self,
        kind: str,
        operation: str,
        cause: BaseException,
        *,
        handle: str = "",
        state: ResourceState | None = None,
    ) -> None:
        self.kind = kind
        self.handle = handle
        self.state = state
        self.cause = cause
        retryable = bool(getattr(cause, "retryable", False))
        request_id = str(getattr(cause, "request_id", "") or "")
        code = str(getattr(cause, "code", "") or "") or self.default_code
        target = f" {handle}" if handle else ""
        super().__init__(
            f"{operation} {kind}{target} failed: {cause}",
            operation=operation,
            code=code,
            retryable=retryable,
            request_id=request_id,
        )

    @property
    def category(self) -> str:
        """Report the category of the wrapped cause."""
        if isinstance(self.cause, MgcError):
            return self.cause.category
        return super().category
