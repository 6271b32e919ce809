"""Orchestrator facade -- Configure, Metadata and lifecycle dispatch.

The orchestrator talks to the provider through ``Provider``:

1. ``configure(settings)`` builds one shared ``httpx.AsyncClient``.
2. ``metadata()`` lists the registered resource type names.
3. ``create`` / ``read`` / ``update`` / ``delete`` / ``import_state``
   dispatch to the reconciler of the requested type.

Lifecycle calls never raise provider errors.  Each returns an
``OperationResult`` whose diagnostics describe any failure (kind, handle,
awaited status and the backend text verbatim), and whose ``state`` holds
whatever must be persisted, including the partial state of a create that
failed after the remote object was created.  ``asyncio.CancelledError``
propagates untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mgc_provider.clients.base import parse_api_error
from mgc_provider.clients.factory import get_client
from mgc_provider.clients.http import build_http_client
from mgc_provider.core.config import validate_settings
from mgc_provider.core.exceptions import (
    MgcError,
    PollCancelledError,
    PollTimeoutError,
    ReconcileError,
    RequestValidationError,
    ResourceStatusError,
)
from mgc_provider.models.diagnostics import SEVERITY_ERROR, Diagnostic, OperationResult
from mgc_provider.reconcilers.registry import get_reconciler, list_reconcilers

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Mapping
    from types import TracebackType

    import httpx

    from mgc_provider.clients.base import ResourceClient
    from mgc_provider.core.config import ProviderSettings
    from mgc_provider.models.resources import ResourceState
    from mgc_provider.reconcilers.base import Reconciler

logger = logging.getLogger(__name__)

SUMMARY_MISSING_API_KEY = "Missing API key"
SUMMARY_INVALID_CONFIG = "Invalid provider configuration"
SUMMARY_ERROR_STATE = "Resource entered an error state"
SUMMARY_TIMEOUT = "Timed out waiting for resource"
SUMMARY_CANCELLED = "Operation cancelled"


class Provider:
    """Entry point the orchestrator drives.

    Args:
        transport: Optional httpx transport override (``httpx.MockTransport``
            in tests).
    """

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._settings: ProviderSettings | None = None
        self._http: httpx.AsyncClient | None = None
        self._clients: dict[str, ResourceClient] = {}
        self._reconcilers: dict[str, Reconciler] = {}

    # ------------------------------------------------------------------
    # Configure / Metadata
    # ------------------------------------------------------------------

    async def configure(self, settings: ProviderSettings) -> list[Diagnostic]:
        """Validate *settings* and build the shared HTTP client.

        Returns:
            Error diagnostics; empty when the provider is ready.
        """
        if not settings.api_key:
            return [
                Diagnostic(
                    severity=SEVERITY_ERROR,
                    summary=SUMMARY_MISSING_API_KEY,
                    detail="Set api_key in the provider block or the MGC_API_KEY environment variable.",
                )
            ]
        try:
            validate_settings(settings)
        except MgcError as exc:
            return [Diagnostic(severity=SEVERITY_ERROR, summary=SUMMARY_INVALID_CONFIG, detail=str(exc))]

        await self.aclose()
        self._settings = settings
        self._http = build_http_client(settings, transport=self._transport)
        logger.info(
            "provider configured | env=%s | region=%s | server_url=%s",
            settings.env,
            settings.region,
            settings.server_url or "-",
        )
        return []

    def metadata(self) -> list[str]:
        """Return the resource type names this provider serves."""
        return list_reconcilers()

    @property
    def configured(self) -> bool:
        """Return ``True`` once ``configure`` succeeded."""
        return self._http is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(
        self,
        type_name: str,
        desired: Mapping[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> OperationResult:
        """Create a resource of *type_name* from *desired*."""
        try:
            reconciler = self._reconciler(type_name)
            state = await reconciler.create(desired, cancel=cancel)
        except MgcError as exc:
            return self._failure(type_name, "create", exc)
        return OperationResult(state=state)

    async def read(self, type_name: str, state: ResourceState) -> OperationResult:
        """Refresh *state*; the result holds ``None`` if the resource is gone."""
        try:
            reconciler = self._reconciler(type_name)
            current = await reconciler.read(state.id, parent=state.parent_id, prior=state.attributes)
        except MgcError as exc:
            return self._failure(type_name, "read", exc, handle=state.id, fallback=state)
        return OperationResult(state=current)

    async def update(
        self,
        type_name: str,
        state: ResourceState,
        desired: Mapping[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> OperationResult:
        """Apply the differences between *state* and *desired* in place."""
        try:
            reconciler = self._reconciler(type_name)
            updated = await reconciler.update(
                state.id,
                state.attributes,
                desired,
                parent=state.parent_id,
                cancel=cancel,
            )
        except MgcError as exc:
            return self._failure(type_name, "update", exc, handle=state.id, fallback=state)
        return OperationResult(state=updated)

    async def delete(
        self,
        type_name: str,
        state: ResourceState,
        *,
        cancel: asyncio.Event | None = None,
    ) -> OperationResult:
        """Delete the resource behind *state* and wait until it is gone."""
        try:
            reconciler = self._reconciler(type_name)
            await reconciler.delete(state.id, parent=state.parent_id, cancel=cancel)
        except MgcError as exc:
            return self._failure(type_name, "delete", exc, handle=state.id, fallback=state)
        return OperationResult()

    async def import_state(self, type_name: str, import_id: str) -> OperationResult:
        """Adopt an existing resource identified by *import_id*."""
        try:
            reconciler = self._reconciler(type_name)
            state = await reconciler.import_state(import_id)
        except MgcError as exc:
            return self._failure(type_name, "import", exc, handle=import_id)
        return OperationResult(state=state)

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the shared HTTP client (safe to call repeatedly)."""
        self._clients.clear()
        self._reconcilers.clear()
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> Provider:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _client_for(self, kind: str) -> ResourceClient:
        if self._http is None:
            msg = "provider is not configured"
            raise RequestValidationError(msg, operation="configure")
        client = self._clients.get(kind)
        if client is None:
            client = get_client(kind, self._http)
            self._clients[kind] = client
        return client

    def _reconciler(self, type_name: str) -> Reconciler:
        reconciler = self._reconcilers.get(type_name)
        if reconciler is None:
            if self._settings is None:
                msg = "provider is not configured"
                raise RequestValidationError(msg, operation="configure")
            reconciler = get_reconciler(type_name, self._client_for, self._settings)
            self._reconcilers[type_name] = reconciler
        return reconciler

    def _target(self, type_name: str, operation: str) -> str:
        reconciler = self._reconcilers.get(type_name)
        if reconciler is None:
            return ""
        if operation == "delete":
            return " or ".join(reconciler.config.delete_targets) or "not found"
        if operation in ("create", "update"):
            return " or ".join(reconciler.config.targets)
        return ""

    def _failure(
        self,
        type_name: str,
        operation: str,
        exc: MgcError,
        *,
        handle: str = "",
        fallback: ResourceState | None = None,
    ) -> OperationResult:
        cause: BaseException = exc.cause if isinstance(exc, ReconcileError) else exc
        if isinstance(exc, ReconcileError):
            handle = exc.handle or handle
        state = exc.state if isinstance(exc, ReconcileError) and exc.state is not None else fallback

        summary, detail = parse_api_error(cause)
        if isinstance(cause, ResourceStatusError):
            summary = SUMMARY_ERROR_STATE
        elif isinstance(cause, PollTimeoutError):
            summary = SUMMARY_TIMEOUT
        elif isinstance(cause, PollCancelledError):
            summary = SUMMARY_CANCELLED

        lines = [
            f"Operation: {operation}",
            f"Kind: {type_name}",
            f"Handle: {handle or '-'}",
        ]
        target = self._target(type_name, operation)
        if target:
            lines.append(f"Target: {target}")
        lines.append(detail)

        logger.warning(
            "operation failed | type=%s | operation=%s | handle=%s | code=%s | error=%s",
            type_name,
            operation,
            handle or "-",
            exc.code,
            cause,
        )
        return OperationResult(
            state=state,
            diagnostics=[Diagnostic(severity=SEVERITY_ERROR, summary=summary, detail="\n".join(lines))],
        )
