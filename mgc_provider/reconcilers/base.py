"""Reconciler base class -- lifecycle operations of one resource kind.

A reconciler composes the kind's ``ResourceClient`` with the poll driver:

- ``create``: issue the create call, then poll to the kind's target status.
- ``read``: fetch the current detail (``None`` once the resource is gone).
- ``update``: apply the changed field groups one ``UpdateStep`` at a
  time, in the kind's fixed order, polling back to the target status
  after every mutating call.
- ``delete``: read first, skip the delete call if the backend is already
  deleting, then poll until the resource is gone.
- ``import_state``: populate state from a single read, without polling.

Partial failures:
    Once ``create`` has a handle it never rolls the resource back.  A
    failing wait raises ``ReconcileError`` carrying the partial state, so
    the caller can persist the handle and a later run can read, fix or
    destroy the remote object.  A failing ``update`` reports the steps
    that already completed in its partial state.

Subclasses supply a ``ReconcilerConfig`` and override the hooks
(``prepare``, ``check_update``, ``should_wait``, ``to_state``,
``observe``) where the kind needs more than the generic behaviour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from mgc_provider.clients.base import is_not_found
from mgc_provider.core.exceptions import (
    MgcError,
    PermanentError,
    ReconcileError,
    RequestValidationError,
)
from mgc_provider.core.polling import PollMode, poll_until
from mgc_provider.models.resources import ResourceState
from mgc_provider.utils.helpers import changed_fields, get_path, split_import_id

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable, Mapping

    from mgc_provider.clients.base import ResourceClient
    from mgc_provider.core.config import ProviderSettings
    from mgc_provider.models.resources import PollTiming, ResourceDetail
    from mgc_provider.models.status import StatusTaxonomy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateStep:
    """One serialised group of in-place changes.

    Attributes:
        name: Step name used in logs.
        fields: Desired-state fields handled by this step.
        action: Client action performing the change ("" for a plain update).
        build: ``(prepared_desired, changes) -> request body``; the changed
            fields themselves are sent when omitted.
        wait: Poll back to the target status after the call.
    """

    name: str
    fields: tuple[str, ...]
    action: str = ""
    build: Callable[[Mapping[str, Any], Mapping[str, Any]], dict[str, Any]] | None = None
    wait: bool = True

    def request(self, prepared: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
        """Return the request body for *changes*."""
        if self.build is None:
            return dict(changes)
        return self.build(prepared, changes)


@dataclass(frozen=True)
class ReconcilerConfig:
    """Compiled-in behaviour of one resource kind.

    Attributes:
        kind: Registered resource type name.
        taxonomy: Status alphabet and error rule.
        targets: Status values that end a create/update wait.
        timing: Timeout and interval of create/update waits.
        delete_targets: Status values meaning "deleted" (empty: only
            "not found" ends a delete wait).
        delete_timing: Timing of delete waits (defaults to ``timing``).
        deleting_statuses: Statuses meaning a delete is already under way.
        ready: Auxiliary readiness predicate gating success.
        update_steps: In-place update steps, in the order they run.
        state_fields: Persisted attribute -> dotted path in the detail
            body (empty: persist the top-level body as is).
        input_fields: Desired-state attributes the API never echoes back
            (names resolved to ids, secrets); carried over from the
            desired or prior state.
        write_only: Desired-state attributes the API accepts but never
            returns (credentials).  Carried like ``input_fields``, and
            not compared when the current state has no value for them
            (e.g. right after an import).
        parent_field: Desired-state attribute naming the owner handle of a
            sub-resource ("" for top-level kinds).
        import_parts: Components of the import identifier
            (2 for ``"parent_id,child_id"`` sub-resources).
    """

    kind: str
    taxonomy: StatusTaxonomy
    targets: tuple[str, ...]
    timing: PollTiming
    delete_targets: tuple[str, ...] = ()
    delete_timing: PollTiming | None = None
    deleting_statuses: tuple[str, ...] = ()
    ready: Callable[[ResourceDetail], bool] | None = None
    update_steps: tuple[UpdateStep, ...] = ()
    state_fields: Mapping[str, str] = field(default_factory=dict)
    input_fields: tuple[str, ...] = ()
    write_only: tuple[str, ...] = ()
    parent_field: str = ""
    import_parts: int = 1

    @property
    def updatable_fields(self) -> frozenset[str]:
        """Fields some update step can change in place."""
        return frozenset(f for step in self.update_steps for f in step.fields)


class Reconciler:
    """Generic reconciler driven by a ``ReconcilerConfig``."""

    config: ClassVar[ReconcilerConfig]

    def __init__(
        self,
        client: ResourceClient,
        *,
        timing: PollTiming | None = None,
        delete_timing: PollTiming | None = None,
        transient_retries: int = 0,
        retry_base: float = 5.0,
    ) -> None:
        self._client = client
        self._timing = timing or self.config.timing
        if delete_timing is None:
            delete_timing = timing or self.config.delete_timing or self.config.timing
        self._delete_timing = delete_timing
        self._transient_retries = transient_retries
        self._retry_base = retry_base

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, client_for: Callable[[str], ResourceClient], **options: Any) -> Reconciler:
        """Create the reconciler, fetching the clients it needs from *client_for*."""
        return cls(client_for(cls.config.kind), **options)

    @classmethod
    def from_settings(
        cls,
        client_for: Callable[[str], ResourceClient],
        settings: ProviderSettings,
    ) -> Reconciler:
        """Create the reconciler with the global poll overrides of *settings* applied."""
        overrides = {"timeout_s": settings.poll_timeout_s, "interval_s": settings.poll_interval_s}
        delete_timing = cls.config.delete_timing or cls.config.timing
        return cls.build(
            client_for,
            timing=cls.config.timing.override(**overrides),
            delete_timing=delete_timing.override(**overrides),
            transient_retries=settings.poll_transient_retries,
            retry_base=settings.poll_retry_base_s,
        )

    @property
    def kind(self) -> str:
        """Return the resource type name."""
        return self.config.kind

    @property
    def client(self) -> ResourceClient:
        """Return the kind's API client."""
        return self._client

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def prepare(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",  # noqa: ARG002
        operation: str = "create",  # noqa: ARG002
    ) -> dict[str, Any]:
        """Validate *desired* and return the request-ready values.

        Runs before any mutating call of *operation*.  Raises
        ``RequestValidationError``.
        """
        return {
            key: value
            for key, value in desired.items()
            if value is not None and key != self.config.parent_field
        }

    def check_update(self, current: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
        """Reject changes the backend cannot apply in place."""
        fixed = sorted(set(changes) - self.config.updatable_fields)
        if fixed:
            msg = f"{self.kind}: field(s) {', '.join(fixed)} cannot be changed in place"
            raise RequestValidationError(msg, operation="update")

    def should_wait(self, desired: Mapping[str, Any]) -> bool:  # noqa: ARG002
        """Return ``False`` to return right after the create call."""
        return True

    def to_state(
        self,
        detail: ResourceDetail,
        *,
        parent: str = "",
        inputs: Mapping[str, Any] | None = None,
    ) -> ResourceState:
        """Map the final detail of an operation onto persisted state.

        Args:
            detail: Last observation of the resource.
            parent: Owner handle for sub-resources.
            inputs: Desired or prior state supplying ``config.input_fields``.
        """
        if self.config.state_fields:
            attributes = {
                name: get_path(detail.attributes, path)
                for name, path in self.config.state_fields.items()
            }
        else:
            attributes = dict(detail.attributes)
        for name in (*self.config.input_fields, *self.config.write_only):
            if inputs is not None and name in inputs:
                attributes[name] = inputs[name]
        if self.config.parent_field and parent:
            attributes[self.config.parent_field] = parent
        attributes["id"] = detail.id
        attributes["status"] = detail.status
        return ResourceState(kind=self.kind, id=detail.id, attributes=attributes, parent_id=parent)

    async def observe(
        self,
        detail: ResourceDetail,
        *,
        parent: str = "",
        inputs: Mapping[str, Any] | None = None,
    ) -> ResourceState:
        """Build the state every lifecycle operation returns.

        Defaults to ``to_state``.  Kinds whose detail only references
        related objects by id override it to look those objects up.
        Raises ``MgcError``.
        """
        return self.to_state(detail, parent=parent, inputs=inputs)

    def diff(self, current: Mapping[str, Any], desired: Mapping[str, Any]) -> dict[str, Any]:
        """Return the fields of *desired* an update has to change."""
        changes = changed_fields(current, desired)
        for name in self.config.write_only:
            if current.get(name) is None:
                changes.pop(name, None)
        return changes

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def create(
        self,
        desired: Mapping[str, Any],
        *,
        parent: str = "",
        cancel: asyncio.Event | None = None,
    ) -> ResourceState:
        """Create the resource and wait for it to reach the target status.

        Raises:
            ReconcileError: On any failure; ``state`` holds the handle when
                the create call itself succeeded.
        """
        if not parent and self.config.parent_field:
            parent = str(desired.get(self.config.parent_field) or "")
        logger.info("create started | kind=%s | parent=%s", self.kind, parent or "-")
        try:
            if self.config.parent_field and not parent:
                msg = f"{self.kind}: {self.config.parent_field} is required"
                raise RequestValidationError(msg, operation="create")
            request = await self.prepare(desired, parent=parent, operation="create")
            handle = await self._client.create(request, parent=parent)
        except MgcError as exc:
            raise ReconcileError(self.kind, "create", exc) from exc

        partial = ResourceState(
            kind=self.kind,
            id=handle,
            attributes={**desired, "id": handle},
            parent_id=parent,
        )
        logger.info("create accepted | kind=%s | handle=%s", self.kind, handle)

        try:
            if self.should_wait(desired):
                detail = await self.wait(handle, parent=parent, operation="create", cancel=cancel)
            else:
                detail = await self._client.get(handle, parent=parent)
            return await self.observe(detail, parent=parent, inputs=desired)
        except MgcError as exc:
            raise ReconcileError(self.kind, "create", exc, handle=handle, state=partial) from exc

    async def read(
        self,
        handle: str,
        *,
        parent: str = "",
        prior: Mapping[str, Any] | None = None,
    ) -> ResourceState | None:
        """Return the current state, or ``None`` if the resource is gone.

        *prior* is the persisted state; it supplies ``config.input_fields``.
        """
        try:
            detail = await self._client.get(handle, parent=parent)
        except MgcError as exc:
            if is_not_found(exc):
                logger.info("read: resource gone | kind=%s | handle=%s", self.kind, handle)
                return None
            raise ReconcileError(self.kind, "read", exc, handle=handle) from exc
        try:
            return await self.observe(detail, parent=parent, inputs=prior)
        except MgcError as exc:
            raise ReconcileError(self.kind, "read", exc, handle=handle) from exc

    async def update(
        self,
        handle: str,
        current: Mapping[str, Any],
        desired: Mapping[str, Any],
        *,
        parent: str = "",
        cancel: asyncio.Event | None = None,
    ) -> ResourceState:
        """Apply the fields of *desired* that differ from *current*.

        Steps run strictly one after another in ``config.update_steps``
        order; each mutating call is polled back to the target status
        before the next one is issued.  On failure the error state holds
        *current* plus the changes of every step that completed.
        """
        changes = self.diff(current, desired)
        applied = dict(current)
        try:
            self.check_update(current, changes)
            if changes:
                prepared = await self.prepare(desired, parent=parent, operation="update")
                for step in self.config.update_steps:
                    step_changes = {f: changes[f] for f in step.fields if f in changes}
                    if not step_changes:
                        continue
                    logger.info(
                        "update step | kind=%s | handle=%s | step=%s | fields=%s",
                        self.kind,
                        handle,
                        step.name,
                        ",".join(step_changes),
                    )
                    await self._client.update(
                        handle,
                        step.request(prepared, step_changes),
                        parent=parent,
                        action=step.action,
                    )
                    if step.wait:
                        await self.wait(handle, parent=parent, operation="update", cancel=cancel)
                    applied.update(step_changes)
            detail = await self._client.get(handle, parent=parent)
            return await self.observe(detail, parent=parent, inputs={**current, **desired})
        except MgcError as exc:
            state = ResourceState(kind=self.kind, id=handle, attributes=applied, parent_id=parent)
            raise ReconcileError(self.kind, "update", exc, handle=handle, state=state) from exc

    async def delete(
        self,
        handle: str,
        *,
        parent: str = "",
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Delete the resource and wait until it is gone."""
        try:
            try:
                detail = await self._client.get(handle, parent=parent)
            except MgcError as exc:
                if is_not_found(exc):
                    logger.info("delete: already gone | kind=%s | handle=%s", self.kind, handle)
                    return
                raise

            if self.config.taxonomy.matches(detail.status, self.config.deleting_statuses):
                logger.info(
                    "delete: already deleting | kind=%s | handle=%s | status=%s",
                    self.kind,
                    handle,
                    detail.status,
                )
            else:
                try:
                    await self._client.delete(handle, parent=parent)
                except MgcError as exc:
                    if is_not_found(exc):
                        return
                    raise

            await self.wait_deleted(handle, parent=parent, cancel=cancel)
        except MgcError as exc:
            raise ReconcileError(self.kind, "delete", exc, handle=handle) from exc

    async def import_state(self, import_id: str) -> ResourceState:
        """Populate state for an existing resource from a single read."""
        try:
            parent = ""
            if self.config.import_parts > 1:
                parent, handle = split_import_id(import_id, parts=self.config.import_parts)[-2:]
            else:
                handle = import_id.strip()
                if not handle:
                    msg = f"{self.kind}: import id must be non-empty"
                    raise RequestValidationError(msg, operation="import")
            detail = await self._client.get(handle, parent=parent)
            return await self.observe(detail, parent=parent)
        except MgcError as exc:
            raise ReconcileError(self.kind, "import", exc, handle=import_id) from exc

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    async def wait(
        self,
        handle: str,
        *,
        parent: str = "",
        operation: str = "",
        cancel: asyncio.Event | None = None,
    ) -> ResourceDetail:
        """Poll until the resource reaches one of ``config.targets``."""
        detail = await poll_until(
            lambda: self._client.get(handle, parent=parent),
            handle=handle,
            kind=self.kind,
            targets=self.config.targets,
            classify=self.config.taxonomy.classify,
            timeout=self._timing.timeout_s,
            interval=self._timing.interval_s,
            ready=self.config.ready,
            cancel=cancel,
            transient_retries=self._transient_retries,
            retry_base=self._retry_base,
            operation=operation,
        )
        if detail is None:
            msg = f"{self.kind} {handle}: poll session ended without a detail"
            raise PermanentError(msg, operation=operation)
        return detail

    async def wait_deleted(
        self,
        handle: str,
        *,
        parent: str = "",
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Poll until the resource is not found or reports a deleted status."""
        await poll_until(
            lambda: self._client.get(handle, parent=parent),
            handle=handle,
            kind=self.kind,
            targets=self.config.delete_targets,
            classify=self.config.taxonomy.classify,
            timeout=self._delete_timing.timeout_s,
            interval=self._delete_timing.interval_s,
            mode=PollMode.DELETE,
            cancel=cancel,
            transient_retries=self._transient_retries,
            retry_base=self._retry_base,
            operation="delete",
        )
