"""Shared pytest fixtures for the provider test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pytest

from mgc_provider.clients.base import NotFoundError, ResourceClient
from mgc_provider.models.resources import ResourceDetail

# ---------------------------------------------------------------------------
# Scripted in-memory client
# ---------------------------------------------------------------------------

ScriptItem = str | ResourceDetail | BaseException


class FakeResourceClient(ResourceClient):
    """In-memory ``ResourceClient`` that replays a scripted status sequence.

    Each ``get`` consumes the next script item; the last item repeats.
    A string becomes a detail with that status, a ``ResourceDetail`` is
    returned as is and an exception is raised.  An empty script means the
    resource does not exist.  A handle matching a ``listing`` entry returns
    that entry, the way lookup endpoints answer a get by id.

    Every call is recorded in ``calls`` as ``(method, *args)``.  Errors
    queued in ``errors[method]`` are raised once by that method.
    """

    def __init__(
        self,
        kind: str = "mgc_fake_things",
        *,
        script: Iterable[ScriptItem] = (),
        handle: str = "res-1",
        attributes: Mapping[str, Any] | None = None,
        listing: Iterable[ResourceDetail] = (),
    ) -> None:
        super().__init__(kind)
        self.script: list[ScriptItem] = list(script)
        self.handle = handle
        self.attributes = dict(attributes or {})
        self.listing = list(listing)
        self.errors: dict[str, BaseException] = {}
        self.calls: list[tuple[Any, ...]] = []

    @property
    def get_count(self) -> int:
        return sum(1 for call in self.calls if call[0] == "get")

    def methods(self) -> list[str]:
        """Return the recorded method names, in call order."""
        return [call[0] for call in self.calls]

    def push(self, *items: ScriptItem) -> None:
        self.script.extend(items)

    def _raise(self, method: str) -> None:
        exc = self.errors.pop(method, None)
        if exc is not None:
            raise exc

    async def create(self, spec: Mapping[str, Any], *, parent: str = "") -> str:
        self.calls.append(("create", dict(spec), parent))
        self._raise("create")
        return self.handle

    async def get(self, handle: str, *, parent: str = "") -> ResourceDetail:
        self.calls.append(("get", handle, parent))
        for entry in self.listing:
            if entry.id == handle:
                return entry
        if not self.script:
            msg = f"GET {handle} returned HTTP 404"
            raise NotFoundError(msg)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, ResourceDetail):
            return item
        return ResourceDetail(
            id=handle,
            status=item,
            attributes={**self.attributes, "id": handle, "status": item},
        )

    async def update(
        self,
        handle: str,
        delta: Mapping[str, Any],
        *,
        parent: str = "",
        action: str = "",
    ) -> None:
        self.calls.append(("update", handle, dict(delta), parent, action))
        self._raise("update")

    async def delete(self, handle: str, *, parent: str = "") -> None:
        self.calls.append(("delete", handle, parent))
        self._raise("delete")

    async def list(
        self,
        *,
        parent: str = "",
        params: Mapping[str, Any] | None = None,
    ) -> list[ResourceDetail]:
        self.calls.append(("list", parent, dict(params or {})))
        self._raise("list")
        return list(self.listing)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_client() -> Callable[..., FakeResourceClient]:
    """Factory for scripted fake clients."""

    def _make(kind: str = "mgc_fake_things", **kwargs: Any) -> FakeResourceClient:
        return FakeResourceClient(kind, **kwargs)

    return _make


@pytest.fixture()
def fake_client() -> FakeResourceClient:
    """A fake client with an empty script (the resource does not exist)."""
    return FakeResourceClient()


@pytest.fixture()
def detail() -> Callable[..., ResourceDetail]:
    """Factory for ``ResourceDetail`` values."""

    def _detail(status: str, handle: str = "res-1", **attributes: Any) -> ResourceDetail:
        return ResourceDetail(
            id=handle,
            status=status,
            attributes={"id": handle, "status": status, **attributes},
            error_message=str(attributes.get("error_message", "")),
        )

    return _detail
