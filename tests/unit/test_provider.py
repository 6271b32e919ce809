"""Tests for the orchestrator facade (``Provider``).

Drives the full stack (facade, reconciler, HTTP client, poll driver)
against a scripted ``httpx.MockTransport`` cloud and checks that every
failure surfaces as a diagnostic instead of an exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import httpx
import pytest

from mgc_provider.clients.base import SUMMARY_HTTP_ERROR, SUMMARY_VALIDATION_ERROR
from mgc_provider.core.config import ProviderSettings
from mgc_provider.core.constants import NETWORK_VPCS, VM_INSTANCES
from mgc_provider.models.resources import ResourceState
from mgc_provider.provider import (
    SUMMARY_CANCELLED,
    SUMMARY_ERROR_STATE,
    SUMMARY_INVALID_CONFIG,
    SUMMARY_MISSING_API_KEY,
    SUMMARY_TIMEOUT,
    Provider,
)

SETTINGS = ProviderSettings(
    api_key="key-123",
    server_url="https://api.test",
    poll_interval_s=0.001,
    poll_timeout_s=1.0,
)

Scripted = str | dict | httpx.Response


class FakeCloud:
    """Scripted backend for one resource collection.

    ``POST`` answers with *create_response*, ``DELETE`` with 204 and each
    ``GET`` consumes the next scripted item (the last one repeats).  A
    string is served as ``{"id", "status"}``, a dict is merged into that
    body and a response is returned as is.  An empty script is a 404.
    """

    def __init__(
        self,
        statuses: Iterable[Scripted] = (),
        *,
        create_response: httpx.Response | None = None,
        delete_response: httpx.Response | None = None,
    ) -> None:
        self.statuses = list(statuses)
        self.create_response = create_response or httpx.Response(200, json={"id": "vpc-1"})
        self.delete_response = delete_response or httpx.Response(204)
        self.requests: list[httpx.Request] = []

    def methods(self) -> list[str]:
        return [request.method for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            return self.create_response
        if request.method == "DELETE":
            return self.delete_response
        if not self.statuses:
            return httpx.Response(404, json={"message": "resource not found"})
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, httpx.Response):
            return item
        handle = request.url.path.rsplit("/", 1)[-1]
        body = {"id": handle, "name": "main"}
        body.update({"status": item} if isinstance(item, str) else item)
        return httpx.Response(200, json=body)


async def _provider(cloud: FakeCloud, settings: ProviderSettings = SETTINGS) -> Provider:
    provider = Provider(transport=httpx.MockTransport(cloud))
    assert await provider.configure(settings) == []
    return provider


def _vpc_state(handle: str = "vpc-1") -> ResourceState:
    return ResourceState(kind=NETWORK_VPCS, id=handle, attributes={"id": handle, "name": "main"})


# ===================================================================
# Configure / Metadata
# ===================================================================


class TestConfigure:
    """Configure-time diagnostics."""

    @pytest.mark.asyncio()
    async def test_missing_api_key(self) -> None:
        provider = Provider()
        diagnostics = await provider.configure(ProviderSettings())

        assert len(diagnostics) == 1
        assert diagnostics[0].summary == SUMMARY_MISSING_API_KEY
        assert "MGC_API_KEY" in diagnostics[0].detail
        assert provider.configured is False

    @pytest.mark.asyncio()
    async def test_unknown_region(self) -> None:
        provider = Provider()
        diagnostics = await provider.configure(ProviderSettings(api_key="k", region="us-east-1"))

        assert diagnostics[0].summary == SUMMARY_INVALID_CONFIG
        assert "MGC_REGION" in diagnostics[0].detail
        assert provider.configured is False

    @pytest.mark.asyncio()
    async def test_valid(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="mgc_provider.provider")
        async with Provider() as provider:
            assert await provider.configure(ProviderSettings(api_key="k", region="br-ne1")) == []
            assert provider.configured is True
        assert provider.configured is False
        assert "region=br-ne1" in caplog.text

    @pytest.mark.asyncio()
    async def test_reconfigure_replaces_client(self) -> None:
        async with Provider() as provider:
            await provider.configure(ProviderSettings(api_key="a"))
            first = provider._http
            await provider.configure(ProviderSettings(api_key="b"))
            assert provider._http is not first
            assert first is not None
            assert first.is_closed

    def test_metadata(self) -> None:
        names = Provider().metadata()
        assert NETWORK_VPCS in names
        assert VM_INSTANCES in names
        assert len(names) == 13


# ===================================================================
# Lifecycle
# ===================================================================


class TestCreate:
    """create through the facade."""

    @pytest.mark.asyncio()
    async def test_success(self) -> None:
        cloud = FakeCloud(["creating", "created"])
        async with await _provider(cloud) as provider:
            result = await provider.create(NETWORK_VPCS, {"name": "main"})

        assert not result.has_error
        assert result.state is not None
        assert result.state.id == "vpc-1"
        assert result.state.attributes["status"] == "created"
        assert cloud.methods() == ["POST", "GET", "GET"]

    @pytest.mark.asyncio()
    async def test_error_state_returns_partial_state(self) -> None:
        cloud = FakeCloud(["creating", "error"])
        async with await _provider(cloud) as provider:
            result = await provider.create(NETWORK_VPCS, {"name": "main"})

        assert result.has_error
        assert result.state is not None
        assert result.state.id == "vpc-1"
        diagnostic = result.diagnostics[0]
        assert diagnostic.summary == SUMMARY_ERROR_STATE
        lines = diagnostic.detail.splitlines()
        assert "Operation: create" in lines
        assert f"Kind: {NETWORK_VPCS}" in lines
        assert "Handle: vpc-1" in lines
        assert "Target: created" in lines
        assert "entered error state 'error'" in diagnostic.detail

    @pytest.mark.asyncio()
    async def test_backend_error_text_verbatim(self) -> None:
        cloud = FakeCloud(
            [{"status": "creating_error_capacity", "error": {"message": "no capacity in zone br-se1-a"}}],
            create_response=httpx.Response(200, json={"id": "vm-1"}),
        )
        async with await _provider(cloud) as provider:
            result = await provider.create(VM_INSTANCES, {"name": "web", "machine_type": "BV1-1-10"})

        assert result.state is not None
        assert "no capacity in zone br-se1-a" in result.diagnostics[0].detail
        assert "Target: completed" in result.diagnostics[0].detail

    @pytest.mark.asyncio()
    async def test_create_call_rejected(self, caplog: pytest.LogCaptureFixture) -> None:
        cloud = FakeCloud(
            create_response=httpx.Response(
                409,
                text='{"message":"vpc quota exceeded"}',
                headers={"X-Request-Id": "req-9"},
            ),
        )
        caplog.set_level(logging.WARNING, logger="mgc_provider.provider")
        async with await _provider(cloud) as provider:
            result = await provider.create(NETWORK_VPCS, {"name": "main"})

        assert result.state is None
        diagnostic = result.diagnostics[0]
        assert diagnostic.summary == SUMMARY_HTTP_ERROR
        assert "Handle: -" in diagnostic.detail
        assert "Status: 409" in diagnostic.detail
        assert '{"message":"vpc quota exceeded"}' in diagnostic.detail
        assert "Request ID: req-9" in diagnostic.detail
        assert "code=HTTP_409" in caplog.text

    @pytest.mark.asyncio()
    async def test_timeout(self) -> None:
        cloud = FakeCloud(["creating"])
        settings = ProviderSettings(
            api_key="k",
            server_url="https://api.test",
            poll_interval_s=0.005,
            poll_timeout_s=0.05,
        )
        async with await _provider(cloud, settings) as provider:
            result = await provider.create(NETWORK_VPCS, {"name": "main"})

        assert result.diagnostics[0].summary == SUMMARY_TIMEOUT
        assert "last status 'creating'" in result.diagnostics[0].detail
        assert result.state is not None

    @pytest.mark.asyncio()
    async def test_cancelled(self) -> None:
        cloud = FakeCloud(["creating"])
        cancel = asyncio.Event()
        cancel.set()
        async with await _provider(cloud) as provider:
            result = await provider.create(NETWORK_VPCS, {"name": "main"}, cancel=cancel)

        assert result.diagnostics[0].summary == SUMMARY_CANCELLED
        assert result.state is not None
        assert result.state.id == "vpc-1"

    @pytest.mark.asyncio()
    async def test_unknown_type(self) -> None:
        async with await _provider(FakeCloud()) as provider:
            result = await provider.create("mgc_teleporters", {})

        assert result.diagnostics[0].summary == SUMMARY_VALIDATION_ERROR
        assert "mgc_teleporters" in result.diagnostics[0].detail

    @pytest.mark.asyncio()
    async def test_not_configured(self) -> None:
        result = await Provider().create(NETWORK_VPCS, {"name": "main"})

        assert result.has_error
        assert "provider is not configured" in result.diagnostics[0].detail


class TestRead:
    """read through the facade."""

    @pytest.mark.asyncio()
    async def test_current_state(self) -> None:
        async with await _provider(FakeCloud(["created"])) as provider:
            result = await provider.read(NETWORK_VPCS, _vpc_state())
        assert result.state is not None
        assert result.state.attributes["status"] == "created"
        assert result.diagnostics == []

    @pytest.mark.asyncio()
    async def test_gone(self) -> None:
        async with await _provider(FakeCloud()) as provider:
            result = await provider.read(NETWORK_VPCS, _vpc_state())
        assert result.state is None
        assert not result.has_error

    @pytest.mark.asyncio()
    async def test_failure_keeps_prior_state(self) -> None:
        cloud = FakeCloud([httpx.Response(500, text="internal error")])
        prior = _vpc_state()
        async with await _provider(cloud) as provider:
            result = await provider.read(NETWORK_VPCS, prior)

        assert result.state == prior
        assert "internal error" in result.diagnostics[0].detail
        assert "Target:" not in result.diagnostics[0].detail


class TestUpdate:
    """update through the facade."""

    @pytest.mark.asyncio()
    async def test_immutable_change(self) -> None:
        prior = _vpc_state()
        cloud = FakeCloud(["created"])
        async with await _provider(cloud) as provider:
            result = await provider.update(NETWORK_VPCS, prior, {"name": "renamed"})

        assert result.diagnostics[0].summary == SUMMARY_VALIDATION_ERROR
        assert result.state is not None
        assert result.state.id == "vpc-1"
        assert cloud.requests == []


class TestDelete:
    """delete through the facade."""

    @pytest.mark.asyncio()
    async def test_success(self) -> None:
        cloud = FakeCloud(["created", "deleting", httpx.Response(404, text="not found")])
        async with await _provider(cloud) as provider:
            result = await provider.delete(NETWORK_VPCS, _vpc_state())

        assert result.state is None
        assert result.diagnostics == []
        assert cloud.methods() == ["GET", "DELETE", "GET", "GET"]

    @pytest.mark.asyncio()
    async def test_timeout_names_target(self) -> None:
        cloud = FakeCloud(["created", "deleting"])
        settings = ProviderSettings(
            api_key="k",
            server_url="https://api.test",
            poll_interval_s=0.005,
            poll_timeout_s=0.05,
        )
        prior = _vpc_state()
        async with await _provider(cloud, settings) as provider:
            result = await provider.delete(NETWORK_VPCS, prior)

        assert result.state == prior
        assert result.diagnostics[0].summary == SUMMARY_TIMEOUT
        assert "Target: not found" in result.diagnostics[0].detail


class TestImport:
    """import_state through the facade."""

    @pytest.mark.asyncio()
    async def test_import(self) -> None:
        cloud = FakeCloud([{"status": "completed", "machine_type": {"name": "BV1-1-10"}}])
        async with await _provider(cloud) as provider:
            result = await provider.import_state(VM_INSTANCES, "vm-1")

        assert result.state is not None
        assert result.state.id == "vm-1"
        assert result.state.attributes["machine_type"] == "BV1-1-10"
        assert cloud.methods() == ["GET"]

    @pytest.mark.asyncio()
    async def test_missing(self) -> None:
        async with await _provider(FakeCloud()) as provider:
            result = await provider.import_state(NETWORK_VPCS, "vpc-404")

        assert result.state is None
        assert "Handle: vpc-404" in result.diagnostics[0].detail
        assert "resource not found" in result.diagnostics[0].detail
