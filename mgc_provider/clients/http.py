"""HTTP implementation of ``ResourceClient`` over ``httpx.AsyncClient``.

One ``HttpResourceClient`` serves one resource kind; its ``EndpointSpec``
says where the kind's collection lives and where the status, error text
and identifier sit in the response body.  All kinds share a single
``httpx.AsyncClient`` built by ``build_http_client``.

Every response is logged at DEBUG with the backend's request and trace
identifiers so that failures can be matched with server-side logs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from mgc_provider import __version__
from mgc_provider.clients.base import ApiError, NotFoundError, ResourceClient
from mgc_provider.core.constants import API_KEY_HEADER, REQUEST_ID_HEADER, TRACE_ID_HEADER
from mgc_provider.core.exceptions import RequestValidationError
from mgc_provider.models.resources import ResourceDetail
from mgc_provider.utils.helpers import get_path, region_url

if TYPE_CHECKING:
    from collections.abc import Mapping

    from mgc_provider.core.config import ProviderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointSpec:
    """Where a resource kind lives in the REST API.

    Attributes:
        path: Collection path; ``{parent}`` is replaced by the owner
            handle for sub-resources.
        status_field: Dotted path of the status in the detail body.
        error_field: Dotted path of the backend error text ("" if none).
        id_field: Dotted path of the identifier in create/detail bodies.
        update_method: HTTP method of a plain in-place update.
        actions: Named mutations, ``action -> (method, suffix)``.  The
            suffix is appended to the item URL and may reference fields
            of the request body (``"attach/{virtual_machine_id}"``).
        list_field: Key holding the items of a list response.
    """

    path: str
    status_field: str = "status"
    error_field: str = ""
    id_field: str = "id"
    update_method: str = "PATCH"
    actions: Mapping[str, tuple[str, str]] = field(default_factory=dict)
    list_field: str = "results"

    def collection_url(self, parent: str = "") -> str:
        """Return the collection URL, filling in *parent* where required."""
        if "{parent}" in self.path:
            if not parent:
                msg = f"endpoint {self.path!r} requires a parent id"
                raise RequestValidationError(msg)
            return self.path.replace("{parent}", parent)
        return self.path

    def item_url(self, handle: str, parent: str = "") -> str:
        """Return the URL of one resource."""
        return f"{self.collection_url(parent)}/{handle}"


class HttpResourceClient(ResourceClient):
    """REST client for one resource kind."""

    def __init__(self, kind: str, endpoint: EndpointSpec, http: httpx.AsyncClient) -> None:
        super().__init__(kind)
        self._endpoint = endpoint
        self._http = http

    @property
    def endpoint(self) -> EndpointSpec:
        """Return the endpoint description (read-only)."""
        return self._endpoint

    async def create(self, spec: Mapping[str, Any], *, parent: str = "") -> str:
        response = await self._request("POST", self._endpoint.collection_url(parent), json=dict(spec))
        body = _json(response)
        handle = get_path(body, self._endpoint.id_field, "")
        if not handle:
            msg = f"create {self.kind} response carried no {self._endpoint.id_field!r}"
            raise ApiError(
                msg,
                status_code=response.status_code,
                body=response.text,
                url=str(response.url),
                method="POST",
                request_id=response.headers.get(REQUEST_ID_HEADER, ""),
                retryable=False,
            )
        return str(handle)

    async def get(self, handle: str, *, parent: str = "") -> ResourceDetail:
        response = await self._request("GET", self._endpoint.item_url(handle, parent))
        return self._detail(_json(response), handle)

    async def update(
        self,
        handle: str,
        delta: Mapping[str, Any],
        *,
        parent: str = "",
        action: str = "",
    ) -> None:
        url = self._endpoint.item_url(handle, parent)
        method = self._endpoint.update_method
        if action:
            method, suffix = self._endpoint.actions.get(action, ("POST", action))
            url = f"{url}/{suffix.format(**delta)}"
        await self._request(method, url, json=dict(delta))

    async def delete(self, handle: str, *, parent: str = "") -> None:
        await self._request("DELETE", self._endpoint.item_url(handle, parent))

    async def list(
        self,
        *,
        parent: str = "",
        params: Mapping[str, Any] | None = None,
    ) -> list[ResourceDetail]:
        response = await self._request(
            "GET",
            self._endpoint.collection_url(parent),
            params=dict(params) if params else None,
        )
        body = _json(response)
        items = body.get(self._endpoint.list_field, []) if isinstance(body, dict) else body
        return [self._detail(item, "") for item in items or []]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _detail(self, body: Any, handle: str) -> ResourceDetail:
        if not isinstance(body, dict):
            body = {}
        error_message = ""
        if self._endpoint.error_field:
            raw = get_path(body, self._endpoint.error_field, "") or ""
            error_message = "; ".join(map(str, raw)) if isinstance(raw, list) else str(raw)
        return ResourceDetail(
            id=str(get_path(body, self._endpoint.id_field, "") or handle),
            status=str(get_path(body, self._endpoint.status_field, "") or ""),
            attributes=body,
            error_message=error_message,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, url, json=json, params=params)
        except httpx.TransportError as exc:
            msg = f"{method} {url} failed: {exc}"
            raise ApiError(msg, method=method, url=url) from exc

        if response.is_error:
            error_cls = NotFoundError if response.status_code == 404 else ApiError
            msg = f"{method} {response.url} returned HTTP {response.status_code}: {response.text}"
            raise error_cls(
                msg,
                status_code=response.status_code,
                body=response.text,
                url=str(response.url),
                method=method,
                request_id=response.headers.get(REQUEST_ID_HEADER, ""),
            )
        return response


def _json(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        msg = f"{response.request.method} {response.url} returned a non-JSON body"
        raise ApiError(
            msg,
            status_code=response.status_code,
            body=response.text,
            url=str(response.url),
            retryable=False,
        ) from exc


async def log_response(response: httpx.Response) -> None:
    """httpx response hook: log URL, status, request id and trace id."""
    logger.debug(
        "api response | method=%s | url=%s | status=%d | request_id=%s | trace_id=%s",
        response.request.method,
        response.request.url,
        response.status_code,
        response.headers.get(REQUEST_ID_HEADER, ""),
        response.headers.get(TRACE_ID_HEADER, ""),
    )


def build_http_client(
    settings: ProviderSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared ``httpx.AsyncClient`` for *settings*.

    Args:
        settings: Validated provider settings.
        transport: Optional transport override (``httpx.MockTransport`` in tests).
    """
    return httpx.AsyncClient(
        base_url=region_url(settings.region, settings.env, settings.server_url),
        headers={
            API_KEY_HEADER: settings.api_key,
            "User-Agent": f"mgc-provider/{__version__}",
        },
        timeout=settings.request_timeout_s,
        event_hooks={"response": [log_response]},
        transport=transport,
    )
