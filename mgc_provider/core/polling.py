"""Poll driver -- wait for an asynchronously provisioned resource.

After a mutating call returns, the backend keeps working on the resource
and only exposes progress through its status field.  ``poll_until``
fetches the resource repeatedly, classifies each observed status and
returns once the resource reaches a target status, enters an error
status, or the deadline passes.

Timing:
    The first fetch happens immediately; the driver only waits *between*
    fetches.  The deadline is absolute (session start + ``timeout``) and
    also bounds each individual fetch.  Waits are ``asyncio.sleep`` calls,
    so cancelling the calling task aborts the session at once; an optional
    ``asyncio.Event`` gives callers a cooperative cancel signal as well.

Transient fetch errors:
    With ``transient_retries=0`` (the default) any fetch error ends the
    session.  A positive value tolerates that many consecutive transient
    errors, waiting ``retry_base * 2 ** (n - 1)`` seconds (capped by the
    deadline) before retry *n*.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import TYPE_CHECKING

from mgc_provider.clients.base import is_not_found, is_transient
from mgc_provider.core.exceptions import (
    PollCancelledError,
    PollTimeoutError,
    ResourceStatusError,
)
from mgc_provider.models.status import StatusClass

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection

    from mgc_provider.models.resources import ResourceDetail

logger = logging.getLogger(__name__)


class PollMode(enum.Enum):
    """What ends a poll session successfully.

    Values:
        CONVERGE: A target status (create/update). Any fetch error is fatal.
        DELETE:   A target status *or* a "not found" fetch error.
    """

    CONVERGE = "converge"
    DELETE = "delete"


async def poll_until(
    fetch: Callable[[], Awaitable[ResourceDetail]],
    *,
    handle: str,
    kind: str,
    targets: Collection[str],
    classify: Callable[[str, Collection[str]], StatusClass],
    timeout: float,
    interval: float,
    mode: PollMode = PollMode.CONVERGE,
    ready: Callable[[ResourceDetail], bool] | None = None,
    cancel: asyncio.Event | None = None,
    transient_retries: int = 0,
    retry_base: float = 5.0,
    operation: str = "",
) -> ResourceDetail | None:
    """Fetch until the resource reaches one of *targets*.

    Args:
        fetch: Zero-argument coroutine function returning the current detail.
        handle: Remote resource handle (for errors and logs).
        kind: Resource kind (for errors and logs).
        targets: Status values that end the session successfully.  May be
            empty in ``DELETE`` mode when only "not found" ends it.
        classify: ``(status, targets) -> StatusClass``.
        timeout: Overall session timeout in seconds (> 0).
        interval: Wait between fetches in seconds (>= 0).
        mode: ``CONVERGE`` or ``DELETE``.
        ready: Auxiliary readiness predicate; a target status whose detail
            fails it is treated as pending.
        cancel: Optional cancel signal checked before every fetch and
            while waiting.
        transient_retries: Consecutive transient fetch errors tolerated.
        retry_base: Exponential backoff base in seconds.
        operation: Lifecycle operation that started the session.

    Returns:
        The detail that reached a target status, or ``None`` when a
        ``DELETE`` session ended on "not found".

    Raises:
        ResourceStatusError: The resource entered an error status, or was
            still reporting an unrecognised status when the deadline passed.
        PollTimeoutError: The deadline passed while the status was pending.
        PollCancelledError: *cancel* was set.
        Exception: Whatever *fetch* raised, when it is fatal in *mode*.
    """
    if timeout <= 0:
        msg = f"poll timeout must be > 0, got {timeout!r}"
        raise ValueError(msg)
    if interval < 0:
        msg = f"poll interval must be >= 0, got {interval!r}"
        raise ValueError(msg)

    targets = tuple(targets)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    poll_count = 0
    retry_count = 0
    last_status = ""
    last_class: StatusClass | None = None

    logger.info(
        "poll started | kind=%s | handle=%s | targets=%s | mode=%s | timeout=%gs | interval=%gs",
        kind,
        handle,
        ",".join(targets),
        mode.value,
        timeout,
        interval,
    )

    while True:
        if cancel is not None and cancel.is_set():
            raise PollCancelledError(kind, handle, operation=operation)

        poll_count += 1
        bound = asyncio.timeout_at(deadline)
        try:
            async with bound:
                detail = await fetch()
        except TimeoutError:
            if not bound.expired():
                raise
            break
        except Exception as exc:
            if mode is PollMode.DELETE and is_not_found(exc):
                logger.info(
                    "poll finished | kind=%s | handle=%s | outcome=not_found | polls=%d",
                    kind,
                    handle,
                    poll_count,
                )
                return None

            if retry_count < transient_retries and is_transient(exc):
                retry_count += 1
                backoff = retry_base * (2 ** (retry_count - 1))
                logger.warning(
                    "poll fetch failed (retry %d/%d) | kind=%s | handle=%s | backoff=%gs | error=%s",
                    retry_count,
                    transient_retries,
                    kind,
                    handle,
                    backoff,
                    exc,
                )
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                await _wait(min(backoff, remaining), cancel, kind, handle, operation)
                if loop.time() >= deadline:
                    break
                continue

            logger.warning(
                "poll fetch failed | kind=%s | handle=%s | polls=%d | error=%s",
                kind,
                handle,
                poll_count,
                exc,
            )
            raise

        retry_count = 0
        last_status = detail.status
        last_class = classify(detail.status, targets)

        if last_class is StatusClass.SUCCESS and ready is not None and not ready(detail):
            logger.debug(
                "poll target reached but not ready | kind=%s | handle=%s | status=%s",
                kind,
                handle,
                detail.status,
            )
            last_class = StatusClass.PENDING

        if last_class is StatusClass.SUCCESS:
            logger.info(
                "poll finished | kind=%s | handle=%s | status=%s | polls=%d",
                kind,
                handle,
                detail.status,
                poll_count,
            )
            return detail

        if last_class is StatusClass.ERROR:
            logger.warning(
                "poll error state | kind=%s | handle=%s | status=%s | error=%s",
                kind,
                handle,
                detail.status,
                detail.error_message,
            )
            raise ResourceStatusError(
                kind,
                handle,
                detail.status,
                detail=detail.error_message,
                operation=operation,
            )

        logger.debug(
            "poll tick | kind=%s | handle=%s | status=%s | class=%s | poll_count=%d",
            kind,
            handle,
            detail.status,
            last_class.value,
            poll_count,
        )

        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        await _wait(min(interval, remaining), cancel, kind, handle, operation)
        if loop.time() >= deadline:
            break

    if last_class is StatusClass.UNKNOWN:
        logger.warning(
            "poll timed out on unrecognised status | kind=%s | handle=%s | status=%s | polls=%d",
            kind,
            handle,
            last_status,
            poll_count,
        )
        raise ResourceStatusError(
            kind,
            handle,
            last_status,
            detail=f"status not recognised after {timeout:g}s",
            operation=operation,
        )

    logger.warning(
        "poll timed out | kind=%s | handle=%s | last_status=%s | polls=%d",
        kind,
        handle,
        last_status,
        poll_count,
    )
    raise PollTimeoutError(
        kind,
        handle,
        targets,
        last_status=last_status,
        timeout=timeout,
        poll_count=poll_count,
        operation=operation,
    )


async def _wait(
    delay: float,
    cancel: asyncio.Event | None,
    kind: str,
    handle: str,
    operation: str,
) -> None:
    """Sleep for *delay* seconds, returning early with an error if *cancel* is set."""
    if cancel is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return
    raise PollCancelledError(kind, handle, operation=operation)
