"""Request/response correlation for JSON-RPC over a byte stream.

The :class:`RequestCorrelator` owns the pending-request table of one
connection. Ids come from an :class:`IdAllocator` that is shared by every
connection of a client, so a stale response arriving after a reconnect
can never match a newer request.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from tether.protocols.errors import RequestTimeoutError, RPCError
from tether.protocols.mcp.framing import LineFramer
from tether.protocols.mcp.models import JsonRpcError

logger = logging.getLogger(__name__)

INTERNAL_ERROR = -32603

NotificationHandler = Callable[[dict[str, Any]], None]


class IdAllocator:
    """Strictly increasing request ids, unique for the allocator's lifetime."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._last = 0

    def next(self) -> int:
        self._last = next(self._counter)
        return self._last

    @property
    def last(self) -> int:
        """The most recently issued id (``0`` before the first request)."""
        return self._last


class RequestCorrelator:
    """Matches responses to outstanding requests by id.

    Every pending entry is removed *before* its future is resolved, so each
    id is resolved at most once. Anything that does not resolve a pending
    request (notifications, server-initiated requests, late responses) is
    handed to *on_notification*.
    """

    def __init__(
        self,
        ids: IdAllocator,
        *,
        label: str = "server",
        on_notification: NotificationHandler | None = None,
    ) -> None:
        self._ids = ids
        self._label = label
        self._on_notification = on_notification
        self._framer = LineFramer()
        self._pending: dict[int, asyncio.Future[Any]] = {}

    @property
    def pending_ids(self) -> frozenset[int]:
        return frozenset(self._pending)

    def open_request(self) -> tuple[int, asyncio.Future[Any]]:
        """Allocate an id and register a future awaiting its response."""
        request_id = self._ids.next()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        return request_id, future

    def discard(self, request_id: int) -> None:
        """Forget a request without resolving it (e.g. the write failed)."""
        future = self._pending.pop(request_id, None)
        if future is not None and not future.done():
            future.cancel()

    async def wait(
        self,
        request_id: int,
        future: asyncio.Future[Any],
        *,
        timeout: float,
        method: str,
    ) -> Any:
        """Await the response for *request_id*, failing after *timeout* seconds."""
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError:
            raise RequestTimeoutError(self._label, method, timeout) from None
        finally:
            self._pending.pop(request_id, None)

    def feed(self, data: bytes) -> None:
        """Consume raw stdout bytes and dispatch every complete message."""
        for message in self._framer.feed(data):
            try:
                self.dispatch(message)
            except Exception:
                logger.exception("Dropped message from %s: %s", self._label, message)

    def dispatch(self, message: dict[str, Any]) -> None:
        """Resolve the matching pending request, or forward as a notification."""
        request_id = message.get("id")
        is_response = "method" not in message and ("result" in message or "error" in message)
        future = (
            self._pending.pop(request_id, None)
            if is_response and isinstance(request_id, int) and not isinstance(request_id, bool)
            else None
        )

        if future is None:
            self._notify(message)
            return
        if future.done():
            return

        error = message.get("error")
        if error is not None:
            future.set_exception(_rpc_error(error))
        else:
            future.set_result(message.get("result"))

    def reject_all(self, exc: BaseException) -> None:
        """Fail every outstanding request with *exc* and empty the table."""
        pending = list(self._pending.items())
        self._pending.clear()
        for _, future in pending:
            if not future.done():
                future.set_exception(exc)

    def _notify(self, message: dict[str, Any]) -> None:
        if self._on_notification is None:
            logger.debug("Unhandled message from %s: %s", self._label, message)
            return
        self._on_notification(message)


def _rpc_error(error: Any) -> RPCError:
    """Build an :class:`RPCError` from a response's ``error`` member.

    A malformed error object still fails the request, as an internal error
    carrying the raw payload.
    """
    try:
        parsed = JsonRpcError.model_validate(error)
    except ValidationError:
        return RPCError(INTERNAL_ERROR, str(error))
    return RPCError(parsed.code, parsed.message, parsed.data)
