"""Tests for request/response correlation."""

import asyncio
from typing import Any

import pytest

from tether.protocols.errors import ConnectionClosedError, RequestTimeoutError, RPCError
from tether.protocols.mcp.correlator import IdAllocator, RequestCorrelator
from tether.protocols.mcp.framing import encode_message


def _correlator() -> tuple[RequestCorrelator, list[dict[str, Any]]]:
    notifications: list[dict[str, Any]] = []
    correlator = RequestCorrelator(IdAllocator(), label="test", on_notification=notifications.append)
    return correlator, notifications


class TestIdAllocator:
    def test_ids_strictly_increase(self) -> None:
        ids = IdAllocator()
        issued = [ids.next() for _ in range(100)]
        assert issued == sorted(set(issued))
        assert issued[0] == 1
        assert ids.last == 100

    async def test_shared_across_correlators(self) -> None:
        ids = IdAllocator()
        a = RequestCorrelator(ids)
        b = RequestCorrelator(ids)
        seen = {a.open_request()[0], b.open_request()[0], a.open_request()[0], b.open_request()[0]}
        assert seen == {1, 2, 3, 4}


class TestResponseMatching:
    async def test_result_resolves_future(self) -> None:
        correlator, _ = _correlator()
        request_id, future = correlator.open_request()
        correlator.feed(encode_message({"jsonrpc": "2.0", "id": request_id, "result": {"x": 1}}))
        result = await correlator.wait(request_id, future, timeout=1.0, method="m")
        assert result == {"x": 1}
        assert correlator.pending_ids == frozenset()

    async def test_error_response_raises_rpc_error(self) -> None:
        correlator, _ = _correlator()
        request_id, future = correlator.open_request()
        correlator.dispatch(
            {"jsonrpc": "2.0", "id": request_id, "error": {"code": -32601, "message": "nope"}}
        )
        with pytest.raises(RPCError) as excinfo:
            await correlator.wait(request_id, future, timeout=1.0, method="m")
        assert excinfo.value.code == -32601
        assert "nope" in str(excinfo.value)

    async def test_out_of_order_responses(self) -> None:
        correlator, _ = _correlator()
        first = correlator.open_request()
        second = correlator.open_request()
        correlator.dispatch({"id": second[0], "result": "second"})
        correlator.dispatch({"id": first[0], "result": "first"})
        assert await correlator.wait(*first, timeout=1.0, method="m") == "first"
        assert await correlator.wait(*second, timeout=1.0, method="m") == "second"

    async def test_malformed_error_object_rejects_only_its_request(self) -> None:
        correlator, _ = _correlator()
        bad = correlator.open_request()
        good = correlator.open_request()
        correlator.feed(
            encode_message({"jsonrpc": "2.0", "id": bad[0], "error": {"code": "oops", "message": "bad"}})
            + encode_message({"jsonrpc": "2.0", "id": good[0], "result": "fine"})
        )

        with pytest.raises(RPCError) as excinfo:
            await correlator.wait(*bad, timeout=1.0, method="m")
        assert excinfo.value.code == -32603
        assert "oops" in str(excinfo.value)
        assert await correlator.wait(*good, timeout=1.0, method="m") == "fine"

    async def test_dispatch_failure_does_not_stop_feed(self) -> None:
        def explode(message: dict[str, Any]) -> None:
            raise RuntimeError("handler broke")

        correlator = RequestCorrelator(IdAllocator(), on_notification=explode)
        request_id, future = correlator.open_request()
        correlator.feed(
            encode_message({"jsonrpc": "2.0", "method": "notifications/message"})
            + encode_message({"jsonrpc": "2.0", "id": request_id, "result": 1})
        )
        assert await correlator.wait(request_id, future, timeout=1.0, method="m") == 1

    async def test_boolean_id_never_matches(self) -> None:
        correlator, notifications = _correlator()
        request_id, future = correlator.open_request()
        assert request_id == 1
        correlator.dispatch({"jsonrpc": "2.0", "id": True, "result": "wrong"})
        assert not future.done()
        assert notifications == [{"jsonrpc": "2.0", "id": True, "result": "wrong"}]

    async def test_unmatched_messages_become_notifications(self) -> None:
        correlator, notifications = _correlator()
        correlator.dispatch({"jsonrpc": "2.0", "method": "notifications/message", "params": {}})
        correlator.dispatch({"jsonrpc": "2.0", "id": 999, "result": {}})
        correlator.dispatch({"jsonrpc": "2.0", "id": 5, "method": "ping"})
        assert [n.get("method") for n in notifications] == ["notifications/message", None, "ping"]


class TestTimeout:
    async def test_timeout_raises_and_clears_entry(self) -> None:
        correlator, _ = _correlator()
        request_id, future = correlator.open_request()
        with pytest.raises(RequestTimeoutError) as excinfo:
            await correlator.wait(request_id, future, timeout=0.05, method="tools/call")
        assert excinfo.value.method == "tools/call"
        assert request_id not in correlator.pending_ids

    async def test_late_response_is_a_no_op(self) -> None:
        correlator, notifications = _correlator()
        request_id, future = correlator.open_request()
        with pytest.raises(RequestTimeoutError):
            await correlator.wait(request_id, future, timeout=0.05, method="m")

        correlator.dispatch({"id": request_id, "result": "too late"})

        assert future.cancelled()
        assert notifications == [{"id": request_id, "result": "too late"}]

    async def test_other_requests_unaffected_by_timeout(self) -> None:
        correlator, _ = _correlator()
        slow = correlator.open_request()
        fast = correlator.open_request()

        async def answer() -> None:
            await asyncio.sleep(0.01)
            correlator.dispatch({"id": fast[0], "result": "ok"})

        task = asyncio.create_task(answer())
        assert await correlator.wait(*fast, timeout=1.0, method="m") == "ok"
        with pytest.raises(RequestTimeoutError):
            await correlator.wait(*slow, timeout=0.05, method="m")
        await task


class TestRejectAll:
    async def test_rejects_every_pending_request(self) -> None:
        correlator, _ = _correlator()
        requests = [correlator.open_request() for _ in range(3)]
        correlator.reject_all(ConnectionClosedError("test"))
        assert correlator.pending_ids == frozenset()
        for request_id, future in requests:
            with pytest.raises(ConnectionClosedError):
                await correlator.wait(request_id, future, timeout=1.0, method="m")

    async def test_discard_cancels_without_resolving(self) -> None:
        correlator, _ = _correlator()
        request_id, future = correlator.open_request()
        correlator.discard(request_id)
        assert future.cancelled()
        assert request_id not in correlator.pending_ids
