"""Offline-capable client facade tests against a scripted server."""

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from restopos.client.errors import ApiError
from restopos.client.live import LiveUpdates, live_url_for
from restopos.client.pos import PosClient
from restopos.client.state import SYNC_CONFIRMED, SYNC_PENDING


class ScriptedServer:
    def __init__(self) -> None:
        self.up = True
        self.store_down = False
        self.orders: list[dict] = []
        self.menu = [{"id": 1, "category": "Appetizers", "name": "Samosa", "price": 8}]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if not self.up:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path
        if path == "/api/health":
            return httpx.Response(200, json={"status": "ok", "clients": 0, "database": "local", "timestamp": 0})
        if path == "/api/menu":
            return httpx.Response(200, json=self.menu)
        if path == "/api/orders" and request.method == "POST":
            if self.store_down:
                return httpx.Response(503, json={"detail": "Database unavailable"})
            order = {"id": len(self.orders) + 1, **json.loads(request.content)}
            self.orders.append(order)
            return httpx.Response(201, json=order)
        return httpx.Response(404, json={"detail": "Order not found"})


def _client(tmp_path: Path, server: ScriptedServer) -> PosClient:
    return PosClient("http://pos.test", tmp_path, transport=server.transport())


def test_offline_order_is_queued_then_applied_once_on_reconnect(tmp_path: Path) -> None:
    server = ScriptedServer()
    server.up = False
    items = [{"name": "Samosa", "qty": 2, "price": 8}]

    async def scenario():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        offline = client.monitor.is_online
        draft = await client.submit_order(1, "Ravi", items)
        queued = client.queue.pending_count

        server.up = True
        await client.monitor.check()
        await client.queue.join()
        confirmed = client.state.get_active_order(1)
        remaining = client.queue.pending_count
        await client.close()
        return offline, draft, queued, confirmed, remaining

    offline, draft, queued, confirmed, remaining = asyncio.run(scenario())

    assert offline is False
    assert draft["sync_state"] == SYNC_PENDING
    assert queued == 1
    assert len(server.orders) == 1
    assert server.orders[0]["items"] == items
    assert confirmed["sync_state"] == SYNC_CONFIRMED
    assert confirmed["id"] == 1
    assert remaining == 0


def test_queue_survives_client_restart(tmp_path: Path) -> None:
    server = ScriptedServer()
    server.up = False

    async def first_session():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        await client.submit_order(2, "Anita", [])
        await client.close()

    async def second_session():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        await client.queue.join()
        result = client.queue.pending_count, client.state.get_active_order(2)
        await client.close()
        return result

    asyncio.run(first_session())
    server.up = True
    remaining, draft = asyncio.run(second_session())

    assert remaining == 0
    assert len(server.orders) == 1
    assert draft["sync_state"] == SYNC_CONFIRMED


def test_online_order_is_confirmed_immediately(tmp_path: Path) -> None:
    server = ScriptedServer()

    async def scenario():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        record = await client.submit_order(3, "Ravi", [])
        pending = client.queue.pending_count
        await client.close()
        return record, pending

    record, pending = asyncio.run(scenario())

    assert record["sync_state"] == SYNC_CONFIRMED
    assert record["table_id"] == 3
    assert pending == 0


def test_reads_fall_back_to_cache_while_offline(tmp_path: Path) -> None:
    server = ScriptedServer()

    async def scenario():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        fresh = await client.get_menu()
        server.up = False
        cached = await client.get_menu()
        never_fetched = await client.get_orders()
        online = client.monitor.is_online
        await client.close()
        return fresh, cached, never_fetched, online

    fresh, cached, never_fetched, online = asyncio.run(scenario())

    assert cached == fresh == server.menu
    assert never_fetched == []
    assert online is False


def test_server_rejections_are_raised_not_queued(tmp_path: Path) -> None:
    server = ScriptedServer()

    async def scenario():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        with pytest.raises(ApiError) as excinfo:
            await client.update_order(99, {"status": "completed"})
        pending = client.queue.pending_count
        await client.close()
        return excinfo.value, pending

    error, pending = asyncio.run(scenario())

    assert error.status_code == 404
    assert error.detail == "Order not found"
    assert pending == 0


def test_store_outage_on_server_queues_the_order(tmp_path: Path) -> None:
    server = ScriptedServer()
    server.store_down = True

    async def scenario():
        client = _client(tmp_path, server)
        await client.start(poll=False, live=False)
        draft = await client.submit_order(4, "Neha", [])
        await client.queue.join()
        queued = client.queue.pending_count

        server.store_down = False
        applied = await client.queue.force_sync_all()
        confirmed = client.state.get_active_order(4)
        await client.close()
        return draft, queued, applied, confirmed

    draft, queued, applied, confirmed = asyncio.run(scenario())

    assert draft["sync_state"] == SYNC_PENDING
    assert queued == 1
    assert applied == 1
    assert [order["table_id"] for order in server.orders] == [4]
    assert confirmed["sync_state"] == SYNC_CONFIRMED


def test_live_updates_dispatch_events_to_handlers() -> None:
    live = LiveUpdates("ws://pos.test/ws")
    received: list = []

    async def on_bill(data):
        received.append(("bill", data))

    live.on("order_created", lambda data: received.append(("order", data)))
    live.on("bill_created", on_bill)

    async def scenario():
        await live.handle_message(json.dumps({"event": "order_created", "data": {"id": 1}, "timestamp": 1}))
        await live.handle_message(json.dumps({"event": "bill_created", "data": {"id": 9}, "timestamp": 2}))
        await live.handle_message("garbage")
        await live.handle_message(json.dumps({"event": "menu_updated", "data": {}}))

    asyncio.run(scenario())

    assert received == [("order", {"id": 1}), ("bill", {"id": 9})]
    assert live_url_for("https://pos.example.com/") == "wss://pos.example.com/ws"
    assert live_url_for("http://localhost:8000") == "ws://localhost:8000/ws"
