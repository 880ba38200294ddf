"""Offline sync queue tests."""

import asyncio
from pathlib import Path

from restopos.client.state import QueueItem, StateDocument
from restopos.client.storage import LocalStorage
from restopos.client.sync_queue import SyncAction, SyncQueue


class RecordingDispatch:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: list[tuple[SyncAction, dict]] = []

    async def __call__(self, action: SyncAction, payload: dict) -> dict:
        self.calls.append((action, payload))
        if self.failures:
            self.failures -= 1
            raise ConnectionError("server unreachable")
        return {"id": len(self.calls), **payload}


def test_queued_items_survive_restart_and_apply_once(tmp_path: Path) -> None:
    online = False
    dispatch = RecordingDispatch()

    async def before_restart():
        document = StateDocument(LocalStorage(tmp_path))
        await document.load()
        queue = SyncQueue(document, dispatch, is_online=lambda: online)
        await queue.enqueue(SyncAction.CREATE_ORDER, {"table_id": 1, "staff_name": "Ravi", "items": []})
        await queue.enqueue(SyncAction.CREATE_BILL, {"order_id": 1, "total": 10})
        return queue.pending_count

    async def after_restart():
        document = StateDocument(LocalStorage(tmp_path))
        await document.load()
        queue = SyncQueue(document, dispatch, is_online=lambda: online)
        reloaded = [item.action for item in queue.pending]
        applied = await queue.drain()
        again = await queue.drain()
        return reloaded, applied, again, queue.pending_count, document.state.last_sync

    queued = asyncio.run(before_restart())
    online = True
    reloaded, applied, again, remaining, last_sync = asyncio.run(after_restart())

    assert queued == 2
    assert dispatch.calls[0][0] is SyncAction.CREATE_ORDER
    assert reloaded == ["create_order", "create_bill"]
    assert (applied, again, remaining) == (2, 0, 0)
    assert [action for action, _ in dispatch.calls] == [SyncAction.CREATE_ORDER, SyncAction.CREATE_BILL]
    assert last_sync is not None


def test_item_is_abandoned_after_max_retries(tmp_path: Path) -> None:
    dispatch = RecordingDispatch(failures=10)
    abandoned: list[QueueItem] = []

    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        queue = SyncQueue(document, dispatch, is_online=lambda: False, on_abandoned=abandoned.append)
        await queue.enqueue(SyncAction.UPDATE_ORDER, {"id": 5, "updates": {"status": "completed"}})
        attempts = []
        for _ in range(3):
            await queue.drain()
            attempts.append([item.retries for item in queue.pending])
        extra = await queue.drain()
        return queue, attempts, extra

    queue, attempts, extra = asyncio.run(scenario())

    assert attempts == [[1], [2], []]
    assert extra == 0
    assert len(dispatch.calls) == 3
    assert queue.needs_attention is True
    assert [item.retries for item in queue.abandoned] == [3]
    assert queue.abandoned[0].state == "abandoned"
    assert queue.abandoned[0].last_error == "server unreachable"
    assert [item.action for item in abandoned] == ["update_order"]


def test_retry_and_dismiss_abandoned_items(tmp_path: Path) -> None:
    dispatch = RecordingDispatch(failures=2)

    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        queue = SyncQueue(document, dispatch, is_online=lambda: False, max_retries=1)
        first = await queue.enqueue(SyncAction.CREATE_BILL, {"order_id": 1})
        second = await queue.enqueue(SyncAction.CREATE_BILL, {"order_id": 2})
        await queue.drain()
        retried = await queue.retry_abandoned(first.id)
        applied = await queue.force_sync_all()
        dismissed = await queue.dismiss_abandoned(second.id)
        dismissed_twice = await queue.dismiss_abandoned(second.id)
        unknown = await queue.retry_abandoned("missing")
        return queue, retried, applied, dismissed, dismissed_twice, unknown

    queue, retried, applied, dismissed, dismissed_twice, unknown = asyncio.run(scenario())

    assert retried.retries == 0
    assert retried.state == "queued"
    assert applied == 1
    assert (dismissed, dismissed_twice) == (True, False)
    assert unknown is None
    assert queue.pending_count == 0
    assert queue.needs_attention is False


def test_unknown_actions_are_dropped(tmp_path: Path) -> None:
    dispatch = RecordingDispatch()

    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        document.state.pending_sync.append(QueueItem(action="refund_bill", payload={"id": 1}))
        queue = SyncQueue(document, dispatch, is_online=lambda: False)
        applied = await queue.drain()
        return queue, applied

    queue, applied = asyncio.run(scenario())

    assert applied == 0
    assert dispatch.calls == []
    assert queue.pending_count == 0
    assert queue.abandoned == []


def test_in_flight_items_are_requeued_on_load(tmp_path: Path) -> None:
    storage = LocalStorage(tmp_path)

    async def scenario():
        document = StateDocument(storage)
        document.state.pending_sync.append(QueueItem(action="create_order", state="in_flight"))
        await document.save()
        reloaded = StateDocument(storage)
        await reloaded.load()
        return reloaded.state.pending_sync

    items = asyncio.run(scenario())

    assert [item.state for item in items] == ["queued"]


def test_enqueue_while_online_drains_in_background(tmp_path: Path) -> None:
    dispatch = RecordingDispatch()
    applied: list[tuple[str, dict]] = []

    async def on_applied(item: QueueItem, record: dict) -> None:
        applied.append((item.action, record))

    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        queue = SyncQueue(document, dispatch, on_applied=on_applied)
        await queue.enqueue(SyncAction.CREATE_KITCHEN_ORDER, {"order_id": 1})
        await queue.enqueue(SyncAction.UPDATE_KITCHEN_ORDER, {"id": 1, "updates": {"status": "ready"}})
        await queue.join()
        return queue.pending_count

    remaining = asyncio.run(scenario())

    assert remaining == 0
    assert [action for action, _ in applied] == ["create_kitchen_order", "update_kitchen_order"]
    assert applied[0][1] == {"id": 1, "order_id": 1}


def test_failing_item_does_not_hold_back_its_sibling(tmp_path: Path) -> None:
    calls: list[dict] = []

    async def dispatch(action: SyncAction, payload: dict) -> dict:
        calls.append(payload)
        if payload.get("poison"):
            raise ValueError("rejected")
        return payload

    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        queue = SyncQueue(document, dispatch, is_online=lambda: False)
        await queue.enqueue(SyncAction.CREATE_BILL, {"order_id": 1, "poison": True})
        await queue.enqueue(SyncAction.CREATE_BILL, {"order_id": 2})
        results = [await queue.drain() for _ in range(4)]
        return queue, results

    queue, results = asyncio.run(scenario())

    assert results == [1, 0, 0, 0]
    assert [payload["order_id"] for payload in calls] == [1, 2, 1, 1]
    assert queue.pending_count == 0
    assert [item.payload["order_id"] for item in queue.abandoned] == [1]
