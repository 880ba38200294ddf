"""Local state cache and storage tests."""

import asyncio
from pathlib import Path

import pytest

from restopos.client.cache import OfflineListCache
from restopos.client.state import STATE_KEY, SYNC_CONFIRMED, SYNC_PENDING, LocalStateCache, QueueItem, StateDocument
from restopos.client.storage import LocalStorage


@pytest.mark.parametrize("content", ["{not json", '{"pending_sync": "nope"}', "[]"])
def test_corrupt_state_falls_back_to_defaults(tmp_path: Path, content: str) -> None:
    (tmp_path / f"{STATE_KEY}.json").write_text(content, encoding="utf-8")

    state = asyncio.run(StateDocument(LocalStorage(tmp_path)).load())

    assert state.current_role is None
    assert state.active_orders == {}
    assert state.pending_sync == []
    assert state.session_id


def test_unreadable_bytes_fall_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / f"{STATE_KEY}.json").write_bytes(b"\xff\xfe\x00garbage")

    state = asyncio.run(StateDocument(LocalStorage(tmp_path)).load())

    assert state.pending_sync == []


def test_session_and_drafts_persist_across_reload(tmp_path: Path) -> None:
    async def scenario():
        cache = LocalStateCache(StateDocument(LocalStorage(tmp_path)))
        await cache.set_session("waiter", "Ravi")
        draft = await cache.set_active_order(3, {"items": [{"name": "Tea", "quantity": 1, "price": 10}]})
        reloaded = StateDocument(LocalStorage(tmp_path))
        await reloaded.load()
        return cache.get_session(), draft, LocalStateCache(reloaded)

    session, draft, reloaded = asyncio.run(scenario())

    assert session["role"] == "waiter"
    assert session["staff"] == "Ravi"
    assert draft["sync_state"] == SYNC_PENDING
    assert reloaded.get_session() == session
    assert reloaded.get_active_order("3")["items"][0]["name"] == "Tea"


def test_confirm_replaces_draft_with_stored_record(tmp_path: Path) -> None:
    async def scenario():
        cache = LocalStateCache(StateDocument(LocalStorage(tmp_path)))
        await cache.set_active_order(1, {"staff_name": "Ravi", "items": []})
        confirmed = await cache.confirm_active_order(1, {"id": 42, "staff_name": "Ravi", "items": [], "status": "pending"})
        await cache.clear_active_order(2)
        return cache, confirmed

    cache, confirmed = asyncio.run(scenario())

    assert confirmed["id"] == 42
    assert confirmed["sync_state"] == SYNC_CONFIRMED
    assert cache.get_active_order(1) == confirmed
    assert cache.get_active_order(2) is None


def test_clear_session_keeps_queued_mutations(tmp_path: Path) -> None:
    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        cache = LocalStateCache(document)
        await cache.set_session("owner")
        await cache.set_active_order(1, {"items": []})
        document.state.pending_sync.append(QueueItem(action="create_bill", payload={"order_id": 1}))
        await cache.clear_session()
        reloaded = StateDocument(LocalStorage(tmp_path))
        return await reloaded.load()

    state = asyncio.run(scenario())

    assert state.current_role is None
    assert state.active_orders == {}
    assert [item.action for item in state.pending_sync] == ["create_bill"]


def test_close_saves_state(tmp_path: Path) -> None:
    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        cache = LocalStateCache(document, autosave_interval=60)
        cache.start()
        document.state.current_staff = "Anita"
        await cache.close()
        reloaded = StateDocument(LocalStorage(tmp_path))
        return await reloaded.load()

    assert asyncio.run(scenario()).current_staff == "Anita"


def test_autosave_persists_unsaved_changes_on_interval(tmp_path: Path) -> None:
    async def scenario():
        document = StateDocument(LocalStorage(tmp_path))
        cache = LocalStateCache(document, autosave_interval=0.01)
        document.state.current_staff = "Neha"
        cache.start()
        await asyncio.sleep(0.2)
        snapshot = await StateDocument(LocalStorage(tmp_path)).load()
        await cache.close()
        return snapshot

    assert asyncio.run(scenario()).current_staff == "Neha"


def test_storage_replaces_files_without_leaving_temporaries(tmp_path: Path) -> None:
    storage = LocalStorage(tmp_path / "nested")

    async def scenario():
        await storage.save_json("menu", [{"id": 1}])
        await asyncio.gather(*(storage.save_json("menu", [{"id": index}]) for index in range(10)))
        value = await storage.load_json("menu")
        await storage.delete("menu")
        return value, await storage.load_json("menu", default=[])

    value, after_delete = asyncio.run(scenario())

    assert value in [[{"id": index}] for index in range(10)]
    assert after_delete == []
    assert list((tmp_path / "nested").iterdir()) == []


def test_storage_rejects_path_like_keys(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        LocalStorage(tmp_path).path_for("../escape")


def test_offline_list_cache_round_trip_and_unknown_entity(tmp_path: Path) -> None:
    cache = OfflineListCache(LocalStorage(tmp_path))

    async def scenario():
        await cache.put("settings", {"num_tables": "4"})
        return await cache.get("settings"), await cache.get("orders", [])

    settings, orders = asyncio.run(scenario())

    assert settings == {"num_tables": "4"}
    assert orders == []
    with pytest.raises(ValueError):
        asyncio.run(cache.get("secrets"))
