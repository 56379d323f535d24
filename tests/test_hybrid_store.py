import asyncio
import threading

import pytest

from weatherdiary.errors import RemoteUnavailableError, SyncInProgressError
from weatherdiary.events import CLOUD_DATA_UPDATED, STORAGE_STATUS_CHANGED, EventBus
from weatherdiary.kvstore import KeyValueStore
from weatherdiary.models import StorageMode
from weatherdiary.storage.backends import InMemoryDocumentBackend
from weatherdiary.storage.hybrid import INITIALIZED_KEY, LAST_SYNC_KEY, HybridDiaryStore
from weatherdiary.storage.identity import LocalIdentity
from weatherdiary.storage.local import LocalDiaryStore
from weatherdiary.storage.remote import RemoteDiaryStore


class GatedBackend(InMemoryDocumentBackend):
    """Remote deletes block until the test releases them."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def delete(self, doc_id):
        self.release.wait(timeout=5)
        super().delete(doc_id)


class RefusingDeleteBackend(InMemoryDocumentBackend):
    def delete(self, doc_id):
        raise RemoteUnavailableError("delete rejected")


def _hybrid(clock, backend=None, *, with_remote=True, events=None, **kwargs):
    state = KeyValueStore()
    backend = backend if backend is not None else InMemoryDocumentBackend()
    local = LocalDiaryStore(state, clock=clock)
    remote = RemoteDiaryStore(backend, LocalIdentity(state), clock=clock, poll_interval=0.01) if with_remote else None
    kwargs.setdefault("reconnect_delay", 0)
    store = HybridDiaryStore(local, remote, state=state, events=events, clock=clock, **kwargs)
    return store, backend


def test_without_remote_stays_local(clock, make_draft):
    store, _ = _hybrid(clock, with_remote=False)

    async def scenario():
        status = await store.initialize()
        entry = await store.save(make_draft())
        return status, entry, await store.list()

    status, entry, listed = asyncio.run(scenario())

    assert status.mode is StorageMode.LOCAL
    assert listed == [entry]


def test_unreachable_remote_at_startup_means_local(clock):
    backend = InMemoryDocumentBackend()
    backend.available = False
    store, _ = _hybrid(clock, backend)

    status = asyncio.run(store.initialize())

    assert status.mode is StorageMode.LOCAL
    assert status.cloud_available is False


def test_hybrid_save_writes_remote_and_mirrors_locally(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        entry = await store.save(make_draft())
        return entry, await store.list()

    entry, listed = asyncio.run(scenario())

    assert store.status.mode is StorageMode.HYBRID
    assert entry.id in backend.documents
    assert store.local.get(entry.id) == entry
    assert listed == [entry]
    assert store.state.get(INITIALIZED_KEY) is True


def test_save_survives_remote_failure(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        backend.available = False
        entry = await store.save(make_draft())
        await store.wait_for_background()
        return entry, await store.list()

    entry, listed = asyncio.run(scenario())

    assert store.status.mode is StorageMode.LOCAL
    assert store.status.cloud_available is False
    assert [item.id for item in listed] == [entry.id]
    assert entry.id not in backend.documents


def test_reconnect_after_failed_save_restores_cloud(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        backend.available = False
        entry = await store.save(make_draft())
        mode_after_save = store.status.mode
        backend.available = True
        await store.wait_for_background()
        return entry, mode_after_save, await store.list()

    entry, mode_after_save, listed = asyncio.run(scenario())

    assert mode_after_save is StorageMode.LOCAL
    assert store.local.get(entry.id) is not None
    assert store.status.cloud_available is True
    assert store.status.mode is StorageMode.HYBRID
    assert [doc["timestamp"] for doc in backend.documents.values()] == [entry.timestamp_ms]
    assert len(listed) == 1


def test_reconnect_cooldown(clock):
    backend = InMemoryDocumentBackend()
    backend.available = False
    store, _ = _hybrid(clock, backend)

    async def scenario():
        await store.initialize()
        first = store.schedule_reconnect()
        await store.wait_for_background()
        blocked = store.schedule_reconnect()
        clock.advance(31)
        retried = store.schedule_reconnect()
        await store.wait_for_background()
        return first, blocked, retried

    first, blocked, retried = asyncio.run(scenario())

    assert first is not None
    assert blocked is None
    assert retried is not None


def test_delete_returns_before_remote_round_trip(clock, make_draft):
    backend = GatedBackend()
    store, _ = _hybrid(clock, backend)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        entry = await store.save(make_draft())
        deleted = await store.delete(entry.id)
        still_remote = entry.id in backend.documents
        listed = await store.list()
        backend.release.set()
        await store.wait_for_background()
        return entry, deleted, still_remote, listed

    entry, deleted, still_remote, listed = asyncio.run(scenario())

    assert deleted is True
    assert still_remote is True
    assert listed == []
    assert entry.id not in backend.documents
    assert store.local.count() == 0


def test_failed_remote_delete_keeps_entry_hidden(clock, make_draft):
    backend = RefusingDeleteBackend()
    store, _ = _hybrid(clock, backend)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        entry = await store.save(make_draft())
        await store.delete(entry.id)
        await store.wait_for_background()
        return entry, await store.list()

    entry, listed = asyncio.run(scenario())

    assert entry.id in backend.documents
    assert listed == []
    assert store.status.mode is StorageMode.HYBRID


def test_list_merges_local_only_entries(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        remote_entry = await store.save(make_draft("Remote"))
        clock.advance(120)
        offline = store.local.save(make_draft("Offline"))
        store.invalidate_cache()
        return remote_entry, offline, await store.list()

    remote_entry, offline, listed = asyncio.run(scenario())

    assert [entry.id for entry in listed] == [offline.id, remote_entry.id]


def test_read_cache_expires(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        await store.save(make_draft("First"))
        before = await store.list()
        await store.remote.save(make_draft("Elsewhere"))
        cached = await store.list()
        clock.advance(31)
        refreshed = await store.list()
        return before, cached, refreshed

    before, cached, refreshed = asyncio.run(scenario())

    assert cached == before
    assert len(refreshed) == 2


def test_initialize_uploads_offline_entries(clock, make_draft):
    store, backend = _hybrid(clock)
    store.local.save(make_draft("Offline one"))
    clock.advance(60)
    store.local.save(make_draft("Offline two"))

    async def scenario():
        await store.initialize()
        await store.wait_for_background()

    asyncio.run(scenario())

    titles = sorted(doc["title"] for doc in backend.documents.values())
    assert titles == ["Offline one", "Offline two"]
    assert store.state.get(LAST_SYNC_KEY) == int(clock() * 1000)


def test_manual_sync_uploads_only_missing_entries(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        await store.save(make_draft("Already remote"))
        clock.advance(60)
        store.local.save(make_draft("Local only"))
        first = await store.manual_sync()
        second = await store.manual_sync()
        return first, second

    first, second = asyncio.run(scenario())

    assert (first.success, first.failed, first.skipped) == (1, 0, 1)
    assert (second.success, second.skipped) == (0, 2)
    assert len(backend.documents) == 2
    assert store.should_sync() is False
    clock.advance(6 * 60)
    assert store.should_sync() is True


def test_manual_sync_preconditions(clock):
    backend = InMemoryDocumentBackend()
    backend.available = False
    store, _ = _hybrid(clock, backend)

    async def offline():
        await store.initialize()
        await store.manual_sync()

    with pytest.raises(RemoteUnavailableError):
        asyncio.run(offline())

    busy, _ = _hybrid(clock)

    async def while_syncing():
        await busy.initialize()
        await busy.wait_for_background()
        busy.status = busy.status.model_copy(update={"syncing": True})
        await busy.manual_sync()

    with pytest.raises(SyncInProgressError):
        asyncio.run(while_syncing())


def test_switch_mode(clock, make_draft):
    events = EventBus()
    cloud_updates = []
    events.subscribe(CLOUD_DATA_UPDATED, cloud_updates.append)
    store, backend = _hybrid(clock, events=events)
    local_only_store, _ = _hybrid(clock, with_remote=False)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        await store.switch_mode(StorageMode.CLOUD)
        cloud_entry = await store.save(make_draft("Cloud"))
        await store.switch_mode(StorageMode.HYBRID)
        await store.save(make_draft("Hybrid"))
        await store.close()
        return cloud_entry

    cloud_entry = asyncio.run(scenario())

    assert store.local.get(cloud_entry.id) is None
    assert len(backend.documents) == 2
    assert cloud_updates
    with pytest.raises(RemoteUnavailableError):
        asyncio.run(local_only_store.switch_mode(StorageMode.CLOUD))


def test_status_changes_are_published(clock):
    events = EventBus()
    statuses = []
    events.subscribe(STORAGE_STATUS_CHANGED, statuses.append)
    store, _ = _hybrid(clock, events=events)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()

    asyncio.run(scenario())

    assert statuses[0].mode is StorageMode.HYBRID
    assert statuses[0].cloud_available is True
    assert any(status.syncing for status in statuses)


def test_reset_state_forgets_sync_bookkeeping(clock):
    store, _ = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()

    asyncio.run(scenario())
    store.reset_state()

    assert LAST_SYNC_KEY not in store.state
    assert INITIALIZED_KEY not in store.state
    assert store.status.mode is StorageMode.LOCAL
    assert store.status.last_sync_ms is None


def test_update_reaches_both_replicas(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        entry = await store.save(make_draft())
        updated = await store.update(entry.id, {"title": "Renamed"})
        await store.switch_mode(StorageMode.CLOUD)
        cloud_only = await store.save(make_draft("Cloud"))
        from_remote = await store.update(cloud_only.id, {"content": "Edited in cloud mode."})
        return entry, updated, from_remote

    entry, updated, from_remote = asyncio.run(scenario())

    assert updated.title == "Renamed"
    assert store.local.get(entry.id).title == "Renamed"
    assert backend.documents[entry.id]["title"] == "Renamed"
    assert from_remote.content == "Edited in cloud mode."
    assert store.local.get(from_remote.id) is None


def test_recent_sync_skips_background_upload(clock, make_draft):
    state = KeyValueStore()
    backend = InMemoryDocumentBackend()
    local = LocalDiaryStore(state, clock=clock)
    local.save(make_draft("Synced yesterday"))
    last_sync = int(clock() * 1000) - 60 * 60 * 1000
    state.set(INITIALIZED_KEY, True)
    state.set(LAST_SYNC_KEY, last_sync)
    remote = RemoteDiaryStore(backend, LocalIdentity(state), clock=clock)
    store = HybridDiaryStore(local, remote, state=state, clock=clock, reconnect_delay=0)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        clock.advance(31)
        store.schedule_reconnect()
        await store.wait_for_background()

    asyncio.run(scenario())

    assert backend.documents == {}
    assert store.status.last_sync_ms == last_sync


def test_background_sync_trusts_remote_with_as_many_entries(clock, make_draft):
    state = KeyValueStore()
    backend = InMemoryDocumentBackend()
    local = LocalDiaryStore(state, clock=clock)
    local.save(make_draft("Only on this device"))
    state.set(INITIALIZED_KEY, True)
    state.set(LAST_SYNC_KEY, int(clock() * 1000) - 2 * 24 * 60 * 60 * 1000)
    remote = RemoteDiaryStore(backend, LocalIdentity(state), clock=clock)
    store = HybridDiaryStore(local, remote, state=state, clock=clock, reconnect_delay=0)

    async def scenario():
        await remote.authenticate()
        await remote.save(make_draft("Remote one"))
        await remote.save(make_draft("Remote two"))
        await store.initialize()
        await store.wait_for_background()
        after_background = len(backend.documents)
        forced = await store.manual_sync()
        return after_background, forced

    after_background, forced = asyncio.run(scenario())

    assert after_background == 2
    assert store.status.last_sync_ms == int(clock() * 1000)
    assert (forced.success, forced.failed) == (1, 0)
    assert len(backend.documents) == 3


def test_delete_reports_whether_an_entry_existed(clock, make_draft):
    store, backend = _hybrid(clock)

    async def scenario():
        await store.initialize()
        await store.wait_for_background()
        missing = await store.delete("no-such-entry")
        await store.switch_mode(StorageMode.CLOUD)
        cloud_entry = await store.save(make_draft("Cloud"))
        found = await store.delete(cloud_entry.id)
        await store.wait_for_background()
        return missing, found, cloud_entry

    missing, found, cloud_entry = asyncio.run(scenario())

    assert missing is False
    assert found is True
    assert cloud_entry.id not in backend.documents


def test_identity_write_failure_keeps_local_mode(clock):
    state = KeyValueStore(quota_bytes=10)
    remote = RemoteDiaryStore(InMemoryDocumentBackend(), LocalIdentity(state), clock=clock)
    store = HybridDiaryStore(LocalDiaryStore(state, clock=clock), remote, state=state, clock=clock, reconnect_delay=0)

    async def scenario():
        status = await store.initialize()
        store.schedule_reconnect()
        await store.wait_for_background()
        return status

    status = asyncio.run(scenario())

    assert status.mode is StorageMode.LOCAL
    assert store.status.cloud_available is False
