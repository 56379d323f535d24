import json

from weatherdiary.kvstore import KeyValueStore
from weatherdiary.storage.local import ENTRIES_KEY, LocalDiaryStore


def test_save_lists_newest_first(clock, make_draft):
    store = LocalDiaryStore(KeyValueStore(), clock=clock)
    first = store.save(make_draft("Morning"))
    clock.advance(60)
    second = store.save(make_draft("Evening"))

    assert [entry.id for entry in store.list()] == [second.id, first.id]
    assert second.timestamp_ms == first.timestamp_ms + 60_000


def test_entries_are_capped(clock, make_draft):
    store = LocalDiaryStore(KeyValueStore(), max_entries=3, clock=clock)
    for index in range(5):
        store.save(make_draft(f"Day {index}"))
        clock.advance(1)

    assert [entry.title for entry in store.list()] == ["Day 4", "Day 3", "Day 2"]
    assert len(store.state.get(ENTRIES_KEY)) == 3


def test_entries_survive_reopen(tmp_path, clock, make_draft):
    path = tmp_path / "state.json"
    saved = LocalDiaryStore(KeyValueStore(path), clock=clock).save(make_draft())

    reopened = LocalDiaryStore(KeyValueStore(path), clock=clock)

    assert reopened.get(saved.id) == saved


def test_update_and_delete(clock, make_draft):
    store = LocalDiaryStore(KeyValueStore(), clock=clock)
    entry = store.save(make_draft())

    updated = store.update(entry.id, {"title": "Renamed", "id": "ignored"})

    assert updated.id == entry.id
    assert updated.title == "Renamed"
    assert store.update("missing", {"title": "x"}) is None
    assert store.delete(entry.id) is True
    assert store.delete(entry.id) is False
    assert store.count() == 0


def test_quota_exhaustion_keeps_entries_in_memory(clock, make_draft):
    state = KeyValueStore(quota_bytes=200)
    store = LocalDiaryStore(state, clock=clock)

    entry = store.save(make_draft(content="x" * 500))

    assert store.memory_only is True
    assert store.list() == [entry]
    assert ENTRIES_KEY not in state
    store.save(make_draft("Second"))
    assert store.count() == 2


def test_export_then_import_into_empty_store(clock, make_draft):
    source = LocalDiaryStore(KeyValueStore(), clock=clock)
    source.save(make_draft("One"))
    clock.advance(1)
    source.save(make_draft("Two"))
    exported = source.export_data()

    payload = json.loads(exported)
    assert payload["version"] == "2.1.0"
    assert payload["total_entries"] == 2

    target = LocalDiaryStore(KeyValueStore(), clock=clock)
    result = target.import_data(exported)

    assert result.success is True
    assert result.imported_count == 2
    assert result.message == "成功导入 2 条日记"
    assert [entry.title for entry in target.list()] == ["Two", "One"]

    again = target.import_data(exported)
    assert again.success is False
    assert again.message == "没有发现新的日记数据"


def test_import_rejects_bad_input(clock):
    store = LocalDiaryStore(KeyValueStore(), clock=clock)

    assert store.import_data("{oops").message == "数据解析失败，请检查文件格式"
    assert store.import_data(json.dumps({"entries": "nope"})).message == "数据格式不正确"
    assert store.count() == 0


def test_import_skips_entries_without_text(clock, make_draft):
    source = LocalDiaryStore(KeyValueStore(), clock=clock)
    source.save(make_draft("Kept"))
    payload = json.loads(source.export_data())
    blank = dict(payload["entries"][0], id="blank", title="")
    payload["entries"].append(blank)

    target = LocalDiaryStore(KeyValueStore(), clock=clock)
    result = target.import_data(json.dumps(payload))

    assert result.imported_count == 1
    assert target.get("blank") is None
