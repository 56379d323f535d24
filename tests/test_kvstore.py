import pytest

from weatherdiary.errors import StorageQuotaError
from weatherdiary.kvstore import KeyValueStore


def test_values_survive_reopen(tmp_path):
    path = tmp_path / "state.json"
    KeyValueStore(path).set("weather_current_source", "amap")

    assert KeyValueStore(path).get("weather_current_source") == "amap"


def test_get_returns_a_copy():
    store = KeyValueStore()
    store.set("entries", [{"id": "a"}])

    store.get("entries").append({"id": "b"})

    assert store.get("entries") == [{"id": "a"}]


def test_quota_rejects_write_and_keeps_previous_value():
    store = KeyValueStore(quota_bytes=40)
    store.set("k", "short")

    with pytest.raises(StorageQuotaError) as excinfo:
        store.set("k", "x" * 100)

    assert excinfo.value.quota == 40
    assert store.get("k") == "short"


def test_remove_and_keys():
    store = KeyValueStore()
    store.set("a", 1)
    store.set("b", 2)

    store.remove("a")
    store.remove("missing")

    assert store.keys() == ["b"]
    assert "a" not in store


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    store = KeyValueStore(path)

    assert store.keys() == []
    store.set("a", 1)
    assert KeyValueStore(path).get("a") == 1
