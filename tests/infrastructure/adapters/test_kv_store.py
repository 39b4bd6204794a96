import pytest

from cekatan.infrastructure.adapters.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(tmp_path / "kv")


def test_get_missing(store):
    assert store.get("absent") is None


def test_set_then_get(store):
    store.set("autoscan_state_d_s", '{"a": 1}')
    assert store.get("autoscan_state_d_s") == '{"a": 1}'


def test_set_overwrites(store):
    store.set("k", "one")
    store.set("k", "two")
    assert store.get("k") == "two"


def test_delete_is_idempotent(store):
    store.set("k", "v")
    store.delete("k")
    store.delete("k")
    assert store.get("k") is None


def test_keys(store):
    store.set("b", "1")
    store.set("a", "2")
    assert store.keys() == ["a", "b"]


def test_file_store_sanitizes_keys(tmp_path):
    store = JsonFileKeyValueStore(tmp_path)

    store.set("../escape/attempt", "v")

    path = store.path_for("../escape/attempt")
    assert path.parent == tmp_path
    assert path.read_text(encoding="utf-8") == "v"


def test_file_store_leaves_no_temp_files(tmp_path):
    store = JsonFileKeyValueStore(tmp_path)
    store.set("k", "v")
    assert [p.name for p in tmp_path.iterdir()] == ["k.json"]


def test_file_store_unreadable_file_reads_as_missing(tmp_path):
    store = JsonFileKeyValueStore(tmp_path)
    store.path_for("k").write_bytes(b"\xff\xfe\xfa")
    assert store.get("k") is None


def test_file_store_without_root_has_no_keys(tmp_path):
    assert JsonFileKeyValueStore(tmp_path / "missing").keys() == []


def test_memory_store_initial_contents():
    assert InMemoryKeyValueStore({"k": "v"}).get("k") == "v"
