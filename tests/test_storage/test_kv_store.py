"""
Tests for Key-Value Stores

Tests for scriptscope/storage/kv_store.py
"""

import pytest

from scriptscope.core.exceptions import PersistenceError
from scriptscope.storage.kv_store import InMemoryStore, JsonFileStore


@pytest.fixture(params=["memory", "files"])
def store(request, temp_dir):
    if request.param == "memory":
        return InMemoryStore()
    return JsonFileStore(temp_dir / "kv")


class TestStoreContract:
    """Behaviour shared by every store."""

    def test_missing_key(self, store):
        assert store.get("analysis_missing") is None

    def test_set_get(self, store):
        store.set("analysis_a", {"x": [1, 2]})

        assert store.get("analysis_a") == {"x": [1, 2]}

    def test_last_write_wins(self, store):
        store.set("k", 1)
        store.set("k", 2)

        assert store.get("k") == 2

    def test_delete(self, store):
        store.set("k", 1)
        store.delete("k")
        store.delete("never_set")

        assert store.get("k") is None

    def test_keys_by_prefix(self, store):
        for key in ("analysis_b", "analysis_a", "other"):
            store.set(key, {})

        assert store.keys("analysis_") == ["analysis_a", "analysis_b"]
        assert len(store.keys()) == 3

    def test_stored_value_isolated_from_caller(self, store):
        value = {"items": [1]}
        store.set("k", value)
        value["items"].append(2)
        store.get("k")["items"].append(3)

        assert store.get("k") == {"items": [1]}


class TestInMemoryStore:

    def test_unserializable_rejected(self):
        with pytest.raises(PersistenceError):
            InMemoryStore().set("k", {"when": object()})


class TestJsonFileStore:

    def test_one_file_per_key(self, temp_dir):
        store = JsonFileStore(temp_dir)
        store.set("analysis_abc", {"a": 1})

        assert (temp_dir / "analysis_abc.json").exists()

    def test_corrupt_file_raises(self, temp_dir):
        (temp_dir / "broken.json").write_text("{nope", encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonFileStore(temp_dir).get("broken")

    def test_unsafe_key_rejected(self, temp_dir):
        with pytest.raises(PersistenceError):
            JsonFileStore(temp_dir).set("../escape", {})

    def test_missing_directory_has_no_keys(self, temp_dir):
        assert JsonFileStore(temp_dir / "absent").keys() == []
