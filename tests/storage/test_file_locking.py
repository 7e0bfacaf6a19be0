"""
Tests for locked JSON files and LocalStorage.
"""

import json
from concurrent.futures import ThreadPoolExecutor

from exam_studio.storage import LocalStorage
from exam_studio.storage.file_locking import (
    locked_read_json,
    locked_read_modify_write_json,
    locked_write_json,
)


class TestLockedJson:
    """Tests for the JSON helpers."""

    def test_read_when_missing_then_default(self, tmp_path):
        assert locked_read_json(tmp_path / "missing.json") == {}

    def test_read_when_corrupt_then_default(self, tmp_path, caplog):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        assert locked_read_json(path) == {}
        assert "corrupt JSON" in caplog.text

    def test_read_when_list_document_then_default(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert locked_read_json(path) == {}

    def test_write_when_nested_dir_then_created(self, tmp_path):
        path = tmp_path / "a" / "b" / "state.json"
        locked_write_json(path, {"name": "परीक्षा"})

        assert json.loads(path.read_text(encoding="utf-8")) == {"name": "परीक्षा"}

    def test_read_modify_write_when_concurrent_then_no_lost_updates(self, tmp_path):
        path = tmp_path / "counter.json"
        locked_write_json(path, {"count": 0})

        def bump(_):
            def modifier(data):
                data["count"] = data.get("count", 0) + 1
                return data
            locked_read_modify_write_json(path, modifier)

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(bump, range(20)))

        assert locked_read_json(path)["count"] == 20


class TestLocalStorage:
    """Tests for the key/value store."""

    def test_set_item_when_read_back_then_string(self, tmp_path):
        store = LocalStorage(tmp_path / "ls.json")
        store.set_item("auth_token", "abc")

        assert store.get_item("auth_token") == "abc"
        assert store.get_item("missing") is None

    def test_remove_item_when_present_then_gone(self, tmp_path):
        store = LocalStorage(tmp_path / "ls.json")
        store.set_item("a", "1")
        store.set_item("b", "2")
        store.remove_item("a")

        assert store.keys() == ["b"]

    def test_clear_when_called_then_empty(self, tmp_path):
        store = LocalStorage(tmp_path / "ls.json")
        store.set_item("a", "1")
        store.clear()
        assert store.keys() == []

    def test_instances_when_same_path_then_share_state(self, tmp_path):
        LocalStorage(tmp_path / "ls.json").set_item("auth_token", "shared")
        assert LocalStorage(tmp_path / "ls.json").get_item("auth_token") == "shared"
