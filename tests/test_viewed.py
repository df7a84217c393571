"""Tests for the persisted viewed-itinerary set."""

import json

from tripmatch.storage import JsonSlot
from tripmatch.viewed import ViewedSet, normalize_viewed


class TestNormalizeViewed:
    def test_plain_ids(self):
        assert normalize_viewed(["a", "b"]) == ["a", "b"]

    def test_legacy_objects(self):
        assert normalize_viewed([{"id": "a"}, {"id": "b", "viewedAt": 1}]) == ["a", "b"]

    def test_discards_junk_and_duplicates(self):
        raw = ["a", "", "  ", None, 7, {"id": ""}, {"name": "x"}, "a"]
        assert normalize_viewed(raw) == ["a"]

    def test_non_list_blob(self):
        assert normalize_viewed({"a": 1}) == []
        assert normalize_viewed("a,b") == []


class TestViewedSet:
    def test_starts_empty(self, viewed):
        assert len(viewed) == 0
        assert viewed.ids() == []

    def test_add_persists(self, tmp_path):
        path = tmp_path / "viewed.json"
        ViewedSet(path).add("itin-1")
        assert json.loads(path.read_text()) == ["itin-1"]
        assert "itin-1" in ViewedSet(path)

    def test_add_is_idempotent(self, viewed):
        viewed.add("x")
        viewed.add("x")
        assert viewed.ids() == ["x"]

    def test_ignores_empty_ids(self, viewed):
        viewed.add("")
        assert len(viewed) == 0

    def test_corrupted_blob_treated_as_empty(self, tmp_path):
        path = tmp_path / "viewed.json"
        path.write_text("invalid-json{", encoding="utf-8")
        viewed = ViewedSet(path)
        assert viewed.ids() == []
        viewed.add("new")
        assert json.loads(path.read_text()) == ["new"]

    def test_legacy_blob_normalized_on_load(self, tmp_path):
        path = tmp_path / "viewed.json"
        path.write_text(json.dumps([{"id": "old-1"}, "old-2"]), encoding="utf-8")
        assert ViewedSet(path).ids() == ["old-1", "old-2"]

    def test_add_merges_other_writers(self, tmp_path):
        path = tmp_path / "viewed.json"
        first = ViewedSet(path)
        second = ViewedSet(path)
        first.add("a")
        second.add("b")
        assert json.loads(path.read_text()) == ["a", "b"]

    def test_write_failure_keeps_memory(self, viewed, monkeypatch):
        def _boom(self, value):
            raise OSError("disk full")

        monkeypatch.setattr(JsonSlot, "write", _boom)
        viewed.add("x")
        assert "x" in viewed

    def test_clear(self, viewed):
        viewed.add("x")
        viewed.clear()
        assert len(viewed) == 0
        assert not viewed.path.exists()


class TestJsonSlot:
    def test_missing_returns_default(self, tmp_path):
        assert JsonSlot(tmp_path / "nope.json").read(default=[]) == []

    def test_write_creates_parent_dirs(self, tmp_path):
        slot = JsonSlot(tmp_path / "a" / "b" / "slot.json")
        slot.write({"k": 1})
        assert slot.read() == {"k": 1}

    def test_no_temp_files_left_behind(self, tmp_path):
        slot = JsonSlot(tmp_path / "slot.json")
        slot.write([1, 2])
        assert [p.name for p in tmp_path.iterdir()] == ["slot.json"]

    def test_remove_missing_is_noop(self, tmp_path):
        JsonSlot(tmp_path / "nope.json").remove()
