"""Tests for shellfolio.storage module."""

import json
import threading

from shellfolio.storage import (
    CreatedFileOverlay,
    HighScoreStore,
    JsonStore,
    open_high_score,
    open_overlay,
)


class TestJsonStore:
    """Tests for the JSON document wrapper."""

    def test_missing_file_returns_default(self, tmp_path):
        """A missing file loads as the default."""
        store = JsonStore(tmp_path / "absent.json", "test")
        assert store.load({"x": 1}) == {"x": 1}

    def test_empty_file_returns_default(self, tmp_path):
        """An empty file loads as the default."""
        path = tmp_path / "empty.json"
        path.write_text("   ", encoding="utf-8")
        assert JsonStore(path, "test").load([]) == []

    def test_malformed_file_returns_default(self, tmp_path):
        """Invalid JSON loads as the default."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonStore(path, "test").load({}) == {}

    def test_save_and_load(self, tmp_path):
        """Saved documents load back."""
        store = JsonStore(tmp_path / "nested" / "doc.json", "test")
        assert store.save({"a": "b"}) is True
        assert store.load({}) == {"a": "b"}

    def test_save_leaves_no_temp_files(self, tmp_path):
        """Atomic writes leave no temp files behind."""
        JsonStore(tmp_path / "doc.json", "test").save({"a": 1})
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_failed_write_returns_false(self, tmp_path):
        """Write failures are reported, not raised."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        store = JsonStore(blocker / "doc.json", "test")
        assert store.save({"a": 1}) is False


class TestCreatedFileOverlay:
    """Tests for the created-file overlay."""

    def test_in_memory_overlay(self):
        """An overlay without a store works in memory."""
        overlay = CreatedFileOverlay()
        overlay.set("/a.txt", "hi")
        assert "/a.txt" in overlay
        assert overlay.get("/a.txt") == "hi"
        assert len(overlay) == 1
        assert list(overlay) == ["/a.txt"]

    def test_set_persists_immediately(self, tmp_path):
        """set writes the document at once."""
        path = tmp_path / "files.json"
        overlay = open_overlay(path)
        overlay.set("projects/todo", "ship it")
        assert json.loads(path.read_text(encoding="utf-8")) == {"projects/todo": "ship it"}

    def test_loads_existing_entries(self, tmp_path):
        """Existing entries load at open."""
        path = tmp_path / "files.json"
        path.write_text(json.dumps({"/notes": "kept"}), encoding="utf-8")
        assert open_overlay(path).get("/notes") == "kept"

    def test_non_mapping_document_starts_empty(self, tmp_path):
        """A document that is not a mapping is ignored."""
        path = tmp_path / "files.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        assert len(open_overlay(path)) == 0

    def test_missing_key(self):
        """An unknown key reads as None."""
        assert CreatedFileOverlay().get("/nope") is None


class TestHighScoreStore:
    """Tests for the high score record."""

    def test_defaults_to_zero(self, tmp_path):
        """No record means a high score of zero."""
        assert open_high_score(tmp_path / "score.json").value == 0

    def test_save_persists(self, tmp_path):
        """A saved score reaches disk and reloads."""
        path = tmp_path / "score.json"
        open_high_score(path).save(120)
        assert json.loads(path.read_text(encoding="utf-8")) == {"high_score": 120}
        assert open_high_score(path).value == 120

    def test_malformed_value_ignored(self, tmp_path):
        """A non-numeric score is ignored."""
        path = tmp_path / "score.json"
        path.write_text('{"high_score": "lots"}', encoding="utf-8")
        assert open_high_score(path).value == 0

    def test_in_memory_store(self):
        """A store without a file keeps the score in memory."""
        store = HighScoreStore()
        store.save(30)
        assert store.value == 30

    def test_lower_score_is_not_saved(self, tmp_path):
        """A score at or below the best is refused and leaves the file alone."""
        path = tmp_path / "score.json"
        store = open_high_score(path)
        assert store.save(80) is True
        assert store.save(50) is False
        assert store.save(80) is False
        assert store.value == 80
        assert json.loads(path.read_text(encoding="utf-8")) == {"high_score": 80}


class TestSharedOverlay:
    """One overlay written from several session threads."""

    def test_concurrent_sets_all_persist(self, tmp_path):
        """Every thread's file ends up in the stored document."""
        path = tmp_path / "files.json"
        overlay = open_overlay(path)

        def create(index):
            overlay.set(f"/visitor{index}.txt", str(index))

        threads = [threading.Thread(target=create, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored == {f"/visitor{i}.txt": str(i) for i in range(8)}
