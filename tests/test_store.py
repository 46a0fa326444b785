"""Tests for loading and flushing the memory document."""

from __future__ import annotations

import json

from presence.models import Memory, Speaker
from presence.store import MemoryStore


class TestMemoryStore:

    def test_missing_file_gives_empty_memory(self, tmp_path):
        mem = MemoryStore(tmp_path / "absent.json").load()
        assert mem == Memory()

    def test_corrupted_file_recovery(self, tmp_path, caplog):
        path = tmp_path / "memory.json"
        path.write_text("{invalid json!!!")
        with caplog.at_level("ERROR", logger="presence.store"):
            mem = MemoryStore(path).load()
        assert mem.faces == []
        assert "Could not load memory" in caplog.text

    def test_invalid_utf8_recovery(self, tmp_path, caplog):
        path = tmp_path / "memory.json"
        path.write_bytes(b'{"faces": [], "x": "\xff\xfe"}')
        with caplog.at_level("ERROR", logger="presence.store"):
            mem = MemoryStore(path).load()
        assert mem == Memory()
        assert "Could not load memory" in caplog.text

    def test_wrong_shape_recovery(self, tmp_path):
        path = tmp_path / "memory.json"
        path.write_text(json.dumps({"faces": "not a list"}))
        assert MemoryStore(path).load().faces == []

    def test_faces_roundtrip_in_order(self, tmp_path):
        store = MemoryStore(tmp_path / "memory.json")
        mem = Memory()
        names = [f"person{i}" for i in range(5)]
        for i, name in enumerate(names):
            mem.remember_face(name, [float(i)] * 4)
        assert store.flush(mem)

        loaded = store.load()
        assert loaded.face_names == names
        assert [f.descriptor for f in loaded.faces] == [[float(i)] * 4 for i in range(5)]

    def test_full_roundtrip(self, tmp_path):
        store = MemoryStore(tmp_path / "memory.json")
        mem = Memory(last_emotion="happy", last_face_descriptor=[0.5, 0.25])
        mem.log(Speaker.USER, "включи свет", now=10)
        mem.log(Speaker.ASSISTANT, "Свет включен.", now=11)
        mem.state.light = True
        mem.last_spatial_frame = {"points": [[0, 1, 2]]}
        store.flush(mem)
        assert store.load() == mem

    def test_flush_creates_parent_dirs(self, tmp_path):
        store = MemoryStore(tmp_path / "nested" / "dir" / "memory.json")
        assert store.flush(Memory())
        assert store.path.exists()

    def test_flush_writes_utf8_document(self, tmp_path):
        store = MemoryStore(tmp_path / "memory.json")
        mem = Memory()
        mem.remember_face("Анна", [0.1])
        store.flush(mem)
        text = store.path.read_text(encoding="utf-8")
        assert "Анна" in text
        assert json.loads(text)["faces"][0]["name"] == "Анна"

    def test_flush_failure_returns_false(self, tmp_path, monkeypatch, caplog):
        store = MemoryStore(tmp_path / "memory.json")
        store.flush(Memory())

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("presence.store.os.replace", boom)
        mem = Memory()
        mem.remember_face("Анна", [0.1])
        with caplog.at_level("ERROR", logger="presence.store"):
            assert store.flush(mem) is False
        assert "disk full" in caplog.text
        # previous document untouched, no temp files left behind
        monkeypatch.undo()
        assert store.load().faces == []
        assert [p.name for p in tmp_path.iterdir()] == ["memory.json"]
