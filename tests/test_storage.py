"""Unit tests for notes_api.storage — JSON file persistence."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import pytest

from notes_api.errors import PersistenceError
from notes_api.models import Note
from notes_api.storage import NoteFileStorage

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def notes_path(tmp_path: Path) -> Path:
    return tmp_path / "notes.json"


@pytest.fixture()
def sample_notes() -> list[Note]:
    stamp = datetime(2024, 3, 1, 9, 0, 0, 123456, tzinfo=UTC)
    return [
        Note(id=1, title="A", content="aaa", tags=["x"], created_at=stamp, updated_at=stamp),
        Note(id=3, title="B", content="bbb", tags=[], created_at=stamp, updated_at=stamp),
    ]


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------


class TestLoad:
    def test_missing_file_is_empty(self, notes_path: Path) -> None:
        storage = NoteFileStorage(notes_path)
        assert storage.load() == []
        assert not notes_path.exists()

    def test_corrupt_file_is_empty(self, notes_path: Path) -> None:
        notes_path.write_text("{not json", encoding="utf-8")
        assert NoteFileStorage(notes_path).load() == []

    def test_wrong_shape_is_empty(self, notes_path: Path) -> None:
        notes_path.write_text(json.dumps({"notes": []}), encoding="utf-8")
        assert NoteFileStorage(notes_path).load() == []

    def test_directory_is_empty(self, tmp_path: Path) -> None:
        assert NoteFileStorage(tmp_path).load() == []

    def test_reads_existing_file(self, notes_path: Path) -> None:
        notes_path.write_text(
            json.dumps(
                [
                    {
                        "id": 4,
                        "title": "Existing",
                        "content": "From an older run",
                        "tags": ["old"],
                        "createdAt": "2024-01-01T10:00:00.000Z",
                        "updatedAt": "2024-01-01T11:00:00.000Z",
                    }
                ],
                indent=2,
            ),
            encoding="utf-8",
        )
        notes = NoteFileStorage(notes_path).load()
        assert len(notes) == 1
        assert notes[0].id == 4
        assert notes[0].tags == ["old"]
        assert notes[0].updated_at == datetime(2024, 1, 1, 11, tzinfo=UTC)

    def test_invalid_entries_skipped(self, notes_path: Path, caplog) -> None:
        """One bad entry must not cost the rest of the collection."""
        good = {
            "id": 1,
            "title": "Keep",
            "content": "Still here",
            "tags": [],
            "createdAt": "2024-01-01T00:00:00.000Z",
            "updatedAt": "2024-01-01T00:00:00.000Z",
        }
        notes_path.write_text(
            json.dumps([good, {**good, "id": 2, "title": ""}, {**good, "id": 0}, "junk"]),
            encoding="utf-8",
        )
        with caplog.at_level(logging.WARNING, logger="notes_api.storage"):
            notes = NoteFileStorage(notes_path).load()
        assert [n.title for n in notes] == ["Keep"]
        assert "Skipping invalid note at index 1" in caplog.text

    def test_duplicate_ids_keep_first(self, notes_path: Path) -> None:
        entry = {"id": 5, "title": "First", "content": "c"}
        notes_path.write_text(
            json.dumps([entry, {**entry, "title": "Second"}]), encoding="utf-8"
        )
        notes = NoteFileStorage(notes_path).load()
        assert [(n.id, n.title) for n in notes] == [(5, "First")]


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------


class TestSave:
    def test_roundtrip(self, notes_path: Path, sample_notes: list[Note]) -> None:
        storage = NoteFileStorage(notes_path)
        storage.save(sample_notes)
        assert storage.load() == sample_notes

    def test_file_is_pretty_printed_array(
        self, notes_path: Path, sample_notes: list[Note]
    ) -> None:
        NoteFileStorage(notes_path).save(sample_notes)
        text = notes_path.read_text(encoding="utf-8")
        assert "\n  " in text
        data = json.loads(text)
        assert isinstance(data, list)
        assert [n["id"] for n in data] == [1, 3]
        assert set(data[0]) == {"id", "title", "content", "tags", "createdAt", "updatedAt"}

    def test_overwrites_in_full(self, notes_path: Path, sample_notes: list[Note]) -> None:
        storage = NoteFileStorage(notes_path)
        storage.save(sample_notes)
        storage.save(sample_notes[:1])
        assert json.loads(notes_path.read_text(encoding="utf-8"))[0]["id"] == 1
        assert len(storage.load()) == 1

    def test_empty_collection(self, notes_path: Path) -> None:
        NoteFileStorage(notes_path).save([])
        assert json.loads(notes_path.read_text(encoding="utf-8")) == []

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "data" / "nested" / "notes.json"
        NoteFileStorage(path).save([])
        assert path.exists()

    def test_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = NoteFileStorage(blocker / "notes.json")
        with pytest.raises(PersistenceError) as exc_info:
            storage.save([])
        assert exc_info.value.path == blocker / "notes.json"


class TestAtomicWrites:
    def test_roundtrip(self, notes_path: Path, sample_notes: list[Note]) -> None:
        storage = NoteFileStorage(notes_path, atomic_writes=True)
        storage.save(sample_notes)
        assert storage.load() == sample_notes

    def test_no_temp_files_left(
        self, notes_path: Path, sample_notes: list[Note]
    ) -> None:
        storage = NoteFileStorage(notes_path, atomic_writes=True)
        storage.save(sample_notes)
        storage.save(sample_notes[:1])
        assert [p.name for p in notes_path.parent.iterdir()] == ["notes.json"]

    def test_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = NoteFileStorage(blocker / "notes.json", atomic_writes=True)
        with pytest.raises(PersistenceError):
            storage.save([])
