"""JSON file-based persistence for the Notes API."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from notes_api.errors import PersistenceError
from notes_api.models import Note

logger = logging.getLogger(__name__)

_NOTES = TypeAdapter(list[Note])


class NoteFileStorage:
    """Mirrors the note collection to a single pretty-printed JSON file.

    The file holds a bare JSON array of notes. Every save rewrites it in
    full. With ``atomic_writes`` enabled the new contents go to a sibling
    temp file first and are moved over the target with ``os.replace``;
    otherwise the target is overwritten in place and a crash mid-write can
    leave it truncated.
    """

    def __init__(self, path: Path, atomic_writes: bool = False) -> None:
        self._path = Path(path)
        self._atomic_writes = atomic_writes

    @property
    def path(self) -> Path:
        """Location of the notes file."""
        return self._path

    def load(self) -> list[Note]:
        """Read notes from disk.

        A missing file, unparseable JSON or a top-level value that is not an
        array yields no notes. Entries that are not valid notes, or repeat an
        id already read, are skipped so the rest of the collection survives.
        """
        if not self._path.exists():
            logger.info(
                "No notes file found at %s, starting with an empty collection",
                self._path,
            )
            return []

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(
                "Could not read notes from %s, starting with an empty collection: %s",
                self._path,
                exc,
            )
            return []

        if not isinstance(raw, list):
            logger.warning(
                "Notes file %s does not hold a JSON array, starting with an empty collection",
                self._path,
            )
            return []

        notes: list[Note] = []
        seen: set[int] = set()
        for position, entry in enumerate(raw):
            try:
                note = Note.model_validate(entry)
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid note at index %d in %s: %s", position, self._path, exc
                )
                continue
            if note.id in seen:
                logger.warning(
                    "Skipping duplicate note id %d in %s", note.id, self._path
                )
                continue
            seen.add(note.id)
            notes.append(note)

        logger.info("Loaded %d notes from %s", len(notes), self._path)
        return notes

    def save(self, notes: Sequence[Note]) -> None:
        """Overwrite the notes file with ``notes``.

        Raises:
            PersistenceError: the file could not be written.
        """
        data = _NOTES.dump_json(list(notes), indent=2, by_alias=True)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if self._atomic_writes:
                self._replace(data)
            else:
                self._path.write_bytes(data)
        except OSError as exc:
            raise PersistenceError(self._path, str(exc)) from exc

    def _replace(self, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
