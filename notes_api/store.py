"""In-memory note collection backed by a NoteFileStorage."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Optional

from notes_api.errors import NoteNotFoundError, PersistenceError
from notes_api.metrics import NOTE_OPERATIONS, NOTES_STORED, PERSISTENCE_FAILURES
from notes_api.models import Note, utcnow
from notes_api.storage import NoteFileStorage

logger = logging.getLogger(__name__)


class NoteStore:
    """Authoritative collection of notes and the id counter.

    The collection is loaded once at construction. Every create, update and
    delete rewrites the notes file before returning. A failed write is
    logged and otherwise ignored: the in-memory change stands and the next
    successful write brings the file back in sync.

    Ids come from a counter seeded with ``max(id) + 1`` at load time and only
    incremented afterwards, so ids freed by deletes are not reused while the
    process runs.

    All operations, including the file write, run under one lock.
    """

    def __init__(self, storage: NoteFileStorage) -> None:
        self._storage = storage
        self._lock = threading.Lock()
        self._notes: list[Note] = storage.load()
        self._next_id = max((note.id for note in self._notes), default=0) + 1
        NOTES_STORED.set(len(self._notes))

    @property
    def count(self) -> int:
        """Number of stored notes."""
        return len(self._notes)

    @property
    def next_id(self) -> int:
        """Id the next created note will receive."""
        return self._next_id

    def create(self, title: str, content: str, tags: list[str]) -> Note:
        """Create, store and persist a new note."""
        with self._lock:
            now = utcnow()
            note = Note(
                id=self._next_id,
                title=title.strip(),
                content=content.strip(),
                tags=[tag.strip() for tag in tags],
                created_at=now,
                updated_at=now,
            )
            self._next_id += 1
            self._notes.append(note)
            self._persist()

        NOTE_OPERATIONS.labels(operation="create").inc()
        logger.info("Created note %d '%s'", note.id, note.title)
        return note

    def list(self, tag: Optional[str] = None, q: Optional[str] = None) -> list[Note]:
        """Return notes matching every given filter, in insertion order.

        ``tag`` matches notes with any tag containing it; ``q`` matches notes
        whose title or content contains it. Both are case-insensitive.
        """
        with self._lock:
            notes = list(self._notes)

        if tag:
            tag_lower = tag.lower()
            notes = [n for n in notes if any(tag_lower in t.lower() for t in n.tags)]
        if q:
            q_lower = q.lower()
            notes = [
                n
                for n in notes
                if q_lower in n.title.lower() or q_lower in n.content.lower()
            ]
        return notes

    def get(self, note_id: int) -> Note:
        """Return the note with ``note_id``.

        Raises:
            NoteNotFoundError: no such note.
        """
        with self._lock:
            return self._notes[self._index(note_id)]

    def update(self, note_id: int, title: str, content: str, tags: list[str]) -> Note:
        """Replace a note's title, content and tags and persist the change.

        ``id`` and ``created_at`` are kept; ``updated_at`` moves strictly
        forward.

        Raises:
            NoteNotFoundError: no such note.
        """
        with self._lock:
            idx = self._index(note_id)
            current = self._notes[idx]
            now = utcnow()
            if now <= current.updated_at:
                now = current.updated_at + timedelta(microseconds=1)
            note = current.model_copy(
                update={
                    "title": title.strip(),
                    "content": content.strip(),
                    "tags": [tag.strip() for tag in tags],
                    "updated_at": now,
                }
            )
            self._notes[idx] = note
            self._persist()

        NOTE_OPERATIONS.labels(operation="update").inc()
        logger.info("Updated note %d", note.id)
        return note

    def delete(self, note_id: int) -> None:
        """Remove a note and persist the change.

        Raises:
            NoteNotFoundError: no such note.
        """
        with self._lock:
            del self._notes[self._index(note_id)]
            self._persist()

        NOTE_OPERATIONS.labels(operation="delete").inc()
        logger.info("Deleted note %d", note_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _index(self, note_id: int) -> int:
        for idx, note in enumerate(self._notes):
            if note.id == note_id:
                return idx
        raise NoteNotFoundError(note_id)

    def _persist(self) -> None:
        """Write the collection to disk; failures are logged, not raised."""
        NOTES_STORED.set(len(self._notes))
        try:
            self._storage.save(self._notes)
        except PersistenceError as exc:
            PERSISTENCE_FAILURES.inc()
            logger.error("Failed to save notes, keeping changes in memory: %s", exc)
