"""Exception taxonomy for the Notes API.

Validation problems are reported through pydantic / FastAPI's
``RequestValidationError`` and never reach the store, so they have no
class here.
"""

from __future__ import annotations

from pathlib import Path


class NotesError(Exception):
    """Base class for all Notes API errors."""


class NoteNotFoundError(NotesError):
    """Raised when no note with the requested id exists."""

    def __init__(self, note_id: int) -> None:
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class PersistenceError(NotesError):
    """Raised when the notes file cannot be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not write {path}: {reason}")
        self.path = path
        self.reason = reason
