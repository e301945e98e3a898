"""Errors raised while reading or writing notes."""


class NoteError(Exception):
    """Base exception for note repository operations."""


class FrontMatterError(NoteError):
    """Raised when a note's front matter block cannot be parsed."""


class NoteLockError(NoteError):
    """Raised when exclusive access to a note cannot be acquired in time."""
