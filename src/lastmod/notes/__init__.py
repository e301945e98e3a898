"""Note storage, front matter handling, and stamping integration."""

from .errors import FrontMatterError, NoteError, NoteLockError
from .frontmatter import render_front_matter, split_front_matter
from .models import StampBatch, StampOutcome
from .repository import DEFAULT_STATE_DIRNAME, NoteRepository, NoteSession
from .stamper import Stamper
from .vault import iter_notes, list_folders

__all__ = [
    "DEFAULT_STATE_DIRNAME",
    "FrontMatterError",
    "NoteError",
    "NoteLockError",
    "NoteRepository",
    "NoteSession",
    "StampBatch",
    "StampOutcome",
    "Stamper",
    "iter_notes",
    "list_folders",
    "render_front_matter",
    "split_front_matter",
]
