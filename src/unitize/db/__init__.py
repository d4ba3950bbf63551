"""JSON-file persistence.

Provides:
- Whole-document read/write helpers (plain and atomic)
- FileStore for the named documents (units, progress, flashcards,
  study sessions, study goals)
"""

from unitize.db.file_store import (
    DocumentNotFoundError,
    DocumentParseError,
    FileStore,
    FileStoreError,
    get_file_store,
    read_json,
    write_json,
)

__all__ = [
    "DocumentNotFoundError",
    "DocumentParseError",
    "FileStore",
    "FileStoreError",
    "get_file_store",
    "read_json",
    "write_json",
]
