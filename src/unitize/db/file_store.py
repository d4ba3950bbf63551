"""JSON document storage.

Every entity type lives in one JSON document on local disk. Documents are
read and written whole; there is no locking, so concurrent writers race and
the last write wins.

Documents (relative to the data directory):
- units.json           {"ap_courses": []}
- progress.json        {"users": []}
- flashcards.json      {"cards": [], "decks": []}
- study-sessions.json  {"sessions": []}
- study-goals.json     {"goals": []}
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any

import structlog

from unitize.config.app_config import get_data_dir, load_app_config

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

UNITS = "units"
PROGRESS = "progress"
FLASHCARDS = "flashcards"
STUDY_SESSIONS = "study_sessions"
STUDY_GOALS = "study_goals"

DOCUMENT_FILENAMES: dict[str, str] = {
    UNITS: "units.json",
    PROGRESS: "progress.json",
    FLASHCARDS: "flashcards.json",
    STUDY_SESSIONS: "study-sessions.json",
    STUDY_GOALS: "study-goals.json",
}

DEFAULT_DOCUMENTS: dict[str, dict[str, Any]] = {
    UNITS: {"ap_courses": []},
    PROGRESS: {"users": []},
    FLASHCARDS: {"cards": [], "decks": []},
    STUDY_SESSIONS: {"sessions": []},
    STUDY_GOALS: {"goals": []},
}

# =============================================================================
# ERRORS
# =============================================================================


class FileStoreError(Exception):
    """Base error for document storage failures."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(message)


class DocumentNotFoundError(FileStoreError):
    """Raised when a document file does not exist."""

    def __init__(self, path: Path):
        super().__init__(path, f"Document not found: {path}")


class DocumentParseError(FileStoreError):
    """Raised when a document file is not valid JSON."""

    def __init__(self, path: Path, detail: str):
        self.detail = detail
        super().__init__(path, f"Malformed JSON in {path}: {detail}")


# =============================================================================
# FILE OPERATIONS
# =============================================================================


def read_json(path: Path) -> Any:
    """Parse a JSON file.

    Raises:
        DocumentNotFoundError: If the file does not exist
        DocumentParseError: If the file is not valid JSON
        FileStoreError: On any other I/O failure
    """
    if not path.exists():
        raise DocumentNotFoundError(path)

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DocumentParseError(path, str(e)) from e
    except OSError as e:
        raise FileStoreError(path, f"Failed to read {path}: {e}") from e


def write_json(path: Path, value: Any, atomic: bool = False) -> Path:
    """Serialize value and overwrite the file at path.

    Args:
        path: Target file (parent directories are created)
        value: JSON-serializable value
        atomic: Write to a temp file first, then rename over the target

    Returns:
        The path written

    Raises:
        FileStoreError: If serialization or the write fails
    """
    try:
        payload = json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise FileStoreError(path, f"Value for {path} is not JSON-serializable: {e}") from e

    path.parent.mkdir(parents=True, exist_ok=True)

    if not atomic:
        try:
            path.write_text(payload, encoding="utf-8")
        except OSError as e:
            raise FileStoreError(path, f"Failed to write {path}: {e}") from e
        return path

    tmp_path = path.with_name(path.name + ".tmp")
    try:
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise FileStoreError(path, f"Atomic write to {path} failed: {e}") from e

    return path


# =============================================================================
# DOCUMENT STORE
# =============================================================================


class FileStore:
    """Named JSON documents under a single data directory."""

    def __init__(self, data_dir: Path | None = None, atomic_writes: bool | None = None):
        if data_dir is None:
            data_dir = get_data_dir()
        if atomic_writes is None:
            atomic_writes = load_app_config().storage.atomic_writes
        self.data_dir = Path(data_dir)
        self.atomic_writes = atomic_writes

    def path_for(self, name: str) -> Path:
        """Path of a named document."""
        try:
            filename = DOCUMENT_FILENAMES[name]
        except KeyError:
            raise ValueError(f"Unknown document: {name}") from None
        return self.data_dir / filename

    def read(self, name: str) -> dict[str, Any]:
        """Read a named document, failing if it is missing or malformed."""
        return read_json(self.path_for(name))

    def read_or_default(self, name: str) -> dict[str, Any]:
        """Read a named document, returning its empty shape if the file is absent.

        Malformed documents still raise DocumentParseError.
        """
        try:
            data = self.read(name)
        except DocumentNotFoundError:
            logger.debug("document_missing_using_default", document=name)
            return copy.deepcopy(DEFAULT_DOCUMENTS[name])

        # Fill top-level arrays missing from hand-edited files
        for key, default in DEFAULT_DOCUMENTS[name].items():
            data.setdefault(key, copy.deepcopy(default))
        return data

    def write(self, name: str, value: dict[str, Any]) -> Path:
        """Overwrite a named document."""
        path = write_json(self.path_for(name), value, atomic=self.atomic_writes)
        logger.debug("document_saved", document=name, path=str(path))
        return path

    def ensure_defaults(self) -> list[Path]:
        """Create every known document that does not exist yet.

        Returns:
            Paths of the documents that were created
        """
        created: list[Path] = []
        for name, default in DEFAULT_DOCUMENTS.items():
            path = self.path_for(name)
            if path.exists():
                continue
            write_json(path, default)
            created.append(path)
            logger.info("default_document_created", document=name, path=str(path))
        return created


def get_file_store(data_dir: Path | None = None) -> FileStore:
    """Store for data_dir, or for the configured data directory."""
    return FileStore(data_dir)
