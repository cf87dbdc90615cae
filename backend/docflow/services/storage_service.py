# Overview: File storage for uploaded PDFs and attachments (local disk implementation).

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Protocol

from flask import current_app

from ..time_utils import utcnow


EXTENSION_KEY = "docflow_storage"

ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png"}


class StorageError(Exception):
    """Raised when a stored path is invalid or cannot be read."""


class FileStorage(Protocol):
    def store(self, data: bytes, *, suffix: str = ".pdf") -> str:
        ...

    def retrieve(self, path: str) -> bytes:
        ...

    def exists(self, path: str) -> bool:
        ...

    def delete(self, path: str) -> bool:
        ...


class LocalFileStorage:
    """
    Stores blobs under a root directory as <yyyy>/<mm>/<uuid><suffix>.

    Returned paths are relative to the root; absolute paths and ".."
    segments are rejected on read.
    """

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path).resolve()
        root = self.root.resolve()
        if root != candidate and root not in candidate.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return candidate

    def store(self, data: bytes, *, suffix: str = ".pdf") -> str:
        suffix = suffix.lower() if suffix else ""
        if suffix and suffix not in ALLOWED_EXTENSIONS:
            raise StorageError(f"File type {suffix} is not allowed")

        now = utcnow()
        relative = Path(f"{now:%Y}") / f"{now:%m}" / f"{uuid.uuid4().hex}{suffix}"
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return relative.as_posix()

    def retrieve(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Stored file not found: {path}")
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except StorageError:
            return False

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True


def get_storage() -> FileStorage:
    storage = current_app.extensions.get(EXTENSION_KEY)
    if storage is None:
        storage = LocalFileStorage(current_app.config["DOCFLOW_STORAGE_ROOT"])
        current_app.extensions[EXTENSION_KEY] = storage
    return storage


def file_suffix(filename: str | None) -> str:
    if not filename:
        return ".pdf"
    return Path(filename).suffix.lower() or ".pdf"


def remove_quietly(path: str | None) -> None:
    """Delete a stored file after commit; failures are logged, not raised."""
    if not path:
        return
    try:
        get_storage().delete(path)
    except Exception:
        current_app.logger.exception("Failed to remove stored file %s", path)
