"""Content store for document bytes.

Blobs are addressed by an opaque key generated by the registry. Keys are
validated as 32 character hex strings, so nothing a caller sends can ever
become part of a filesystem path.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import BinaryIO

from docvault.core.errors import BlobNotFound, FileTooLarge, StorageError
from docvault.core.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024
_KEY_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class LocalBlobStore:
    """Filesystem-backed blob store rooted at a single directory."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.root / key

    def put(self, key: str, stream: BinaryIO, max_bytes: int | None = None) -> int:
        """Copy ``stream`` into the blob ``key`` and return the number of bytes written.

        The copy stops as soon as ``max_bytes`` is exceeded; partial content is
        removed before ``FileTooLarge`` propagates.
        """
        path = self._path(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target = open(path, "xb")
        except OSError as exc:
            raise StorageError("Failed to store document content") from exc

        written = 0
        try:
            with target:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise FileTooLarge()
                    target.write(chunk)
        except FileTooLarge:
            path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise StorageError("Failed to store document content") from exc
        return written

    def path(self, key: str) -> Path:
        """Return the on-disk location of an existing blob."""
        path = self._path(key)
        if not path.is_file():
            raise BlobNotFound()
        return path

    def read_bytes(self, key: str, limit: int | None = None) -> bytes:
        path = self.path(key)
        try:
            with open(path, "rb") as source:
                return source.read(limit if limit is not None else -1)
        except OSError as exc:
            raise StorageError("Failed to read document content") from exc

    def delete(self, key: str) -> None:
        """Remove a blob; a missing blob is not an error."""
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError("Failed to remove document content") from exc

    def healthy(self) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self.root, os.W_OK)
