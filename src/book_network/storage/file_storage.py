"""
Blob storage for uploaded book covers.

``FileStorage.save`` returns an opaque handle that is stored on the book row;
``read`` turns that handle back into bytes. ``LocalFileStorage`` keeps files
under ``<upload_dir>/users/<user_id>/<timestamp>.<ext>`` and uses the path
relative to ``upload_dir`` as the handle.
"""

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

from werkzeug.utils import secure_filename

from ..exceptions import InvalidInputError, RepositoryException

logger = logging.getLogger(__name__)


class FileStorage(ABC):
    """Stores uploaded files and reads them back by handle."""

    @abstractmethod
    def save(self, data: bytes, filename: str, user_id: int) -> str:
        """Persist ``data`` for ``user_id`` and return its handle."""

    @abstractmethod
    def read(self, handle: str | None) -> bytes | None:
        """Return the stored bytes, or None when the handle is empty or missing."""


class LocalFileStorage(FileStorage):
    """Filesystem-backed storage rooted at ``upload_dir``."""

    def __init__(self, upload_dir: Path):
        self.upload_dir = Path(upload_dir).absolute()

    def save(self, data: bytes, filename: str, user_id: int) -> str:
        if not data:
            raise InvalidInputError("Cannot store an empty file")

        extension = _extension(filename)
        target_dir = self.upload_dir / "users" / str(user_id)
        target_dir.mkdir(parents=True, exist_ok=True)

        # Millisecond timestamps can collide when one user uploads twice quickly
        stamp = time.time_ns() // 1_000_000
        target = target_dir / f"{stamp}{extension}"
        while target.exists():
            stamp += 1
            target = target_dir / f"{stamp}{extension}"

        try:
            target.write_bytes(data)
        except OSError as e:
            logger.exception("Failed to write upload to %s", target)
            raise RepositoryException(f"Could not store file '{filename}'") from e

        logger.info("Stored %d bytes for user %s at %s", len(data), user_id, target)
        return target.relative_to(self.upload_dir).as_posix()

    def read(self, handle: str | None) -> bytes | None:
        if not handle:
            return None

        path = (self.upload_dir / handle).resolve()
        if not path.is_relative_to(self.upload_dir.resolve()):
            logger.warning("Refusing to read outside the upload directory: %s", handle)
            return None
        if not path.is_file():
            logger.warning("Stored file not found: %s", handle)
            return None
        return path.read_bytes()


def _extension(filename: str) -> str:
    """Lower-cased extension of the sanitized filename, including the dot."""
    suffix = Path(secure_filename(filename or "")).suffix
    return suffix.lower()
