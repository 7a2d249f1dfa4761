"""File storage for uploaded covers."""

from .file_storage import FileStorage, LocalFileStorage

__all__ = ["FileStorage", "LocalFileStorage"]
