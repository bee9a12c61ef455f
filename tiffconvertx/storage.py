"""Object-storage collaborator boundary for :mod:`tiffconvertx`."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .exceptions import CollaboratorError, ValidationError

_LOGGER = logging.getLogger("tiffconvertx.storage")


@dataclass(frozen=True)
class ObjectLocation:
    """Bucket/key pair addressing one stored object."""

    bucket: str
    key: str

    def validate(self) -> "ObjectLocation":
        if not self.bucket or not self.bucket.strip():
            raise ValidationError("Bucket name cannot be empty")
        if not self.key or not self.key.strip():
            raise ValidationError("Object key cannot be empty")
        return self

    def __str__(self) -> str:
        return f"{self.bucket}/{self.key}"


class ObjectStorage(Protocol):
    """Protocol for the external byte store the router reads from and writes to."""

    def fetch(self, location: ObjectLocation) -> bytes:
        """Return the complete object at *location*."""

    def store(self, location: ObjectLocation, data: bytes, content_type: str) -> ObjectLocation:
        """Persist *data* at *location* atomically and return the location written."""


class FileSystemStorage(ObjectStorage):
    """Store objects under ``root/<bucket>/<key>`` on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def _path_for(self, location: ObjectLocation) -> Path:
        path = (self.root / location.bucket / location.key).resolve()
        if self.root not in path.parents:
            raise CollaboratorError(f"Object key escapes the storage root: {location}", kind="invalid_key")
        return path

    def fetch(self, location: ObjectLocation) -> bytes:
        path = self._path_for(location)
        if not path.is_file():
            raise CollaboratorError(f"Object not found: {location}", kind="not_found")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise CollaboratorError(f"Unable to read object {location}: {exc}", kind="io_error") from exc
        _LOGGER.debug("Fetched %d bytes from %s", len(data), location)
        return data

    def store(self, location: ObjectLocation, data: bytes, content_type: str) -> ObjectLocation:
        path = self._path_for(location)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent, suffix=".tmp") as handle:
                handle.write(data)
                temp_path = Path(handle.name)
            temp_path.replace(path)
        except OSError as exc:
            raise CollaboratorError(f"Unable to store object {location}: {exc}", kind="io_error") from exc
        _LOGGER.debug("Stored %d bytes (%s) at %s", len(data), content_type, location)
        return location


__all__ = ["ObjectLocation", "ObjectStorage", "FileSystemStorage"]
