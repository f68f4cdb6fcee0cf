"""Video content storage: opaque text blobs addressed by a location string."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from videocatalog.config import settings

logger = logging.getLogger(__name__)


class ContentStorageError(Exception):
    """Base class for content storage failures."""


class InvalidUploadError(ContentStorageError):
    """Raised when an upload has no usable filename or its payload cannot be read."""


class ContentNotFoundError(ContentStorageError):
    """Raised when a content location does not resolve to an existing file."""


class UploadTooLargeError(ContentStorageError):
    """Raised when an upload payload exceeds the configured size limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"File size exceeds the limit of {limit} bytes")
        self.limit = limit


@dataclass
class UploadedContent:
    """An incoming content file: its client-side name and a readable byte stream."""

    filename: str | None
    stream: BinaryIO


class ContentStorage(ABC):
    """Abstract contract for video content backends.

    Content is always represented as text, standing in for real video
    payloads. The local filesystem is the only bundled backend; object
    storage implementations plug in behind the same four operations.
    """

    @abstractmethod
    def upload(self, content: UploadedContent) -> str:
        """Store the content and return its location."""

    @abstractmethod
    def load(self, location: str) -> str:
        """Return the full content stored at location."""

    @abstractmethod
    def load_preview(self, location: str) -> str:
        """Return a bounded prefix of the content stored at location."""

    @abstractmethod
    def delete(self, location: str) -> None:
        """Remove the content at location. No-op if it does not exist."""


class LocalFileSystemContentStorage(ContentStorage):
    """Content storage rooted at a local directory.

    Uploads land at ``<root>/<upload-id>/<filename>``, so two uploads with
    the same filename never share a file. The returned location is that
    path as a string, and is what the other operations accept.
    """

    def __init__(
        self,
        root: Path | str | None = None,
        preview_size: int | None = None,
        max_upload_size: int | None = None,
    ) -> None:
        """Initialize the storage.

        Args:
            root: Directory uploads are written under. Defaults to settings.storage_dir.
            preview_size: Max bytes returned by load_preview. Defaults to settings.preview_size.
            max_upload_size: Max bytes accepted by upload. Defaults to settings.max_upload_size.
        """
        self._root = Path(root) if root is not None else settings.storage_dir
        self._preview_size = preview_size or settings.preview_size
        self._max_upload_size = max_upload_size or settings.max_upload_size

    @property
    def root(self) -> Path:
        return self._root

    def upload(self, content: UploadedContent) -> str:
        """Write the uploaded bytes to a fresh directory under the storage root.

        Raises:
            InvalidUploadError: If the filename is missing or escapes the root,
                or the stream cannot be read.
            UploadTooLargeError: If the payload is larger than max_upload_size.
        """
        relative = self._relative_path(content.filename)
        try:
            data = content.stream.read(self._max_upload_size + 1)
        except (OSError, EOFError, ValueError) as e:
            raise InvalidUploadError(f"Failed to upload an invalid file: {e}") from e
        if data is None:
            raise InvalidUploadError("Failed to upload an invalid file: payload could not be read")
        if len(data) > self._max_upload_size:
            raise UploadTooLargeError(self._max_upload_size)

        target = self._root / uuid4().hex / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored %d bytes at %s", len(data), target)
        return str(target)

    def load(self, location: str) -> str:
        path = self._existing_path(location)
        return path.read_text(encoding="utf-8", errors="replace")

    def load_preview(self, location: str) -> str:
        path = self._existing_path(location)
        with path.open("rb") as f:
            head = f.read(self._preview_size)
        # A multi-byte character cut at the boundary decodes to U+FFFD
        return head.decode("utf-8", errors="replace")

    def delete(self, location: str) -> None:
        Path(location).unlink(missing_ok=True)

    @staticmethod
    def _relative_path(filename: str | None) -> Path:
        if filename is None or not filename.strip():
            raise InvalidUploadError("Failed to upload an invalid file: file name must not be empty")
        relative = Path(filename)
        if relative.is_absolute() or ".." in relative.parts:
            raise InvalidUploadError(
                f"Failed to upload an invalid file: file name escapes the storage root: {filename}"
            )
        return relative

    @staticmethod
    def _existing_path(location: str) -> Path:
        path = Path(location)
        if not path.is_file():
            raise ContentNotFoundError(f"Video file not found at the specified path: {location}")
        return path
