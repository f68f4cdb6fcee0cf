"""Abstract repository interface for video metadata storage."""

from abc import ABC, abstractmethod

from videocatalog.models import Page, PageRequest, VideoMetadata
from videocatalog.storage.filters import SearchFilter


class ConstraintViolationError(Exception):
    """Raised when a write breaks a storage-level integrity constraint."""


class InvalidSortError(ValueError):
    """Raised when a page request orders by an unknown or unsortable field."""


class VideoMetadataRepository(ABC):
    """Abstract base class defining the metadata storage contract.

    Deletion is soft: a deleted record stays in storage but is invisible
    to every other method of this interface. The service layer depends
    on this abstraction, not on a concrete backend.
    """

    @abstractmethod
    def save(self, video: VideoMetadata) -> VideoMetadata:
        """Insert a new record (assigning its id) or overwrite an active one.

        Counters and content location are never overwritten by save.
        """

    @abstractmethod
    def find_by_id(self, video_id: int) -> VideoMetadata | None:
        """Retrieve an active record by id. Returns None if absent or deleted."""

    @abstractmethod
    def exists_by_id(self, video_id: int) -> bool:
        """Check whether an active record with the given id exists."""

    @abstractmethod
    def delete_by_id(self, video_id: int) -> None:
        """Soft-delete a record. No-op if it is absent or already deleted."""

    @abstractmethod
    def find_all(self, search_filter: SearchFilter, page_request: PageRequest) -> Page[VideoMetadata]:
        """Return one page of active records matching the filter."""

    @abstractmethod
    def increment_impressions(self, video_id: int) -> bool:
        """Atomically add one impression. Returns False if no active record matched."""

    @abstractmethod
    def increment_views(self, video_id: int) -> bool:
        """Atomically add one view. Returns False if no active record matched."""
