"""Core business logic for videocatalog."""

import logging

from videocatalog.models import (
    EngagementStatistics,
    Page,
    PageRequest,
    VideoMetadata,
    VideoMetadataDto,
    VideoMetadataView,
    VideoMetadataWithPreview,
    apply_dto,
    to_dto,
    to_view,
)
from videocatalog.storage.content import ContentStorage, UploadedContent
from videocatalog.storage.filters import build_search_filter
from videocatalog.storage.repository import VideoMetadataRepository

logger = logging.getLogger(__name__)


class VideoNotFoundError(Exception):
    """Raised when a requested video is absent from the catalog or has been delisted."""


class VideoCatalogService:
    """Core service layer — single orchestration point for all catalog operations.

    The HTTP API, the MCP server and the CLI are thin wrappers over this
    class. Dependencies are injected via constructor for testability and
    backend swappability.
    """

    def __init__(
        self,
        repository: VideoMetadataRepository,
        content_storage: ContentStorage,
    ) -> None:
        self._repo = repository
        self._content = content_storage

    def publish_video(self, metadata: VideoMetadataDto, content: UploadedContent) -> VideoMetadataDto:
        """Store the content file and create its catalog entry.

        Either both the content and the record end up stored, or neither
        does: if saving the record fails after the upload succeeded, the
        uploaded content is deleted before the save error is re-raised.

        Args:
            metadata: Catalog fields for the new video. Any ``id`` is ignored.
            content: The video content file.

        Returns:
            The created entry, including its assigned id.

        Raises:
            InvalidUploadError: If the content file cannot be stored.
            ConstraintViolationError: If the record violates a storage constraint.
        """
        location = self._content.upload(content)
        try:
            video = VideoMetadata(
                title=metadata.title,
                synopsis=metadata.synopsis,
                director=metadata.director,
                cast_members=metadata.cast_members,
                year_of_release=metadata.year_of_release,
                genre=metadata.genre,
                running_time=metadata.running_time,
                video_location=location,
            )
            video = self._repo.save(video)
        except Exception:
            self._discard_upload(location)
            raise

        logger.info("Video published: %s (%s)", video.id, video.title)
        return to_dto(video)

    def update_metadata(self, video_id: int, metadata: VideoMetadataDto) -> VideoMetadataDto:
        """Overwrite the editable fields of an existing entry.

        Raises:
            VideoNotFoundError: If the video is absent or delisted.
        """
        video = self._get_video(video_id)
        video = self._repo.save(apply_dto(metadata, video))
        logger.info("Video updated: %s", video_id)
        return to_dto(video)

    def delist_video(self, video_id: int) -> None:
        """Soft-delete an entry. Its content file is left in place.

        Delisting an id that is not currently listed is reported as not
        found rather than treated as already done.

        Raises:
            VideoNotFoundError: If the video is absent or already delisted.
        """
        if not self._repo.exists_by_id(video_id):
            raise VideoNotFoundError(f"Video not found: {video_id}")
        self._repo.delete_by_id(video_id)
        logger.info("Video delisted: %s", video_id)

    def load_video(self, video_id: int) -> VideoMetadataWithPreview:
        """Return an entry with a content preview, counting one impression.

        The impression is recorded before the preview is read, so it
        counts even when reading the preview fails.

        Raises:
            VideoNotFoundError: If the video is absent or delisted.
            ContentNotFoundError: If the content file is missing.
        """
        if not self._repo.increment_impressions(video_id):
            raise VideoNotFoundError(f"Video not found: {video_id}")
        video = self._get_video(video_id)
        preview = self._content.load_preview(video.video_location)
        return VideoMetadataWithPreview(metadata=to_view(video), preview=preview)

    def play_video(self, video_id: int) -> str:
        """Return the full content of a video, counting one view.

        Raises:
            VideoNotFoundError: If the video is absent or delisted.
            ContentNotFoundError: If the content file is missing.
        """
        if not self._repo.increment_views(video_id):
            raise VideoNotFoundError(f"Video not found: {video_id}")
        video = self._get_video(video_id)
        return self._content.load(video.video_location)

    def list_videos(
        self,
        title: str | None = None,
        director: str | None = None,
        year_of_release: int | None = None,
        page_request: PageRequest | None = None,
    ) -> Page[VideoMetadataView]:
        """List listed videos matching every provided criterion, one page at a time.

        Args:
            title: Case-insensitive title substring.
            director: Case-insensitive director substring.
            year_of_release: Exact release year.
            page_request: Page, size and ordering. Defaults to the first page.
        """
        search_filter = build_search_filter(title, director, year_of_release)
        page = self._repo.find_all(search_filter, page_request or PageRequest())
        return Page[VideoMetadataView](
            content=[to_view(v) for v in page.content],
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
        )

    def get_engagement_statistics(self, video_id: int) -> EngagementStatistics:
        """Return impression and view counts without changing them.

        Raises:
            VideoNotFoundError: If the video is absent or delisted.
        """
        video = self._get_video(video_id)
        return EngagementStatistics(impressions=video.impressions, views=video.views)

    def _get_video(self, video_id: int) -> VideoMetadata:
        video = self._repo.find_by_id(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video not found: {video_id}")
        return video

    def _discard_upload(self, location: str) -> None:
        """Delete content whose record could not be saved.

        A failure here is logged and dropped so the caller re-raises the
        original save error.
        """
        try:
            self._content.delete(location)
            logger.warning("Record save failed; removed uploaded content at %s", location)
        except Exception:
            logger.exception("Record save failed and uploaded content at %s could not be removed", location)
