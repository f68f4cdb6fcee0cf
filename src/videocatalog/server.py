"""FastMCP server — thin wrapper exposing VideoCatalogService as MCP tools."""

import io

from fastmcp import FastMCP
from pydantic import ValidationError

from videocatalog.config import settings
from videocatalog.models import PageRequest, SortOrder, VideoMetadataDto
from videocatalog.service import VideoCatalogService, VideoNotFoundError
from videocatalog.storage.content import (
    ContentStorageError,
    LocalFileSystemContentStorage,
    UploadedContent,
)
from videocatalog.storage.repository import ConstraintViolationError
from videocatalog.storage.sqlite import SQLiteVideoMetadataRepository


mcp = FastMCP(
    name="videocatalog",
    instructions=(
        "videocatalog stores video metadata alongside a text surrogate of the video. "
        "Use list_videos to search the catalog, load_video for details and a preview, "
        "play_video for the full content and engagement_statistics for counters."
    ),
)

_service: VideoCatalogService | None = None

# Errors reported back to the client instead of failing the tool call
_TOOL_ERRORS = (
    VideoNotFoundError,
    ContentStorageError,
    ConstraintViolationError,
    ValidationError,
    ValueError,
)


def _get_service() -> VideoCatalogService:
    """Lazy-initialise the service singleton with default dependencies."""
    global _service
    if _service is None:
        settings.ensure_dirs()
        _service = VideoCatalogService(
            repository=SQLiteVideoMetadataRepository(),
            content_storage=LocalFileSystemContentStorage(),
        )
    return _service


@mcp.tool(annotations={"readOnlyHint": False, "idempotentHint": False})
def publish_video(metadata: dict, filename: str, content: str) -> dict:
    """Publish a video to the catalog.

    Args:
        metadata: Catalog fields — title, synopsis, director, castMembers,
                  yearOfRelease, and optionally genre and runningTime (ISO-8601).
        filename: Name to store the content under.
        content: The video content (text surrogate).
    """
    try:
        dto = VideoMetadataDto.model_validate(metadata)
        upload = UploadedContent(filename=filename, stream=io.BytesIO(content.encode("utf-8")))
        created = _get_service().publish_video(dto, upload)
        return created.model_dump(mode="json", by_alias=True)
    except _TOOL_ERRORS as e:
        return {"error": str(e)}


@mcp.tool(annotations={"readOnlyHint": False, "idempotentHint": True})
def update_video(video_id: int, metadata: dict) -> dict:
    """Overwrite the catalog fields of a video.

    Args:
        video_id: Catalog id of the video.
        metadata: Same fields as publish_video.
    """
    try:
        dto = VideoMetadataDto.model_validate(metadata)
        return _get_service().update_metadata(video_id, dto).model_dump(mode="json", by_alias=True)
    except _TOOL_ERRORS as e:
        return {"error": str(e)}


@mcp.tool(annotations={"readOnlyHint": False, "destructiveHint": True})
def delist_video(video_id: int) -> dict:
    """Remove a video from the catalog. Its content is kept in storage.

    Args:
        video_id: Catalog id of the video.
    """
    try:
        _get_service().delist_video(video_id)
        return {"delisted": video_id}
    except _TOOL_ERRORS as e:
        return {"error": str(e)}


@mcp.tool(annotations={"readOnlyHint": False})
def load_video(video_id: int) -> dict:
    """Get a video's details and a short preview of its content.

    Counts as one impression.

    Args:
        video_id: Catalog id of the video.
    """
    try:
        return _get_service().load_video(video_id).model_dump(mode="json", by_alias=True)
    except _TOOL_ERRORS as e:
        return {"error": str(e)}


@mcp.tool(annotations={"readOnlyHint": False})
def play_video(video_id: int) -> dict:
    """Get the full content of a video. Counts as one view.

    Args:
        video_id: Catalog id of the video.
    """
    try:
        return {"video_id": video_id, "content": _get_service().play_video(video_id)}
    except _TOOL_ERRORS as e:
        return {"error": str(e)}


@mcp.tool(annotations={"readOnlyHint": True})
def list_videos(
    title: str | None = None,
    director: str | None = None,
    year_of_release: int | None = None,
    page: int = 0,
    size: int | None = None,
    sort: list[str] | None = None,
) -> dict:
    """Search the catalog. Every provided filter must match.

    Args:
        title: Case-insensitive title substring.
        director: Case-insensitive director substring.
        year_of_release: Exact release year.
        page: Zero-based page index.
        size: Page size (default and cap come from settings).
        sort: Ordering terms like "title" or "yearOfRelease,desc".
    """
    try:
        page_request = PageRequest(
            page=page,
            size=min(size or settings.default_page_size, settings.max_page_size),
            sort=[SortOrder.parse(expr) for expr in sort or []],
        )
        result = _get_service().list_videos(title, director, year_of_release, page_request)
        return result.model_dump(mode="json", by_alias=True)
    except _TOOL_ERRORS as e:
        return {"error": str(e)}


@mcp.tool(annotations={"readOnlyHint": True, "idempotentHint": True})
def engagement_statistics(video_id: int) -> dict:
    """Get impression and view counts for a video.

    Args:
        video_id: Catalog id of the video.
    """
    try:
        return _get_service().get_engagement_statistics(video_id).model_dump(mode="json", by_alias=True)
    except _TOOL_ERRORS as e:
        return {"error": str(e)}
