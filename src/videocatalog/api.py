"""FastAPI application — thin HTTP wrapper over VideoCatalogService.

Usage::

    # Development server
    uvicorn videocatalog.api:create_app --factory --reload

    # Or through the CLI
    videocatalog serve
"""

import logging
import time
from typing import Annotated, Callable

from fastapi import (
    APIRouter,
    Depends,
    FastAPI,
    File,
    Form,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from videocatalog.config import settings
from videocatalog.models import (
    EngagementStatistics,
    Page,
    PageRequest,
    SortOrder,
    VideoMetadataDto,
    VideoMetadataView,
    VideoMetadataWithPreview,
)
from videocatalog.service import VideoCatalogService, VideoNotFoundError
from videocatalog.storage.content import (
    ContentNotFoundError,
    InvalidUploadError,
    LocalFileSystemContentStorage,
    UploadedContent,
    UploadTooLargeError,
)
from videocatalog.storage.repository import ConstraintViolationError, InvalidSortError
from videocatalog.storage.sqlite import SQLiteVideoMetadataRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


def get_service(request: Request) -> VideoCatalogService:
    """Resolve the service instance bound to the running application."""
    return request.app.state.service


ServiceDep = Annotated[VideoCatalogService, Depends(get_service)]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=VideoMetadataDto)
def publish(
    service: ServiceDep,
    metadata: Annotated[str, Form(description="Video metadata as a JSON document.")],
    video_file: Annotated[UploadFile, File(alias="videoFile", description="Video content file.")],
) -> VideoMetadataDto:
    """Publish a video: store its content file and create its catalog entry."""
    dto = VideoMetadataDto.model_validate_json(metadata)
    return service.publish_video(dto, UploadedContent(filename=video_file.filename, stream=video_file.file))


@router.put("/{video_id}", response_model=VideoMetadataDto)
def update(video_id: int, dto: VideoMetadataDto, service: ServiceDep) -> VideoMetadataDto:
    return service.update_metadata(video_id, dto)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
def delist(video_id: int, service: ServiceDep) -> Response:
    service.delist_video(video_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{video_id}", response_model=VideoMetadataWithPreview)
def load(video_id: int, service: ServiceDep) -> VideoMetadataWithPreview:
    """Catalog entry with a content preview. Counts one impression."""
    return service.load_video(video_id)


@router.get("/{video_id}/play", response_class=PlainTextResponse)
def play(video_id: int, service: ServiceDep) -> str:
    """Full video content as text. Counts one view."""
    return service.play_video(video_id)


@router.get("", response_model=Page[VideoMetadataView])
def list_videos(
    service: ServiceDep,
    title: str | None = None,
    director: str | None = None,
    year_of_release: Annotated[int | None, Query(alias="yearOfRelease")] = None,
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int | None, Query(ge=1)] = None,
    sort: Annotated[list[str] | None, Query(description="field[,asc|desc], repeatable")] = None,
) -> Page[VideoMetadataView]:
    """Search listed videos by optional title, director and release year."""
    try:
        orders = [SortOrder.parse(expr) for expr in sort or []]
    except ValueError as e:
        raise InvalidSortError(str(e)) from e
    page_request = PageRequest(
        page=page,
        size=min(size or settings.default_page_size, settings.max_page_size),
        sort=orders,
    )
    return service.list_videos(title, director, year_of_release, page_request)


@router.get("/{video_id}/engagement-statistics", response_model=EngagementStatistics)
def engagement_statistics(video_id: int, service: ServiceDep) -> EngagementStatistics:
    return service.get_engagement_statistics(video_id)


def _field_errors(errors: list[dict]) -> dict[str, str]:
    """Flatten pydantic error entries into a field -> message map."""
    result = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        result[".".join(loc) or "request"] = err.get("msg", "invalid value")
    return result


def _register_exception_handlers(application: FastAPI) -> None:
    """Map service and storage errors to HTTP status codes."""

    def _error(status_code: int, message: str) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": message})

    @application.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Validation failed", "errors": _field_errors(exc.errors())},
        )

    @application.exception_handler(ValidationError)
    async def _model_validation(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Validation failed", "errors": _field_errors(exc.errors())},
        )

    @application.exception_handler(InvalidUploadError)
    async def _invalid_upload(request: Request, exc: InvalidUploadError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid file upload failure: {exc}")

    @application.exception_handler(UploadTooLargeError)
    async def _upload_too_large(request: Request, exc: UploadTooLargeError) -> JSONResponse:
        return _error(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"File size exceeds the limit! Please upload a smaller file. {exc}",
        )

    @application.exception_handler(InvalidSortError)
    async def _invalid_sort(request: Request, exc: InvalidSortError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @application.exception_handler(ConstraintViolationError)
    async def _constraint_violation(request: Request, exc: ConstraintViolationError) -> JSONResponse:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "A database constraint was violated. Please check your input and try again.",
        )

    @application.exception_handler(VideoNotFoundError)
    async def _video_not_found(request: Request, exc: VideoNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @application.exception_handler(ContentNotFoundError)
    async def _content_not_found(request: Request, exc: ContentNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))


def create_app(service: VideoCatalogService | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        service: Service to serve. Defaults to one backed by the SQLite
                 repository and local content storage from settings.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    if service is None:
        settings.ensure_dirs()
        service = VideoCatalogService(
            repository=SQLiteVideoMetadataRepository(),
            content_storage=LocalFileSystemContentStorage(),
        )

    application = FastAPI(
        title="videocatalog",
        description="Publish, search and preview video metadata with engagement tracking.",
        version="0.1.0",
        redirect_slashes=False,
    )
    application.state.service = service

    @application.middleware("http")
    async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
        """Log every request with its response status and duration.

        Errors without a registered handler become a generic 500 here, so
        they are logged once and still get a request log line.
        """
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "An unexpected error occurred."},
            )
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        log_fn = logger.warning if response.status_code >= 400 else logger.info
        log_fn("%s %s -> %d (%.2f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @application.get("/health", tags=["system"])
    def health() -> dict:
        return {"status": "ok"}

    application.include_router(router)
    _register_exception_handlers(application)
    return application
