"""CLI interface — thin wrapper over VideoCatalogService, the HTTP API and the MCP server."""

from datetime import timedelta
from pathlib import Path

import typer

from videocatalog.config import configure_logging, settings
from videocatalog.models import Genre, PageRequest, SortOrder, VideoMetadataDto
from videocatalog.service import VideoCatalogService, VideoNotFoundError
from videocatalog.storage.content import (
    ContentStorageError,
    LocalFileSystemContentStorage,
    UploadedContent,
)
from videocatalog.storage.repository import ConstraintViolationError
from videocatalog.storage.sqlite import SQLiteVideoMetadataRepository


app = typer.Typer(
    name="videocatalog",
    help="Publish, search and preview videos in a metadata catalog.",
    no_args_is_help=True,
)

_CATALOG_ERRORS = (VideoNotFoundError, ContentStorageError, ConstraintViolationError, ValueError)


def _get_service() -> VideoCatalogService:
    """Create a service instance with default dependencies."""
    settings.ensure_dirs()
    return VideoCatalogService(
        repository=SQLiteVideoMetadataRepository(),
        content_storage=LocalFileSystemContentStorage(),
    )


def _fail(error: Exception) -> None:
    typer.echo(f"❌ {error}", err=True)
    raise typer.Exit(code=1)


def _metadata_dto(
    title: str,
    synopsis: str,
    director: str,
    cast: str,
    year: int,
    genre: Genre | None,
    minutes: int | None,
) -> VideoMetadataDto:
    return VideoMetadataDto(
        title=title,
        synopsis=synopsis,
        director=director,
        cast_members=cast,
        year_of_release=year,
        genre=genre,
        running_time=timedelta(minutes=minutes) if minutes is not None else None,
    )


def _format_minutes(running_time: timedelta | None) -> str:
    return f"{running_time.total_seconds() / 60:.0f}m" if running_time is not None else "-"


@app.command()
def publish(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Content file to publish."),
    title: str = typer.Option(..., "--title", help="Video title."),
    synopsis: str = typer.Option(..., "--synopsis", help="Short synopsis."),
    director: str = typer.Option(..., "--director", help="Director name."),
    cast: str = typer.Option(..., "--cast", help="Comma-delimited cast, main actor first."),
    year: int = typer.Option(..., "--year", help="Year of release."),
    genre: Genre | None = typer.Option(None, "--genre", help="Genre."),
    minutes: int | None = typer.Option(None, "--minutes", help="Running time in minutes."),
) -> None:
    """Publish a content file with its metadata."""
    svc = _get_service()
    try:
        dto = _metadata_dto(title, synopsis, director, cast, year, genre, minutes)
        with file.open("rb") as stream:
            created = svc.publish_video(dto, UploadedContent(filename=file.name, stream=stream))
    except _CATALOG_ERRORS as e:
        _fail(e)
    typer.echo(f"✅ Published: {created.title}")
    typer.echo(f"   ID:       {created.id}")
    typer.echo(f"   Director: {created.director}")
    typer.echo(f"   Year:     {created.year_of_release}")


@app.command()
def update(
    video_id: int = typer.Argument(..., help="Catalog id."),
    title: str = typer.Option(..., "--title", help="Video title."),
    synopsis: str = typer.Option(..., "--synopsis", help="Short synopsis."),
    director: str = typer.Option(..., "--director", help="Director name."),
    cast: str = typer.Option(..., "--cast", help="Comma-delimited cast, main actor first."),
    year: int = typer.Option(..., "--year", help="Year of release."),
    genre: Genre | None = typer.Option(None, "--genre", help="Genre."),
    minutes: int | None = typer.Option(None, "--minutes", help="Running time in minutes."),
) -> None:
    """Overwrite the metadata of a published video."""
    svc = _get_service()
    try:
        dto = _metadata_dto(title, synopsis, director, cast, year, genre, minutes)
        updated = svc.update_metadata(video_id, dto)
    except _CATALOG_ERRORS as e:
        _fail(e)
    typer.echo(f"✅ Updated: {updated.id}  {updated.title}")


@app.command(name="list")
def list_videos(
    title: str | None = typer.Option(None, "--title", help="Title substring."),
    director: str | None = typer.Option(None, "--director", help="Director substring."),
    year: int | None = typer.Option(None, "--year", help="Exact year of release."),
    page: int = typer.Option(0, "--page", min=0, help="Zero-based page index."),
    size: int = typer.Option(settings.default_page_size, "--size", min=1, help="Page size."),
    sort: list[str] | None = typer.Option(None, "--sort", help="field[,asc|desc], repeatable."),
) -> None:
    """List catalog entries matching the given filters."""
    svc = _get_service()
    try:
        page_request = PageRequest(
            page=page,
            size=min(size, settings.max_page_size),
            sort=[SortOrder.parse(expr) for expr in sort or []],
        )
        result = svc.list_videos(title, director, year, page_request)
    except _CATALOG_ERRORS as e:
        _fail(e)
    if not result.content:
        typer.echo("No videos found. Use 'videocatalog publish <file>' to add one.")
        return
    for v in result.content:
        genre = v.genre.value if v.genre else "-"
        typer.echo(
            f"  {v.id:>4}  {_format_minutes(v.running_time):>5}  {genre:<15s}  "
            f"{v.director:<20s}  {v.title}  ({v.main_actor or '-'})"
        )
    typer.echo(f"Page {result.page + 1}/{max(result.total_pages, 1)} — {result.total_elements} video(s)")


@app.command()
def info(video_id: int = typer.Argument(..., help="Catalog id.")) -> None:
    """Show a video's details and a preview of its content (counts an impression)."""
    svc = _get_service()
    try:
        detail = svc.load_video(video_id)
    except _CATALOG_ERRORS as e:
        _fail(e)
    meta = detail.metadata
    typer.echo(f"Title:       {meta.title}")
    typer.echo(f"Director:    {meta.director}")
    typer.echo(f"Main actor:  {meta.main_actor or '(none)'}")
    typer.echo(f"Genre:       {meta.genre.value if meta.genre else '(none)'}")
    typer.echo(f"Running:     {_format_minutes(meta.running_time)}")
    typer.echo(f"Preview:     {detail.preview}")


@app.command()
def play(video_id: int = typer.Argument(..., help="Catalog id.")) -> None:
    """Print the full content of a video (counts a view)."""
    svc = _get_service()
    try:
        content = svc.play_video(video_id)
    except _CATALOG_ERRORS as e:
        _fail(e)
    typer.echo(content)


@app.command()
def stats(video_id: int = typer.Argument(..., help="Catalog id.")) -> None:
    """Show impression and view counts for a video."""
    svc = _get_service()
    try:
        statistics = svc.get_engagement_statistics(video_id)
    except _CATALOG_ERRORS as e:
        _fail(e)
    typer.echo(f"Impressions: {statistics.impressions}")
    typer.echo(f"Views:       {statistics.views}")


@app.command()
def delist(video_id: int = typer.Argument(..., help="Catalog id.")) -> None:
    """Remove a video from the catalog (its content file is kept)."""
    svc = _get_service()
    try:
        svc.delist_video(video_id)
    except _CATALOG_ERRORS as e:
        _fail(e)
    typer.echo(f"🗑️  Delisted: {video_id}")


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", help="Host to bind to."),
    port: int = typer.Option(settings.port, "--port", help="Port to bind to."),
    reload: bool = typer.Option(False, "--reload", help="Enable hot-reload for development."),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    configure_logging(settings.log_level)
    typer.echo(f"Starting videocatalog API on http://{host}:{port}/videos")
    uvicorn.run("videocatalog.api:create_app", factory=True, host=host, port=port, reload=reload)


@app.command()
def mcp(
    stdio: bool = typer.Option(False, "--stdio", help="Use stdio transport instead of HTTP."),
    host: str = typer.Option(settings.host, "--host", help="Host to bind to."),
    port: int = typer.Option(settings.mcp_port, "--port", help="Port to bind to."),
) -> None:
    """Start the videocatalog MCP server."""
    from videocatalog.server import mcp as mcp_server

    configure_logging(settings.log_level)
    if stdio:
        typer.echo("Starting videocatalog MCP server (stdio)...", err=True)
        mcp_server.run(transport="stdio")
    else:
        typer.echo(f"Starting videocatalog MCP server on http://{host}:{port}/mcp")
        mcp_server.run(transport="streamable-http", host=host, port=port)
