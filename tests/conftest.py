# tests/conftest.py
"""Shared fixtures for videocatalog tests."""

import io
from datetime import timedelta

import pytest

from videocatalog.models import Genre, VideoMetadata, VideoMetadataDto
from videocatalog.service import VideoCatalogService
from videocatalog.storage.content import LocalFileSystemContentStorage, UploadedContent
from videocatalog.storage.sqlite import SQLiteVideoMetadataRepository


PREVIEW_SIZE = 16


@pytest.fixture
def sample_dto():
    """Valid metadata for publishing."""
    return VideoMetadataDto(
        title="Test Video",
        synopsis="Test Synopsis",
        director="Test Director",
        cast_members="Actor A, Actor B",
        year_of_release=2023,
        genre=Genre.ACTION,
        running_time=timedelta(minutes=90),
    )


@pytest.fixture
def sample_record():
    """Unsaved VideoMetadata pointing at a fake content location."""
    return VideoMetadata(
        title="Fight Club",
        synopsis="An insomniac office worker forms an underground club.",
        director="David Fincher",
        cast_members="Brad Pitt, Edward Norton",
        year_of_release=1999,
        genre=Genre.DRAMA,
        running_time=timedelta(minutes=139),
        video_location="fake-location/fight-club.mp4",
    )


@pytest.fixture
def make_upload():
    """Factory for in-memory uploads."""

    def _make(content: str = "sample content for preview which is long enough", filename: str = "video.mp4"):
        return UploadedContent(filename=filename, stream=io.BytesIO(content.encode("utf-8")))

    return _make


@pytest.fixture
def sqlite_repo():
    """SQLiteVideoMetadataRepository backed by in-memory database."""
    repo = SQLiteVideoMetadataRepository(":memory:")
    yield repo
    repo.close()


@pytest.fixture
def content_storage(tmp_path):
    """Local content storage rooted in a temp directory with a small preview size."""
    return LocalFileSystemContentStorage(tmp_path / "uploads", preview_size=PREVIEW_SIZE)


@pytest.fixture
def service(sqlite_repo, content_storage):
    """Fully wired VideoCatalogService over in-memory and temp-dir backends."""
    return VideoCatalogService(repository=sqlite_repo, content_storage=content_storage)
