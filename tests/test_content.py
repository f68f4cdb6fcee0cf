# tests/test_content.py
"""Tests for local filesystem content storage."""

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from videocatalog.storage.content import (
    ContentNotFoundError,
    InvalidUploadError,
    LocalFileSystemContentStorage,
    UploadedContent,
    UploadTooLargeError,
)


class TestUpload:
    def test_upload_valid_file(self, content_storage):
        location = Path(content_storage.upload(UploadedContent("test-video.mp4", io.BytesIO(b"\x01\x02\x03\x04"))))
        assert location.name == "test-video.mp4"
        assert location.parent.parent == content_storage.root
        assert location.read_bytes() == b"\x01\x02\x03\x04"

    def test_upload_creates_intermediate_dirs(self, content_storage):
        location = Path(content_storage.upload(UploadedContent("2024/films/clip.mp4", io.BytesIO(b"clip"))))
        assert location.read_bytes() == b"clip"
        assert location.relative_to(content_storage.root).parts[1:] == ("2024", "films", "clip.mp4")

    def test_same_filename_gets_separate_locations(self, content_storage):
        first = content_storage.upload(UploadedContent("movie.mp4", io.BytesIO(b"first content")))
        second = content_storage.upload(UploadedContent("movie.mp4", io.BytesIO(b"second content")))
        assert first != second
        assert content_storage.load(first) == "first content"
        assert content_storage.load(second) == "second content"

    def test_deleting_one_upload_keeps_same_named_sibling(self, content_storage):
        first = content_storage.upload(UploadedContent("movie.mp4", io.BytesIO(b"first content")))
        second = content_storage.upload(UploadedContent("movie.mp4", io.BytesIO(b"second content")))
        content_storage.delete(second)
        assert content_storage.load(first) == "first content"

    def test_upload_at_size_limit(self, tmp_path):
        storage = LocalFileSystemContentStorage(tmp_path, max_upload_size=4)
        location = storage.upload(UploadedContent("clip.mp4", io.BytesIO(b"1234")))
        assert storage.load(location) == "1234"

    def test_upload_over_size_limit(self, tmp_path):
        storage = LocalFileSystemContentStorage(tmp_path, max_upload_size=4)
        with pytest.raises(UploadTooLargeError) as exc_info:
            storage.upload(UploadedContent("clip.mp4", io.BytesIO(b"12345")))
        assert exc_info.value.limit == 4
        assert not list(tmp_path.rglob("clip.mp4"))

    @pytest.mark.parametrize("filename", [None, "", "   "])
    def test_upload_missing_filename(self, content_storage, filename):
        with pytest.raises(InvalidUploadError):
            content_storage.upload(UploadedContent(filename, io.BytesIO(b"data")))

    @pytest.mark.parametrize("filename", ["../escape.mp4", "/etc/passwd"])
    def test_upload_filename_outside_root(self, content_storage, filename):
        with pytest.raises(InvalidUploadError):
            content_storage.upload(UploadedContent(filename, io.BytesIO(b"data")))

    def test_upload_unreadable_stream(self, content_storage):
        stream = MagicMock()
        stream.read.side_effect = EOFError("truncated")
        with pytest.raises(InvalidUploadError):
            content_storage.upload(UploadedContent("malformed-video.mp4", stream))
        stream.read.assert_called_once()
        assert not list(content_storage.root.rglob("malformed-video.mp4"))

    def test_upload_closed_stream(self, content_storage):
        stream = io.BytesIO(b"data")
        stream.close()
        with pytest.raises(InvalidUploadError):
            content_storage.upload(UploadedContent("closed.mp4", stream))


class TestLoad:
    def test_load_valid_path(self, tmp_path, content_storage):
        path = tmp_path / "test-video.txt"
        path.write_text("sample content")
        assert content_storage.load(str(path)) == "sample content"

    @pytest.mark.parametrize("location", ["nonexistent-file.txt", "invalid-path/file.mp4"])
    def test_load_invalid_path(self, content_storage, location):
        with pytest.raises(ContentNotFoundError, match=f"Video file not found at the specified path: {location}"):
            content_storage.load(location)

    def test_load_directory_is_not_found(self, tmp_path, content_storage):
        with pytest.raises(ContentNotFoundError):
            content_storage.load(str(tmp_path))


class TestLoadPreview:
    @pytest.mark.parametrize("text, expected", [
        ("sample content for preview which is long enough", "sample content f"),
        ("partial content", "partial content"),
        ("", ""),
    ])
    def test_preview_truncation(self, tmp_path, content_storage, text, expected):
        path = tmp_path / "test-preview.txt"
        path.write_text(text)
        assert content_storage.load_preview(str(path)) == expected

    def test_preview_length_is_min_of_limit_and_size(self, tmp_path):
        storage = LocalFileSystemContentStorage(tmp_path, preview_size=5)
        path = tmp_path / "blob.txt"
        path.write_text("abcdefghij")
        assert storage.load_preview(str(path)) == "abcde"
        path.write_text("abc")
        assert storage.load_preview(str(path)) == "abc"

    def test_preview_split_multibyte_character(self, tmp_path):
        storage = LocalFileSystemContentStorage(tmp_path, preview_size=2)
        path = tmp_path / "blob.txt"
        path.write_text("aé", encoding="utf-8")  # 'é' is two bytes
        assert storage.load_preview(str(path)) == "a�"

    @pytest.mark.parametrize("location", ["nonexistent-preview.txt", "invalid-path-preview/file.mp4"])
    def test_preview_invalid_path(self, content_storage, location):
        with pytest.raises(ContentNotFoundError, match="Video file not found"):
            content_storage.load_preview(location)


class TestDelete:
    def test_delete_existing(self, tmp_path, content_storage):
        path = tmp_path / "test-video.mp4"
        path.write_bytes(b"")
        content_storage.delete(str(path))
        assert not path.exists()

    def test_delete_missing_is_noop(self, tmp_path, content_storage):
        content_storage.delete(str(tmp_path / "never-existed.mp4"))  # should not raise
