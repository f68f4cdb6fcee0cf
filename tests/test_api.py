# tests/test_api.py
"""HTTP API tests using FastAPI's TestClient."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from videocatalog.api import create_app
from videocatalog.service import VideoCatalogService
from videocatalog.storage.content import LocalFileSystemContentStorage


METADATA = {
    "title": "Test Video",
    "synopsis": "Test Synopsis",
    "director": "Test Director",
    "castMembers": "Brad Pitt, Angelina Jolie",
    "yearOfRelease": 2023,
    "genre": "ACTION",
    "runningTime": "PT1H30M",
}


@pytest.fixture
def client(service):
    """TestClient over an app wired to the in-memory service."""
    return TestClient(create_app(service))


def _publish(client, metadata=None, content=b"sample content for preview which is long enough", filename="video.mp4"):
    return client.post(
        "/videos",
        data={"metadata": json.dumps(metadata or METADATA)},
        files={"videoFile": (filename, content, "video/mp4")},
    )


class TestPublish:
    def test_publish_created(self, client, content_storage):
        response = _publish(client)
        assert response.status_code == 201
        body = response.json()
        assert body["id"] is not None
        assert body["title"] == "Test Video"
        assert body["castMembers"] == "Brad Pitt, Angelina Jolie"
        assert body["yearOfRelease"] == 2023
        assert len(list(content_storage.root.rglob("video.mp4"))) == 1

    def test_publish_invalid_metadata(self, client):
        response = _publish(client, metadata={**METADATA, "title": "", "yearOfRelease": 0})
        assert response.status_code == 400
        errors = response.json()["errors"]
        assert "title" in errors
        assert "yearOfRelease" in errors

    def test_publish_malformed_metadata_json(self, client):
        response = client.post(
            "/videos",
            data={"metadata": "{not json"},
            files={"videoFile": ("video.mp4", b"data", "video/mp4")},
        )
        assert response.status_code == 400

    def test_publish_missing_file_part(self, client):
        response = client.post("/videos", data={"metadata": json.dumps(METADATA)})
        assert response.status_code == 400

    def test_publish_filename_outside_root(self, client):
        response = _publish(client, filename="../escape.mp4")
        assert response.status_code == 400
        assert "Invalid file upload" in response.json()["detail"]


class TestUpdate:
    def test_update(self, client):
        video_id = _publish(client).json()["id"]
        response = client.put(f"/videos/{video_id}", json={**METADATA, "title": "Renamed"})
        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["id"] == video_id

    def test_update_not_found(self, client):
        response = client.put("/videos/999", json=METADATA)
        assert response.status_code == 404

    def test_update_invalid_body(self, client):
        video_id = _publish(client).json()["id"]
        response = client.put(f"/videos/{video_id}", json={**METADATA, "director": "  "})
        assert response.status_code == 400
        assert "director" in response.json()["errors"]


class TestDelist:
    def test_delist(self, client):
        video_id = _publish(client).json()["id"]
        response = client.delete(f"/videos/{video_id}")
        assert response.status_code == 204
        assert client.get(f"/videos/{video_id}").status_code == 404
        assert client.get(f"/videos/{video_id}/play").status_code == 404

    def test_delist_not_found(self, client):
        assert client.delete("/videos/999").status_code == 404


class TestLoadAndPlay:
    def test_load(self, client):
        video_id = _publish(client).json()["id"]
        response = client.get(f"/videos/{video_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["metadata"]["id"] == video_id
        assert body["metadata"]["mainActor"] == "Brad Pitt"
        assert body["preview"] == "sample content f"

    def test_load_not_found(self, client):
        assert client.get("/videos/999").status_code == 404

    def test_load_missing_content(self, client, sqlite_repo):
        video_id = _publish(client).json()["id"]
        Path(sqlite_repo.find_by_id(video_id).video_location).unlink()
        response = client.get(f"/videos/{video_id}")
        assert response.status_code == 404
        assert "Video file not found" in response.json()["detail"]

    def test_play(self, client):
        video_id = _publish(client, content=b"Video Content").json()["id"]
        response = client.get(f"/videos/{video_id}/play")
        assert response.status_code == 200
        assert response.text == "Video Content"
        assert response.headers["content-type"].startswith("text/plain")

    def test_non_integer_id(self, client):
        assert client.get("/videos/abc").status_code == 400


class TestList:
    @pytest.fixture
    def published(self, client):
        _publish(client, metadata={**METADATA, "title": "Video A", "director": "Director A", "yearOfRelease": 2022}, filename="a.mp4")
        _publish(client, metadata={**METADATA, "title": "Video B", "director": "Director B", "yearOfRelease": 2023}, filename="b.mp4")

    def test_list_all(self, client, published):
        body = client.get("/videos").json()
        assert [v["title"] for v in body["content"]] == ["Video A", "Video B"]
        assert body["totalElements"] == 2
        assert body["totalPages"] == 1

    def test_list_by_title(self, client, published):
        body = client.get("/videos", params={"title": "Video A"}).json()
        assert [v["title"] for v in body["content"]] == ["Video A"]

    def test_list_by_year(self, client, published):
        body = client.get("/videos", params={"yearOfRelease": 2022}).json()
        assert [v["title"] for v in body["content"]] == ["Video A"]

    def test_list_paging_and_sort(self, client, published):
        body = client.get("/videos", params={"page": 0, "size": 1, "sort": "title,desc"}).json()
        assert [v["title"] for v in body["content"]] == ["Video B"]
        assert body["size"] == 1
        assert body["totalPages"] == 2

    def test_list_size_is_capped(self, client, published):
        body = client.get("/videos", params={"size": 100000}).json()
        assert body["size"] == 100

    def test_list_view_shape(self, client, published):
        item = client.get("/videos").json()["content"][0]
        assert set(item) == {"id", "title", "director", "mainActor", "genre", "runningTime"}

    def test_list_unknown_sort_field(self, client, published):
        response = client.get("/videos", params={"sort": "bogus"})
        assert response.status_code == 400

    def test_list_invalid_sort_direction(self, client, published):
        response = client.get("/videos", params={"sort": "title,sideways"})
        assert response.status_code == 400

    def test_list_negative_page(self, client):
        assert client.get("/videos", params={"page": -1}).status_code == 400


class TestEngagementStatistics:
    def test_statistics(self, client):
        video_id = _publish(client).json()["id"]
        client.get(f"/videos/{video_id}")
        client.get(f"/videos/{video_id}")
        client.get(f"/videos/{video_id}/play")
        response = client.get(f"/videos/{video_id}/engagement-statistics")
        assert response.status_code == 200
        assert response.json() == {"impressions": 2, "views": 1}

    def test_statistics_not_found(self, client):
        assert client.get("/videos/999/engagement-statistics").status_code == 404


class TestErrors:
    def test_constraint_violation_maps_to_400(self, client, sqlite_repo):
        from videocatalog.storage.repository import ConstraintViolationError

        with patch.object(sqlite_repo, "save", side_effect=ConstraintViolationError("CHECK failed")):
            response = _publish(client)
        assert response.status_code == 400
        assert "constraint" in response.json()["detail"]

    def test_unexpected_error_maps_to_500(self, client, sqlite_repo, caplog):
        with caplog.at_level(logging.INFO, logger="videocatalog.api"):
            with patch.object(sqlite_repo, "find_by_id", side_effect=RuntimeError("disk on fire")):
                response = client.get("/videos/1/engagement-statistics")
        assert response.status_code == 500
        assert response.json() == {"detail": "An unexpected error occurred."}
        assert "disk on fire" not in response.text
        assert any("-> 500" in r.getMessage() for r in caplog.records)
        assert sum(r.exc_info is not None for r in caplog.records if r.name.startswith("videocatalog")) == 1

    def test_oversized_upload_maps_to_413(self, sqlite_repo, tmp_path):
        storage = LocalFileSystemContentStorage(tmp_path, max_upload_size=8)
        client = TestClient(create_app(VideoCatalogService(sqlite_repo, storage)))
        response = _publish(client, content=b"more than eight bytes")
        assert response.status_code == 413
        assert "File size exceeds the limit" in response.json()["detail"]
        assert client.get("/videos").json()["totalElements"] == 0

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
