"""Tests for video_api routes."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from vidvault.config import Settings
from vidvault.shared.exceptions import ListError, ResolveError, UploadError
from vidvault.shared.models import RemoteFile, UploadResult
from vidvault.video_api.app import create_app
from vidvault.video_api.cache import TTLCache
from vidvault.video_api.metadata import generate_video_id, is_video_file
from vidvault.video_api.routes import _safe_filename


def _remote(name: str, fs_id: str, mtime: int = 1_700_000_000) -> RemoteFile:
    return RemoteFile(fs_id=fs_id, path=f"/videos/{name}", server_filename=name, size=100, server_mtime=mtime)


@pytest.fixture
def app(settings: Settings, mock_gateway: AsyncMock):
    """Create a test FastAPI application in open mode."""
    return create_app(settings, gateway=mock_gateway)


@pytest.fixture
def restricted_app(mock_gateway: AsyncMock):
    return create_app(Settings(api_keys="secret1,secret2"), gateway=mock_gateway)


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_health_returns_ok(app):
    async with _client(app) as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestListVideos:
    async def test_lists_derived_records(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.list_videos.return_value = [_remote("a.mp4", "1"), _remote("b.MKV", "2")]

        async with _client(app) as client:
            response = await client.get("/videos")

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["pagination"] == {"page": 1, "limit": 50, "total": 2, "totalPages": 1}
        first, second = payload["videos"]
        assert first["id"] == generate_video_id("a.mp4", 1_700_000_000)
        assert first["uploadedAt"] == 1_700_000_000_000
        assert first["remoteFileId"] == "1"
        assert second["mimeType"] == "video/x-matroska"
        mock_gateway.list_videos.assert_awaited_once_with("/videos")

    async def test_pagination_window(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.list_videos.return_value = [_remote(f"v{i}.mp4", str(i)) for i in range(5)]

        async with _client(app) as client:
            response = await client.get("/videos", params={"page": 2, "limit": 2, "directory": "/movies"})

        payload = response.json()
        assert [v["remoteFileId"] for v in payload["videos"]] == ["2", "3"]
        assert payload["pagination"] == {"page": 2, "limit": 2, "total": 5, "totalPages": 3}
        mock_gateway.list_videos.assert_awaited_once_with("/movies")

    async def test_page_past_end_is_empty(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.list_videos.return_value = [_remote("a.mp4", "1")]

        async with _client(app) as client:
            response = await client.get("/videos", params={"page": 3})

        assert response.json()["videos"] == []

    async def test_invalid_page_returns_400(self, app) -> None:
        async with _client(app) as client:
            response = await client.get("/videos", params={"page": 0})

        assert response.status_code == 400
        assert "page" in response.json()["error"]

    async def test_upstream_failure_returns_500(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.list_videos.side_effect = ListError("Failed to list videos: boom")

        async with _client(app) as client:
            response = await client.get("/videos")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to list videos: boom"}


class TestGetVideo:
    async def test_cache_miss_resolves_caches_and_redirects(self, app, mock_gateway: AsyncMock) -> None:
        async with _client(app) as client:
            response = await client.get("/videos/123")

        assert response.status_code == 307
        assert response.headers["location"] == "https://d.terabox.com/file/abc?sign=xyz"
        mock_gateway.get_video_url.assert_awaited_once_with("123")
        assert app.state.cache.get("video-url-123") == "https://d.terabox.com/file/abc?sign=xyz"

    async def test_cache_hit_skips_gateway(self, app, mock_gateway: AsyncMock) -> None:
        app.state.cache.set("video-url-123", "https://cached.example.com/v")

        async with _client(app) as client:
            response = await client.get("/videos/123")

        assert response.status_code == 307
        assert response.headers["location"] == "https://cached.example.com/v"
        mock_gateway.get_video_url.assert_not_awaited()

    async def test_json_format(self, app, mock_gateway: AsyncMock) -> None:
        async with _client(app) as client:
            response = await client.get("/videos/123", params={"format": "json"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "url": "https://d.terabox.com/file/abc?sign=xyz", "id": "123"}

    async def test_json_format_on_cache_hit(self, app, mock_gateway: AsyncMock) -> None:
        app.state.cache.set("video-url-9", "https://cached.example.com/9")

        async with _client(app) as client:
            response = await client.get("/videos/9", params={"format": "json"})

        assert response.json()["url"] == "https://cached.example.com/9"
        mock_gateway.get_video_url.assert_not_awaited()

    async def test_uses_url_cache_ttl(self, mock_gateway: AsyncMock, clock) -> None:
        cache = TTLCache(default_ttl=999_999, clock=clock)
        app = create_app(Settings(url_cache_ttl=10), gateway=mock_gateway, cache=cache)

        async with _client(app) as client:
            await client.get("/videos/1")
            clock.advance(11)
            await client.get("/videos/1")

        assert mock_gateway.get_video_url.await_count == 2

    async def test_resolve_failure_returns_500(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.get_video_url.side_effect = ResolveError("Failed to get video URL: nope")

        async with _client(app) as client:
            response = await client.get("/videos/1")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to get video URL: nope"
        assert app.state.cache.stats().total == 0

    async def test_gateway_unavailable_returns_503(self, settings: Settings) -> None:
        app = create_app(settings)

        async with _client(app) as client:
            response = await client.get("/videos/1")

        assert response.status_code == 503
        assert response.json() == {"error": "storage gateway unavailable"}


class TestDeleteVideo:
    async def test_authorized_delete_invalidates_cache(self, restricted_app, mock_gateway: AsyncMock) -> None:
        restricted_app.state.cache.set("video-url-123", "https://cached.example.com/v")

        async with _client(restricted_app) as client:
            response = await client.delete(
                "/videos/123", params={"path": "/videos/a.mp4"}, headers={"x-api-key": "secret1"}
            )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Video deleted successfully", "id": "123"}
        mock_gateway.delete_video.assert_awaited_once_with("/videos/a.mp4")
        assert not restricted_app.state.cache.has("video-url-123")

    async def test_wrong_key_is_unauthorized(self, restricted_app, mock_gateway: AsyncMock) -> None:
        async with _client(restricted_app) as client:
            response = await client.delete("/videos/123", params={"path": "/x.mp4"}, headers={"x-api-key": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"error": "invalid credential"}
        mock_gateway.delete_video.assert_not_awaited()

    async def test_missing_key_is_unauthorized(self, restricted_app) -> None:
        async with _client(restricted_app) as client:
            response = await client.delete("/videos/123", params={"path": "/x.mp4"})

        assert response.status_code == 401
        assert response.json() == {"error": "missing credential"}

    async def test_missing_path_returns_400(self, app) -> None:
        async with _client(app) as client:
            response = await client.delete("/videos/123")

        assert response.status_code == 400
        assert response.json() == {"error": "Video path is required"}

    async def test_failed_delete_keeps_cache(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.delete_video.return_value = False
        app.state.cache.set("video-url-123", "https://cached.example.com/v")

        async with _client(app) as client:
            response = await client.delete("/videos/123", params={"path": "/x.mp4"})

        assert response.status_code == 500
        assert response.json() == {"error": "Delete operation failed"}
        assert app.state.cache.has("video-url-123")


class TestMoveVideo:
    async def test_move_invalidates_cache(self, app, mock_gateway: AsyncMock) -> None:
        app.state.cache.set("video-url-5", "https://cached.example.com/5")

        async with _client(app) as client:
            response = await client.patch(
                "/videos/5", json={"path": "/videos/a.mp4", "directory": "/archive", "name": "b.mp4"}
            )

        assert response.status_code == 200
        assert response.json()["message"] == "Video moved successfully"
        mock_gateway.move_video.assert_awaited_once_with("/videos/a.mp4", "/archive", "b.mp4")
        assert not app.state.cache.has("video-url-5")

    async def test_move_requires_key(self, restricted_app) -> None:
        async with _client(restricted_app) as client:
            response = await client.patch("/videos/5", json={"path": "/a.mp4", "directory": "/b", "name": "c.mp4"})

        assert response.status_code == 401

    async def test_move_incomplete_body_returns_400(self, app) -> None:
        async with _client(app) as client:
            response = await client.patch("/videos/5", json={"path": "/a.mp4"})

        assert response.status_code == 400


class TestUpload:
    async def test_upload_success_cleans_staging(self, app, mock_gateway: AsyncMock, sample_file) -> None:
        staged: list[str] = []

        async def fake_upload(local_path: str, directory: str) -> UploadResult:
            staged.append(local_path)
            with open(local_path, "rb") as f:
                assert f.read() == b"fake-video-bytes"
            return UploadResult(success=True, file=sample_file)

        mock_gateway.upload_video.side_effect = fake_upload

        async with _client(app) as client:
            response = await client.post(
                "/upload",
                files={"video": ("holiday.mp4", b"fake-video-bytes", "video/mp4")},
                data={"directory": "/movies"},
            )

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["message"] == "Video uploaded successfully"
        assert payload["video"]["remoteFileId"] == "123456789"
        assert os.path.basename(staged[0]) == "holiday.mp4"
        assert not os.path.exists(staged[0])
        mock_gateway.upload_video.assert_awaited_once_with(staged[0], "/movies")

    async def test_upload_defaults_directory(self, app, mock_gateway: AsyncMock, sample_file) -> None:
        mock_gateway.upload_video.return_value = UploadResult(success=True, file=sample_file)

        async with _client(app) as client:
            await client.post("/upload", files={"video": ("a.mp4", b"x", "video/mp4")})

        assert mock_gateway.upload_video.await_args.args[1] == "/videos"

    async def test_upload_failure_cleans_staging(self, app, mock_gateway: AsyncMock) -> None:
        staged: list[str] = []

        async def failing_upload(local_path: str, directory: str) -> UploadResult:
            staged.append(local_path)
            raise UploadError("Failed to upload video: quota exceeded")

        mock_gateway.upload_video.side_effect = failing_upload

        async with _client(app) as client:
            response = await client.post("/upload", files={"video": ("a.mp4", b"x", "video/mp4")})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to upload video: quota exceeded"}
        assert not os.path.exists(staged[0])

    async def test_unsuccessful_result_returns_500(self, app, mock_gateway: AsyncMock) -> None:
        mock_gateway.upload_video.return_value = UploadResult(success=False, message="rejected")

        async with _client(app) as client:
            response = await client.post("/upload", files={"video": ("a.mp4", b"x", "video/mp4")})

        assert response.status_code == 500
        assert response.json() == {"error": "rejected"}

    async def test_missing_file_returns_400(self, app, mock_gateway: AsyncMock) -> None:
        async with _client(app) as client:
            response = await client.post("/upload", data={"directory": "/movies"})

        assert response.status_code == 400
        assert response.json() == {"error": "No video file provided"}
        mock_gateway.upload_video.assert_not_awaited()

    async def test_non_video_returns_400(self, app, mock_gateway: AsyncMock) -> None:
        async with _client(app) as client:
            response = await client.post("/upload", files={"video": ("notes.txt", b"hi", "text/plain")})

        assert response.status_code == 400
        assert response.json() == {"error": "File must be a video"}
        mock_gateway.upload_video.assert_not_awaited()

    async def test_upload_requires_key(self, restricted_app, mock_gateway: AsyncMock) -> None:
        async with _client(restricted_app) as client:
            response = await client.post("/upload", files={"video": ("a.mp4", b"x", "video/mp4")})

        assert response.status_code == 401
        mock_gateway.upload_video.assert_not_awaited()


async def test_cache_stats(app) -> None:
    app.state.cache.set("a", 1)
    app.state.cache.set("b", 2, ttl=0)

    async with _client(app) as client:
        response = await client.get("/cache/stats")

    assert response.json() == {"total": 2, "active": 1, "expired": 1}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("holiday.mp4", "holiday.mp4"),
        ("\U0001f3ac.mp4", "upload.mp4"),
        ("my.trip (1).MKV", "my.trip (1).MKV"),
        ("../../etc/clip.mov", "clip.mov"),
        ("..", "upload.mp4"),
        ("", "upload.mp4"),
        ("noext", "noext"),
    ],
)
def test_safe_filename_keeps_extension(raw: str, expected: str) -> None:
    assert _safe_filename(raw) == expected


async def test_upload_of_symbol_only_name_stays_listable(app, mock_gateway: AsyncMock, sample_file) -> None:
    staged: list[str] = []

    async def fake_upload(local_path: str, directory: str) -> UploadResult:
        staged.append(local_path)
        return UploadResult(success=True, file=sample_file)

    mock_gateway.upload_video.side_effect = fake_upload

    async with _client(app) as client:
        response = await client.post("/upload", files={"video": ("\U0001f3ac.mp4", b"x", "video/mp4")})

    assert response.status_code == 200
    assert os.path.basename(staged[0]) == "upload.mp4"
    assert is_video_file(os.path.basename(staged[0]))
