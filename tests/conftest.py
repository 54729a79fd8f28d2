"""Shared pytest fixtures for the vidvault test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from vidvault.config import Settings
from vidvault.shared.models import RemoteFile, TeraboxCredentials


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    """Return a Settings instance with test defaults."""
    return Settings(
        api_keys="",
        cache_ttl=3600,
        url_cache_ttl=3600,
        upload_directory="/videos",
        default_page_limit=50,
    )


@pytest.fixture()
def credentials() -> TeraboxCredentials:
    return TeraboxCredentials(
        ndus="ndus-cookie",
        app_id="250528",
        upload_id="upload-id",
        js_token="js-token",
        browser_id="browser-id",
    )


@pytest.fixture()
def sample_file() -> RemoteFile:
    return RemoteFile(
        fs_id="123456789",
        path="/videos/holiday.mp4",
        server_filename="holiday.mp4",
        size=10_485_760,
        server_mtime=1_700_000_000,
    )


@pytest.fixture()
def mock_gateway() -> AsyncMock:
    """Mock storage gateway."""
    mock = AsyncMock()
    mock.list_videos = AsyncMock(return_value=[])
    mock.get_video_url = AsyncMock(return_value="https://d.terabox.com/file/abc?sign=xyz")
    mock.delete_video = AsyncMock(return_value=True)
    mock.move_video = AsyncMock(return_value=True)
    return mock
