"""Frozen Pydantic domain models shared by all modules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TeraboxCredentials(BaseModel):
    """Browser-session credentials for a TeraBox account."""

    model_config = {"frozen": True}

    ndus: str = ""
    app_id: str = ""
    upload_id: str = ""
    js_token: str = ""
    browser_id: str = ""

    def missing(self) -> list[str]:
        """Return the names of credential fields that are unset."""
        return [name for name, value in self.model_dump().items() if not value]


class RemoteFile(BaseModel):
    """Canonical descriptor of a file held by the storage provider."""

    model_config = {"frozen": True}

    fs_id: str
    path: str
    server_filename: str
    size: int = 0
    server_mtime: int = 0
    category: int = 0
    isdir: bool = False


class UploadResult(BaseModel):
    """Outcome of a single upload through the storage gateway."""

    model_config = {"frozen": True}

    success: bool
    message: str | None = None
    file: RemoteFile | None = None


class VideoRecord(BaseModel):
    """Client-facing video derived from a ``RemoteFile`` on each request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    filename: str
    size: int
    uploaded_at: int = Field(alias="uploadedAt")
    path: str
    remote_file_id: str = Field(alias="remoteFileId")
    mime_type: str = Field(alias="mimeType")


class Pagination(BaseModel):
    """Page window over a video listing."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class CacheStats(BaseModel):
    """Point-in-time entry counts for a ``TTLCache``."""

    model_config = {"frozen": True}

    total: int
    active: int
    expired: int
