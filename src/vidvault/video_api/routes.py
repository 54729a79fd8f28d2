"""API routes for video_api."""

from __future__ import annotations

import logging
import math
import os
import shutil
import tempfile
from typing import Any

import aiofiles  # type: ignore[import-untyped]
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from vidvault.config import Settings
from vidvault.shared.exceptions import DeleteError, MoveError, UnavailableError, UploadError, ValidationError
from vidvault.shared.models import Pagination
from vidvault.video_api.auth import require_api_key
from vidvault.video_api.cache import TTLCache
from vidvault.video_api.interfaces import StorageGateway
from vidvault.video_api.metadata import derive

logger = logging.getLogger(__name__)

router = APIRouter()

_STAGING_CHUNK_SIZE = 1024 * 1024


class MoveVideoRequest(BaseModel):
    path: str
    directory: str
    name: str


def _state(request: Request, key: str) -> Any:
    return getattr(request.app.state, key, None)


def _get_settings(request: Request) -> Settings:
    return _state(request, "settings")


def _get_cache(request: Request) -> TTLCache:
    return _state(request, "cache")


def _get_gateway(request: Request) -> StorageGateway:
    gateway = _state(request, "gateway")
    if gateway is None or not hasattr(gateway, "get_video_url"):
        raise UnavailableError("storage gateway unavailable")
    return gateway


def url_cache_key(video_id: str) -> str:
    return f"video-url-{video_id}"


def _safe_filename(name: str | None) -> str:
    """Sanitize an upload filename, keeping its extension."""
    base = os.path.basename(name or "").strip()
    stem, dot, ext = base.rpartition(".")
    if not dot:
        stem, ext = base, ""
    stem = "".join(c for c in stem if c.isalnum() or c in " .-_()[]").strip().lstrip(".")
    ext = "".join(c for c in ext if c.isalnum())
    if not ext:
        return stem or "upload.mp4"
    return f"{stem or 'upload'}.{ext}"


def _discard_staging(staging_dir: str) -> None:
    try:
        shutil.rmtree(staging_dir)
    except OSError as exc:
        logger.error("failed to delete staged upload %s: %s", staging_dir, exc)


@router.post("/upload", dependencies=[Depends(require_api_key)])
async def upload_video(
    request: Request,
    video: UploadFile | None = File(None),
    directory: str | None = Form(None),
) -> dict[str, Any]:
    """Stage an uploaded video locally, then push it to remote storage."""
    if video is None or not video.filename:
        raise ValidationError("No video file provided")
    if not (video.content_type or "").startswith("video/"):
        raise ValidationError("File must be a video")

    settings = _get_settings(request)
    gateway = _get_gateway(request)
    target_dir = directory or settings.upload_directory

    staging_dir = tempfile.mkdtemp(prefix="vidvault-upload-")
    staged_path = os.path.join(staging_dir, _safe_filename(video.filename))
    try:
        async with aiofiles.open(staged_path, "wb") as out:
            while chunk := await video.read(_STAGING_CHUNK_SIZE):
                await out.write(chunk)

        result = await gateway.upload_video(staged_path, target_dir)
        if not result.success or result.file is None:
            raise UploadError(result.message or "Upload failed")
    finally:
        _discard_staging(staging_dir)

    record = derive(result.file)
    logger.info("uploaded %s to %s as %s", video.filename, target_dir, record.remote_file_id)
    return {
        "success": True,
        "video": record.model_dump(by_alias=True),
        "message": "Video uploaded successfully",
    }


@router.get("/videos")
async def list_videos(
    request: Request,
    directory: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> dict[str, Any]:
    """List video records in a remote directory, one page at a time."""
    settings = _get_settings(request)
    gateway = _get_gateway(request)
    per_page = limit or settings.default_page_limit

    videos = [derive(remote_file) for remote_file in await gateway.list_videos(directory or settings.upload_directory)]
    start = (page - 1) * per_page
    window = videos[start : start + per_page]

    pagination = Pagination(
        page=page,
        limit=per_page,
        total=len(videos),
        total_pages=math.ceil(len(videos) / per_page),
    )
    return {
        "success": True,
        "videos": [record.model_dump(by_alias=True) for record in window],
        "pagination": pagination.model_dump(by_alias=True),
    }


@router.get("/videos/{video_id}", response_model=None)
async def get_video(
    video_id: str,
    request: Request,
    format: str | None = Query(None),
) -> RedirectResponse | dict[str, Any]:
    """Resolve a playback URL (cache first) and redirect to it or return it."""
    cache = _get_cache(request)
    key = url_cache_key(video_id)

    video_url: str | None = cache.get(key)
    if video_url is None:
        gateway = _get_gateway(request)
        video_url = await gateway.get_video_url(video_id)
        cache.set(key, video_url, _get_settings(request).url_cache_ttl)
    else:
        logger.debug("playback URL cache hit for %s", video_id)

    if format == "json":
        return {"success": True, "url": video_url, "id": video_id}
    return RedirectResponse(url=video_url, status_code=307)


@router.delete("/videos/{video_id}", dependencies=[Depends(require_api_key)])
async def delete_video(
    video_id: str,
    request: Request,
    path: str | None = Query(None),
) -> dict[str, Any]:
    """Delete a remote video and drop its cached playback URL."""
    if not path:
        raise ValidationError("Video path is required")

    gateway = _get_gateway(request)
    if not await gateway.delete_video(path):
        raise DeleteError("Delete operation failed")

    _get_cache(request).delete(url_cache_key(video_id))
    logger.info("deleted video %s at %s", video_id, path)
    return {"success": True, "message": "Video deleted successfully", "id": video_id}


@router.patch("/videos/{video_id}", dependencies=[Depends(require_api_key)])
async def move_video(video_id: str, body: MoveVideoRequest, request: Request) -> dict[str, Any]:
    """Move and/or rename a remote video and drop its cached playback URL."""
    gateway = _get_gateway(request)
    if not await gateway.move_video(body.path, body.directory, body.name):
        raise MoveError("Move operation failed")

    _get_cache(request).delete(url_cache_key(video_id))
    logger.info("moved video %s from %s to %s/%s", video_id, body.path, body.directory, body.name)
    return {"success": True, "message": "Video moved successfully", "id": video_id}


@router.get("/cache/stats")
async def cache_stats(request: Request) -> dict[str, int]:
    """Report playback-URL cache occupancy."""
    return _get_cache(request).stats().model_dump()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Status dictionary
    """
    return {"status": "ok"}
