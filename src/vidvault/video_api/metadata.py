"""Derive client-facing video records from remote file descriptors."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable

from vidvault.shared.models import RemoteFile, VideoRecord

logger = logging.getLogger(__name__)

VIDEO_MIME_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".wmv": "video/x-ms-wmv",
    ".flv": "video/x-flv",
    ".webm": "video/webm",
    ".m4v": "video/x-m4v",
}
VIDEO_EXTENSIONS = frozenset(VIDEO_MIME_TYPES)
DEFAULT_MIME_TYPE = "video/mp4"

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def _extension(filename: str) -> str:
    _, dot, ext = filename.lower().rpartition(".")
    return f".{ext}" if dot and ext else ""


def generate_video_id(filename: str, timestamp: int) -> str:
    """Return a stable 16-hex-char display id for a file.

    Files sharing both name and modification time get the same id.
    """
    digest = hashlib.md5(f"{filename}-{timestamp}".encode(), usedforsecurity=False).hexdigest()
    return digest[:16]


def get_video_mime_type(filename: str) -> str:
    return VIDEO_MIME_TYPES.get(_extension(filename), DEFAULT_MIME_TYPE)


def is_video_file(filename: str) -> bool:
    return _extension(filename) in VIDEO_EXTENSIONS


def derive(remote_file: RemoteFile) -> VideoRecord:
    """Build the ``VideoRecord`` for a remote file."""
    return VideoRecord(
        id=generate_video_id(remote_file.server_filename, remote_file.server_mtime),
        filename=remote_file.server_filename,
        size=remote_file.size,
        uploaded_at=remote_file.server_mtime * 1000,
        path=remote_file.path,
        remote_file_id=remote_file.fs_id,
        mime_type=get_video_mime_type(remote_file.server_filename),
    )


def filter_videos(files: Iterable[RemoteFile]) -> list[RemoteFile]:
    """Keep only files with a known video extension."""
    videos: list[RemoteFile] = []
    for remote_file in files:
        if is_video_file(remote_file.server_filename):
            videos.append(remote_file)
        else:
            logger.debug("skipping non-video: %s", remote_file.server_filename)
    return videos


def format_file_size(num_bytes: int) -> str:
    """Render a byte count as e.g. ``"1.5 MB"``."""
    if num_bytes <= 0:
        return "0 Bytes"
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[index]}"


def format_duration(seconds: float) -> str:
    """Render seconds as ``m:ss`` or ``h:mm:ss``."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
