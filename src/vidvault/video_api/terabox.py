"""TeraBox storage gateway."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import posixpath
from typing import Any

import aiofiles  # type: ignore[import-untyped]
import httpx

from vidvault.shared.exceptions import (
    ConfigurationError,
    DeleteError,
    ListError,
    MoveError,
    ResolveError,
    UploadError,
    UpstreamError,
)
from vidvault.shared.models import RemoteFile, TeraboxCredentials, UploadResult
from vidvault.video_api.metadata import filter_videos

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.terabox.com"
DEFAULT_UPLOAD_URL = "https://c-jp.terabox.com"
DEFAULT_CHUNK_SIZE = 4 * 1024 * 1024


def normalize_file_list(response: Any) -> list[RemoteFile]:
    """Convert any of the provider's listing shapes into ``RemoteFile``s.

    Accepted shapes: a bare list, ``{"data": {"list": [...]}}`` and
    ``{"list": [...]}``. Anything else is treated as an empty listing.
    """
    items: list[Any] = []
    if isinstance(response, list):
        items = response
    elif isinstance(response, dict):
        data = response.get("data")
        if isinstance(data, dict) and isinstance(data.get("list"), list):
            items = data["list"]
        elif isinstance(response.get("list"), list):
            items = response["list"]

    files: list[RemoteFile] = []
    for item in items:
        remote_file = to_remote_file(item)
        if remote_file is None:
            logger.warning("skip malformed file entry: %r", item)
            continue
        files.append(remote_file)
    return files


def to_remote_file(item: Any) -> RemoteFile | None:
    """Map one provider file entry to a ``RemoteFile``; ``None`` if unusable."""
    if not isinstance(item, dict):
        return None
    fs_id = item.get("fs_id")
    path = item.get("path")
    if fs_id in (None, "") or not isinstance(path, str) or not path:
        return None
    try:
        return RemoteFile(
            fs_id=str(fs_id),
            path=path,
            server_filename=item.get("server_filename") or posixpath.basename(path),
            size=int(item.get("size") or 0),
            server_mtime=int(item.get("server_mtime") or item.get("mtime") or 0),
            category=int(item.get("category") or 0),
            isdir=bool(int(item.get("isdir") or 0)),
        )
    except (TypeError, ValueError):
        return None


def _numeric_fs_id(fs_id: str) -> int | str:
    """TeraBox expects numeric ids as JSON numbers; anything else passes through."""
    if fs_id.isascii() and fs_id.isdigit() and len(fs_id) <= 19:
        return int(fs_id)
    return fs_id


def _extract_dlink(response: dict[str, Any]) -> str | None:
    dlink = response.get("dlink")
    if isinstance(dlink, str) and dlink:
        return dlink
    if isinstance(dlink, list):
        for entry in dlink:
            if isinstance(entry, dict) and isinstance(entry.get("dlink"), str) and entry["dlink"]:
                return entry["dlink"]
    return None


class TeraboxGateway:
    """Talks to the TeraBox web API using browser-session credentials.

    Implements the ``StorageGateway`` protocol.
    """

    def __init__(
        self,
        credentials: TeraboxCredentials,
        *,
        base_url: str = DEFAULT_BASE_URL,
        upload_url: str = DEFAULT_UPLOAD_URL,
        timeout: int = 60,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        missing = credentials.missing()
        if missing:
            raise ConfigurationError(
                f"Missing Terabox credentials: {', '.join(missing)}. Please check your environment."
            )
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self._upload_url = upload_url.rstrip("/")
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Initialize the persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                cookies={"ndus": self._credentials.ndus, "browserid": self._credentials.browser_id},
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            )

    async def close(self) -> None:
        """Close the persistent HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {
            "app_id": self._credentials.app_id,
            "web": "1",
            "channel": "dubox",
            "clienttype": "0",
            "jsToken": self._credentials.js_token,
        }
        params.update(extra)
        return params

    async def _request(
        self,
        method: str,
        url: str,
        *,
        error_cls: type[UpstreamError],
        context: str,
        check_errno: bool = True,
        **kwargs: Any,
    ) -> Any:
        if self._client is None:
            await self.start()
        if self._client is None:
            raise error_cls(f"{context}: HTTP client is not initialized")

        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("terabox %s %s returned %d", method, url, exc.response.status_code)
            raise error_cls(f"{context}: Terabox returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("terabox %s %s failed: %s", method, url, exc)
            raise error_cls(f"{context}: {exc}") from exc
        except ValueError as exc:
            logger.error("terabox %s %s returned invalid JSON", method, url)
            raise error_cls(f"{context}: invalid JSON response") from exc

        if check_errno and isinstance(data, dict) and data.get("errno", 0) != 0:
            logger.error("terabox %s %s errno=%s", method, url, data.get("errno"))
            raise error_cls(f"{context}: Terabox errno {data.get('errno')}")
        return data

    async def list_files(self, directory: str) -> list[RemoteFile]:
        """List every entry in ``directory``.

        Raises:
            ListError: If the request fails.
        """
        logger.info("fetching files from directory: %s", directory)
        response = await self._request(
            "GET",
            f"{self._base_url}/api/list",
            error_cls=ListError,
            context="Failed to list videos",
            params=self._params(dir=directory, num=1000, page=1, order="time", desc=1),
        )
        files = normalize_file_list(response)
        logger.info("total files found: %d", len(files))
        return files

    async def list_videos(self, directory: str) -> list[RemoteFile]:
        """List only the video files in ``directory``."""
        videos = filter_videos(await self.list_files(directory))
        logger.info("video files found: %d", len(videos))
        return videos

    async def get_video_url(self, fs_id: str) -> str:
        """Resolve ``fs_id`` to a direct download link.

        Raises:
            ResolveError: If the request fails or no link is returned.
        """
        fid = _numeric_fs_id(fs_id)
        response = await self._request(
            "GET",
            f"{self._base_url}/api/download",
            error_cls=ResolveError,
            context="Failed to get video URL",
            params=self._params(fidlist=json.dumps([fid]), type="dlink"),
        )
        dlink = _extract_dlink(response) if isinstance(response, dict) else None
        if dlink is None:
            logger.error("terabox returned no download link for %s", fs_id)
            raise ResolveError("Failed to get video URL: No download link returned from Terabox")
        return dlink

    async def delete_video(self, path: str) -> bool:
        """Delete the file at ``path``; return whether TeraBox reported success."""
        response = await self._request(
            "POST",
            f"{self._base_url}/api/filemanager",
            error_cls=DeleteError,
            context="Failed to delete video",
            check_errno=False,
            params=self._params(opera="delete"),
            data={"filelist": json.dumps([path])},
        )
        return isinstance(response, dict) and response.get("errno") == 0

    async def move_video(self, old_path: str, new_directory: str, new_name: str) -> bool:
        """Move/rename ``old_path``; return whether TeraBox reported success."""
        filelist = [{"path": old_path, "dest": new_directory, "newname": new_name}]
        response = await self._request(
            "POST",
            f"{self._base_url}/api/filemanager",
            error_cls=MoveError,
            context="Failed to move video",
            check_errno=False,
            params=self._params(opera="move"),
            data={"filelist": json.dumps(filelist)},
        )
        return isinstance(response, dict) and response.get("errno") == 0

    async def upload_video(self, local_path: str, directory: str) -> UploadResult:
        """Upload ``local_path`` into ``directory`` via precreate/superfile2/create.

        Raises:
            UploadError: If any upload step fails.
        """
        context = "Failed to upload video"
        try:
            size = os.path.getsize(local_path)
            block_list = await self._block_md5s(local_path)
        except OSError as exc:
            logger.error("cannot read staged upload %s: %s", local_path, exc)
            raise UploadError(f"{context}: {exc}") from exc

        remote_path = posixpath.join(directory, os.path.basename(local_path))
        precreate = await self._request(
            "POST",
            f"{self._base_url}/api/precreate",
            error_cls=UploadError,
            context=context,
            params=self._params(),
            data={
                "path": remote_path,
                "size": str(size),
                "autoinit": "1",
                "target_path": directory,
                "block_list": json.dumps(block_list),
            },
        )
        upload_id = (precreate.get("uploadid") if isinstance(precreate, dict) else None) or self._credentials.upload_id

        partseq = 0
        try:
            async with aiofiles.open(local_path, "rb") as f:
                while True:
                    chunk = await f.read(self._chunk_size)
                    if not chunk and partseq > 0:
                        break
                    await self._request(
                        "POST",
                        f"{self._upload_url}/rest/2.0/pcs/superfile2",
                        error_cls=UploadError,
                        context=context,
                        params=self._params(
                            method="upload",
                            type="tmpfile",
                            path=remote_path,
                            uploadid=upload_id,
                            uploadsign="0",
                            partseq=str(partseq),
                        ),
                        files={"file": ("blob", chunk, "application/octet-stream")},
                    )
                    partseq += 1
                    if len(chunk) < self._chunk_size:
                        break
        except OSError as exc:
            logger.error("cannot read staged upload %s: %s", local_path, exc)
            raise UploadError(f"{context}: {exc}") from exc

        created = await self._request(
            "POST",
            f"{self._base_url}/api/create",
            error_cls=UploadError,
            context=context,
            params=self._params(),
            data={
                "path": remote_path,
                "size": str(size),
                "uploadid": upload_id,
                "target_path": directory,
                "block_list": json.dumps(block_list),
                "isdir": "0",
                "rtype": "1",
            },
        )
        remote_file = to_remote_file(created)
        if remote_file is None:
            return UploadResult(success=False, message="Terabox did not return file details")

        logger.info("uploaded %s → %s (%d bytes, %d parts)", local_path, remote_file.path, size, partseq)
        return UploadResult(success=True, message="Upload complete", file=remote_file)

    async def _block_md5s(self, local_path: str) -> list[str]:
        digests: list[str] = []
        async with aiofiles.open(local_path, "rb") as f:
            while True:
                chunk = await f.read(self._chunk_size)
                if not chunk:
                    break
                digests.append(hashlib.md5(chunk, usedforsecurity=False).hexdigest())
        if not digests:
            digests.append(hashlib.md5(b"", usedforsecurity=False).hexdigest())
        return digests
