"""Protocol interfaces for video_api dependency injection."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from vidvault.shared.models import RemoteFile, UploadResult


@runtime_checkable
class StorageGateway(Protocol):
    """Protocol for the remote file-storage provider."""

    async def upload_video(self, local_path: str, directory: str) -> UploadResult:
        """Upload a local file into a remote directory.

        Args:
            local_path: Path to the staged local file
            directory: Remote directory to upload into

        Returns:
            Upload outcome including the remote file descriptor

        Raises:
            UploadError: If the upload fails
        """
        ...

    async def get_video_url(self, fs_id: str) -> str:
        """Resolve a remote file id to a playback/download URL.

        Raises:
            ResolveError: If no URL can be obtained
        """
        ...

    async def list_files(self, directory: str) -> list[RemoteFile]:
        """List every file in a remote directory.

        Raises:
            ListError: If the listing fails
        """
        ...

    async def list_videos(self, directory: str) -> list[RemoteFile]:
        """List only video files in a remote directory.

        Raises:
            ListError: If the listing fails
        """
        ...

    async def delete_video(self, path: str) -> bool:
        """Delete a remote file by path.

        Returns:
            True if the provider reported success

        Raises:
            DeleteError: If the request fails
        """
        ...

    async def move_video(self, old_path: str, new_directory: str, new_name: str) -> bool:
        """Move and/or rename a remote file.

        Returns:
            True if the provider reported success

        Raises:
            MoveError: If the request fails
        """
        ...
