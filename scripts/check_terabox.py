"""Live connectivity check against the configured TeraBox account.

1. Verify every TeraBox credential is set.
2. List the upload directory and print a few entries.
3. Resolve a download URL for the first video found.

Run:
  python scripts/check_terabox.py

Notes:
- Settings are loaded from `VIDVAULT_*` env vars through `get_settings()`.
- Credentials are browser-session values and expire; re-extract them when
  this check starts failing with errno responses.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from vidvault.config import get_settings
from vidvault.shared.exceptions import ConfigurationError, UpstreamError
from vidvault.video_api.app import build_gateway
from vidvault.video_api.metadata import filter_videos, format_file_size

logger = logging.getLogger("check_terabox")


async def main() -> int:
    settings = get_settings()
    try:
        gateway = build_gateway(settings)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1
    logger.info("all credentials found")

    await gateway.start()
    try:
        files = await gateway.list_files(settings.upload_directory)
        logger.info("found %d files in %s", len(files), settings.upload_directory)
        for remote_file in files[:3]:
            logger.info("  - %s (%s)", remote_file.server_filename, format_file_size(remote_file.size))

        videos = filter_videos(files)
        if videos:
            url = await gateway.get_video_url(videos[0].fs_id)
            logger.info("download URL for %s: %s...", videos[0].server_filename, url[:50])
        else:
            logger.info("no videos to resolve")
    except UpstreamError as exc:
        logger.error("check failed: %s", exc)
        return 1
    finally:
        await gateway.close()

    logger.info("TeraBox integration is working")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    sys.exit(asyncio.run(main()))
