"""FastAPI application factory for video_api."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from vidvault.config import Settings, get_settings
from vidvault.shared.exceptions import ConfigurationError
from vidvault.video_api.auth import AccessPolicy, warn_if_open
from vidvault.video_api.cache import CacheSweeper, TTLCache
from vidvault.video_api.interfaces import StorageGateway
from vidvault.video_api.middleware import setup_cors, setup_error_handlers
from vidvault.video_api.routes import router
from vidvault.video_api.terabox import TeraboxGateway

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings) -> TeraboxGateway:
    """Construct the TeraBox gateway from settings.

    Raises:
        ConfigurationError: If any TeraBox credential is missing.
    """
    return TeraboxGateway(
        settings.terabox_credentials(),
        base_url=settings.terabox_base_url,
        upload_url=settings.terabox_upload_url,
        timeout=settings.terabox_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize and cleanup application resources."""
    settings: Settings = app.state.settings
    warn_if_open(app.state.access_policy)

    owned_gateway: TeraboxGateway | None = None
    if app.state.gateway is None:
        try:
            owned_gateway = build_gateway(settings)
        except ConfigurationError as exc:
            logger.warning("storage gateway disabled: %s", exc)
        else:
            await owned_gateway.start()
            app.state.gateway = owned_gateway

    sweeper = CacheSweeper(app.state.cache, interval=settings.cache_sweep_interval)
    sweeper.start()
    app.state.sweeper = sweeper

    try:
        yield
    finally:
        await sweeper.stop()
        if owned_gateway is not None:
            await owned_gateway.close()
            app.state.gateway = None


def create_app(
    settings: Settings | None = None,
    *,
    gateway: StorageGateway | None = None,
    cache: TTLCache | None = None,
    access_policy: AccessPolicy | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every collaborator can be injected; anything left as ``None`` is built
    from ``settings`` (the gateway lazily, at startup).
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(title="vidvault Video API", lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.cache = cache if cache is not None else TTLCache(default_ttl=settings.cache_ttl)
    app.state.access_policy = access_policy if access_policy is not None else settings.access_policy()
    app.state.sweeper = None
    setup_cors(app, settings.cors_origin_list)
    setup_error_handlers(app)
    app.include_router(router)
    return app


def main() -> None:
    """Entry point for ``python -m vidvault.video_api.app``."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
