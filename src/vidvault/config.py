"""Centralised configuration via Pydantic Settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from vidvault.shared.models import TeraboxCredentials
from vidvault.video_api.auth import AccessPolicy


class Settings(BaseSettings):
    """Application-wide configuration loaded from environment variables."""

    model_config = {"env_prefix": "VIDVAULT_", "frozen": True}

    # Access control
    # Comma-separated API keys. Leave blank to run in open (development) mode.
    api_keys: str = ""

    # Cache (seconds)
    cache_ttl: int = 3600
    url_cache_ttl: int = 3600
    cache_sweep_interval: int = 300

    # Listing / upload defaults
    upload_directory: str = "/videos"
    default_page_limit: int = 50

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "*"

    # TeraBox
    terabox_ndus: str = ""
    terabox_app_id: str = ""
    terabox_upload_id: str = ""
    terabox_js_token: str = ""
    terabox_browser_id: str = ""
    terabox_base_url: str = "https://www.terabox.com"
    terabox_upload_url: str = "https://c-jp.terabox.com"
    terabox_timeout: int = 60

    @property
    def api_key_list(self) -> list[str]:
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def access_policy(self) -> AccessPolicy:
        return AccessPolicy.from_keys(self.api_key_list)

    def terabox_credentials(self) -> TeraboxCredentials:
        return TeraboxCredentials(
            ndus=self.terabox_ndus,
            app_id=self.terabox_app_id,
            upload_id=self.terabox_upload_id,
            js_token=self.terabox_js_token,
            browser_id=self.terabox_browser_id,
        )


def get_settings() -> Settings:
    """Factory; allows overriding in tests."""
    return Settings()
