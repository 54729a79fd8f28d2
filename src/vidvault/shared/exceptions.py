"""Hierarchical exception types for vidvault."""

from __future__ import annotations


class VidvaultError(Exception):
    """Base exception for all vidvault errors."""


class ConfigurationError(VidvaultError):
    """Required configuration is missing or malformed."""


# ── Request ────────────────────────────────────────────────────


class ValidationError(VidvaultError):
    """Client input is missing or malformed."""


class AuthorizationError(VidvaultError):
    """Credential missing or not on the allow-list."""


class NotFoundError(VidvaultError):
    """Requested video does not exist."""


class UnavailableError(VidvaultError):
    """A required collaborator is not configured or not running."""


# ── Storage Gateway ────────────────────────────────────────────


class UpstreamError(VidvaultError):
    """The remote storage provider failed."""


class UploadError(UpstreamError):
    """Upload to the storage provider failed."""


class ResolveError(UpstreamError):
    """Playback URL resolution failed."""


class ListError(UpstreamError):
    """Directory listing failed."""


class DeleteError(UpstreamError):
    """Remote delete failed."""


class MoveError(UpstreamError):
    """Remote move/rename failed."""
