"""API-key access gate for mutating endpoints."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, unique

from fastapi import Request
from pydantic import BaseModel

from vidvault.shared.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"

MISSING_CREDENTIAL = "missing credential"
INVALID_CREDENTIAL = "invalid credential"


@unique
class PolicyMode(str, Enum):
    """Security posture of the access gate."""

    OPEN = "open"
    RESTRICTED = "restricted"


class AccessPolicy(BaseModel):
    """Process-wide allow-list of API keys, fixed at startup.

    ``OPEN`` authorizes every request and exists for local development only.
    """

    model_config = {"frozen": True}

    mode: PolicyMode
    allow_list: frozenset[str] = frozenset()

    @classmethod
    def open(cls) -> AccessPolicy:
        return cls(mode=PolicyMode.OPEN)

    @classmethod
    def restricted(cls, keys: Iterable[str]) -> AccessPolicy:
        allow_list = frozenset(keys)
        if not allow_list:
            raise ValueError("restricted access policy requires at least one key")
        return cls(mode=PolicyMode.RESTRICTED, allow_list=allow_list)

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> AccessPolicy:
        """Build a policy from configured keys; no keys means ``OPEN``."""
        allow_list = frozenset(keys)
        if not allow_list:
            return cls.open()
        return cls.restricted(allow_list)

    @property
    def is_open(self) -> bool:
        return self.mode is PolicyMode.OPEN


@dataclass(frozen=True)
class Authorized:
    pass


@dataclass(frozen=True)
class Unauthorized:
    reason: str


Decision = Authorized | Unauthorized


def decide(credential: str | None, policy: AccessPolicy) -> Decision:
    """Decide whether a presented credential may perform a restricted operation.

    Args:
        credential: Value of the ``x-api-key`` header, or ``None`` if absent.
        policy: The process-wide access policy.

    Returns:
        ``Authorized`` or ``Unauthorized`` carrying the reason.
    """
    if policy.is_open:
        return Authorized()
    if not credential:
        return Unauthorized(MISSING_CREDENTIAL)
    if credential not in policy.allow_list:
        return Unauthorized(INVALID_CREDENTIAL)
    return Authorized()


def warn_if_open(policy: AccessPolicy) -> None:
    """Log loudly when the gate is disabled."""
    if policy.is_open:
        logger.warning("no API keys configured: access control is DISABLED and all requests will be allowed")
    else:
        logger.info("access gate restricted to %d API key(s)", len(policy.allow_list))


async def require_api_key(request: Request) -> None:
    """FastAPI dependency enforcing the access policy on a route.

    Raises:
        AuthorizationError: If the request is not authorized.
    """
    policy: AccessPolicy | None = getattr(request.app.state, "access_policy", None)
    if policy is None:
        raise AuthorizationError("access policy unavailable")

    decision = decide(request.headers.get(API_KEY_HEADER), policy)
    if isinstance(decision, Unauthorized):
        logger.info("rejected %s %s: %s", request.method, request.url.path, decision.reason)
        raise AuthorizationError(decision.reason)
