"""
Viewer identity from a Bearer token.
Feeds never require identity: anything short of a valid token is anonymous.
"""
import logging
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt

from marketfeed.config import get_settings
from marketfeed.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def decode_viewer_id(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the viewer id from an ``Authorization: Bearer <jwt>`` header.

    Returns None when no secret is configured, the header is absent or
    malformed, or the token does not verify.
    """
    settings = get_settings()
    if not settings.JWT_SECRET or not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        logger.warning("Bearer token present but invalid or expired; serving anonymous feed")
        return None

    viewer_id = payload.get("id", payload.get("sub"))
    return str(viewer_id) if viewer_id is not None else None


def issue_token(viewer_id: str) -> str:
    """Sign a token for ``viewer_id`` (used by tests and local tooling)."""
    settings = get_settings()
    return jwt.encode({"id": viewer_id}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def get_optional_viewer_id(
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    return decode_viewer_id(authorization)


async def get_required_viewer_id(
    authorization: Optional[str] = Header(default=None),
) -> str:
    viewer_id = decode_viewer_id(authorization)
    if viewer_id is None:
        raise AuthenticationError()
    return viewer_id
