"""API key authentication for the agent API.

Security model:
- DISABLE_AUTH=true (development only): authentication is disabled
- Otherwise API_KEY must be set and sent in the X-API-Key header (fail-closed)
"""

from __future__ import annotations

import logging
import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _get_api_key() -> Optional[str]:
    value = os.getenv("API_KEY", "")
    return value if value else None


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> bool:
    """Verify the API key from the request header.

    Args:
        api_key: API key from X-API-Key header

    Returns:
        True if authenticated

    Raises:
        HTTPException: 401 if the key is missing or invalid, 500 if the
            server has no key configured
    """
    if os.getenv("DISABLE_AUTH", "").lower() == "true":
        logger.warning("Authentication disabled (DISABLE_AUTH=true). Only use this in development!")
        return True

    expected_key = _get_api_key()

    # Fail-closed: require API_KEY in production
    if not expected_key:
        logger.error(
            "API_KEY not set - rejecting request. "
            "Set API_KEY environment variable or DISABLE_AUTH=true for development."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: API_KEY not set",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    # Constant-time comparison
    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True
