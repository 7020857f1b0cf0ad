"""
API key authentication for the operator API.

Controlled by environment variables read at import time:
    API_AUTH_ENABLED  "true" to require a key (default: false)
    API_KEY           the expected X-API-Key value
"""

import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "false").lower() == "true"
API_KEY = os.getenv("API_KEY", "")

api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,  # Missing header is reported below, only when auth is on
    description="Operator API key (required when API_AUTH_ENABLED=true)",
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> Optional[str]:
    """
    Check the X-API-Key header against API_KEY.

    Returns:
        The accepted key, or None when authentication is disabled

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    if not API_AUTH_ENABLED:
        return None

    if not api_key:
        raise _unauthorized("Missing API key. Provide X-API-Key header.")

    if not API_KEY or not secrets.compare_digest(api_key, API_KEY):
        raise _unauthorized("Invalid API key")

    return api_key
