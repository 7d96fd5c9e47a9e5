# -*- coding: utf-8 -*-
"""
API key authentication for the document endpoints.

If API_KEY is not configured, the endpoints are open.
"""
import logging
import secrets
from typing import Annotated

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader

from .config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: Annotated[str | None, Depends(api_key_header)]) -> bool:
    """Verify the X-API-Key header against settings.API_KEY."""
    if not settings.API_KEY:
        return True

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, settings.API_KEY):
        logger.warning("Invalid API key attempt")
        raise HTTPException(
            status_code=401,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


# Dependency for protected document routes
RequireApiKey = Annotated[bool, Depends(verify_api_key)]
