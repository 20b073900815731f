"""Bearer token guard for upload and catalog mutation routes."""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from coordinator import config


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header value.

    Accepts both "Bearer <token>" and a bare token.
    """
    if not authorization:
        return ""
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return authorization


async def require_upload_token(authorization: Optional[str] = Header(None)) -> None:
    """
    FastAPI dependency that checks the shared upload token.

    The guard is open when no token is configured.

    Raises:
        HTTPException: 401 if the token is missing or wrong
    """
    expected = config.UPLOAD_TOKEN
    if not expected:
        return

    token = extract_bearer_token(authorization)
    if not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized"
        )
