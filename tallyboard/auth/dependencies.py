"""
FastAPI dependencies resolving the calling tenant.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from tallyboard.auth.jwt import decode_access_token
from tallyboard.utils.logging import bind_tenant, get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_tenant_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract and validate the tenant id from a bearer JWT.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        Tenant id (the token's ``sub`` claim)

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not credentials:
        logger.warning("auth_failed", reason="missing_token")
        raise _unauthorized("Missing authentication token")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as e:
        logger.warning("auth_failed", reason="invalid_token", error=str(e))
        raise _unauthorized(f"Invalid authentication token: {str(e)}")

    tenant_id = payload.get("sub")
    if not tenant_id:
        logger.warning("auth_failed", reason="missing_tenant_id")
        raise _unauthorized("Invalid token payload")

    bind_tenant(tenant_id)
    logger.debug("auth_success")
    return tenant_id
