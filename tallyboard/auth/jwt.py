"""
JWT token creation and validation.
Uses python-jose for JWT handling. The ``sub`` claim carries the tenant id.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from tallyboard.config import get_settings

TOKEN_TYPE = "access"


def create_access_token(
    tenant_id: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a JWT access token for a tenant.

    Args:
        tenant_id: Tenant the token grants access to
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims to embed

    Returns:
        Encoded JWT token
    """
    settings = get_settings()
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expiration_minutes))

    claims = dict(extra_claims or {})
    claims.update({"sub": tenant_id, "exp": expire, "iat": now, "type": TOKEN_TYPE})

    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload

    Raises:
        JWTError: If token is invalid, expired or not an access token
    """
    settings = get_settings()

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise JWTError(f"Token validation failed: {str(e)}")

    if payload.get("type") != TOKEN_TYPE:
        raise JWTError("Token validation failed: invalid token type")
    return payload
