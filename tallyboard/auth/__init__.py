"""JWT authentication: resolves the calling tenant."""

from tallyboard.auth.dependencies import get_current_tenant_id
from tallyboard.auth.jwt import create_access_token, decode_access_token

__all__ = ["create_access_token", "decode_access_token", "get_current_tenant_id"]
