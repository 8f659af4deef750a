from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from naagrik.core import security
from naagrik.core.security import Principal

# Bearer scheme - extracts the token from the Authorization header.
# auto_error=False so a missing header means "anonymous" instead of an immediate 403.
bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    """
    Classify the caller from its bearer token.

    Returns None for anonymous callers and for any token that fails
    verification. Tokens are verified from their claims alone; no database
    lookup happens here.
    """
    if credentials is None:
        return None
    return security.principal_from_token(credentials.credentials)


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """Require an authenticated caller (401 otherwise)"""
    return security.require_authenticated(principal)


async def get_admin_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """Require a caller with the ADMIN role (401 or 403 otherwise)"""
    return security.require_admin(principal)
