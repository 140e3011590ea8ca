"""
FastAPI dependencies for the role and permission endpoints.
"""
from typing import Annotated, Any, Dict, Optional
from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core import config
from app.core.stores import Stores
from app.features.permissions.service import authenticate, check_bootstrap_secret, ensure_admin


# auto_error=False so a missing header is reported by our own 401 payload
security = HTTPBearer(auto_error=False)


def get_stores(request: Request) -> Stores:
    """Stores built at startup, or injected through ``create_app(stores=...)``."""
    return request.app.state.stores


async def get_current_claims(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    stores: Annotated[Stores, Depends(get_stores)],
) -> Dict[str, Any]:
    """
    Verify the bearer token and return the caller's decoded claims.

    Runs before the request body is validated, so credentials are always
    checked first.
    """
    token = credentials.credentials if credentials else None
    return await authenticate(stores.claims, token)


async def get_current_admin_claims(
    claims: Annotated[Dict[str, Any], Depends(get_current_claims)]
) -> Dict[str, Any]:
    """
    Require the admin role.

    Usage:
        @router.post("/set-role")
        async def set_role(caller: dict = Depends(get_current_admin_claims)):
            ...
    """
    ensure_admin(claims)
    return claims


def require_bootstrap_secret(
    x_bootstrap_secret: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Check the x-bootstrap-secret header against BOOTSTRAP_ADMIN_SECRET.

    Runs before the request body is validated, so callers without the
    secret get a 401 whatever they send.
    """
    check_bootstrap_secret(x_bootstrap_secret, config.BOOTSTRAP_ADMIN_SECRET)
    return x_bootstrap_secret
