"""
Role and permission management API routes.

- POST /bootstrap-admin: create the first admin (shared secret)
- POST /set-role: assign a role and reset permissions to its defaults (admin only)
- POST /update-permissions: merge a partial permission update (admin only)
"""
from typing import Annotated, Any, Dict
from fastapi import APIRouter, Depends

from app.core import config
from app.core.stores import Stores
from app.features.permissions import service
from app.features.permissions.dependencies import (
    get_current_admin_claims,
    get_stores,
    require_bootstrap_secret,
)
from app.features.permissions.schemas import (
    BootstrapAdminRequest,
    OperationResponse,
    SetRoleRequest,
    UpdatePermissionsRequest,
    UpdatePermissionsResponse,
)


router = APIRouter()


@router.post("/bootstrap-admin", response_model=OperationResponse)
async def bootstrap_admin(
    payload: BootstrapAdminRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    secret: Annotated[str, Depends(require_bootstrap_secret)],
):
    """
    Create the FIRST admin user (one time use).

    Headers: x-bootstrap-secret: <BOOTSTRAP_ADMIN_SECRET>
    Body: {"uid": "user-id"}
    """
    return await service.bootstrap_admin(
        stores,
        payload.uid,
        provided_secret=secret,
        configured_secret=config.BOOTSTRAP_ADMIN_SECRET,
    )


@router.post("/set-role", response_model=OperationResponse)
async def set_role(
    payload: SetRoleRequest,
    caller: Annotated[Dict[str, Any], Depends(get_current_admin_claims)],
    stores: Annotated[Stores, Depends(get_stores)],
):
    """
    Assign a role to a user (admin only).

    Headers: Authorization: Bearer <admin-token>
    Body: {"uid": "target-user-id", "role": "admin" | "sub_admin" | "cashier" | "user"}
    """
    return await service.assign_role(stores, caller, payload.uid, payload.role)


@router.post("/update-permissions", response_model=UpdatePermissionsResponse)
async def update_permissions(
    payload: UpdatePermissionsRequest,
    caller: Annotated[Dict[str, Any], Depends(get_current_admin_claims)],
    stores: Annotated[Stores, Depends(get_stores)],
):
    """
    Update some of a user's permission grants (admin only).

    Headers: Authorization: Bearer <admin-token>
    Body: {"uid": "target-user-id", "permissions": {"reports": {"read": true, "write": false}}}
    """
    return await service.update_permissions(stores, caller, payload.uid, payload.permissions)
