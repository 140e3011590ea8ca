"""
Pydantic schemas for role and permission management.

Request bodies accept loosely-typed fields; the permission service applies
the role and grant rules itself so the same checks hold outside HTTP.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


# ============================================================================
# Request Schemas
# ============================================================================

class BootstrapAdminRequest(BaseModel):
    uid: Optional[str] = Field(None, description="Identity provider user ID to promote")


class SetRoleRequest(BaseModel):
    uid: Optional[str] = Field(None, description="Target user ID")
    role: Optional[str] = Field(None, description="One of admin, sub_admin, cashier, user")


class UpdatePermissionsRequest(BaseModel):
    uid: Optional[str] = Field(None, description="Target user ID")
    permissions: Optional[Dict[str, Any]] = Field(
        None,
        description='Partial mapping of module to grant, e.g. {"settings": {"read": true, "write": false}}',
    )


# ============================================================================
# Response Schemas
# ============================================================================

class OperationResponse(BaseModel):
    success: bool = True
    message: str


class UpdatePermissionsResponse(OperationResponse):
    permissions: Dict[str, Any]
