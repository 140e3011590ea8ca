"""
Role and permission operations.

Each operation keeps the claims store and the document store aligned for
one user by writing the same role and permissions to both. There is no
shared transaction: if the second write fails the first one stays applied,
the caller gets an UpstreamFailure, and the next successful operation (or
``resync_claims``) realigns the stores.
"""
import hmac
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.errors import (
    ApiError,
    BadRequest,
    Forbidden,
    NotFound,
    Unauthenticated,
    UpstreamFailure,
)
from app.core.stores import ClaimsStore, Stores
from app.features.permissions.constants import Role
from app.features.permissions.grants import (
    PermissionSet,
    defaults_for,
    merge_permissions,
    normalize_permissions,
    parse_role,
)
from app.utils import get_logger


log = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Caller checks
# ============================================================================

async def authenticate(claims_store: ClaimsStore, token: Optional[str]) -> Dict[str, Any]:
    """
    Verify a bearer token and return the caller's decoded claims.

    Raises:
        Unauthenticated: token missing, or rejected by the verifier
        UpstreamFailure: the verifier reported an outage
    """
    if not token:
        raise Unauthenticated("Missing authorization header")

    try:
        return await claims_store.verify(token)
    except ApiError:
        raise
    except Exception as e:
        log.info("Token verification failed: %s", e)
        raise Unauthenticated("Invalid or expired token", str(e)) from e


def ensure_admin(caller: Mapping[str, Any]) -> None:
    if caller.get("role") != Role.ADMIN.value:
        log.info("Rejected non-admin caller %s with role %r", caller.get("uid"), caller.get("role"))
        raise Forbidden()


def check_bootstrap_secret(provided: Optional[str], configured: Optional[str]) -> None:
    """Compare the bootstrap secret in constant time. An unset secret rejects every call."""
    if not configured or not provided:
        raise Unauthenticated()
    if not hmac.compare_digest(provided.encode(), configured.encode()):
        raise Unauthenticated()


def _require_uid(uid: object, error: str) -> str:
    if not isinstance(uid, str) or not uid.strip():
        raise BadRequest(error)
    return uid


# ============================================================================
# Operations
# ============================================================================

async def assign_role(stores: Stores, caller: Mapping[str, Any], uid: Any, role: Any) -> Dict[str, Any]:
    """
    Assign ``role`` to ``uid`` and reset its permissions to the role defaults.

    Any fine-grained customization the user had is discarded.
    """
    ensure_admin(caller)

    uid = _require_uid(uid, "uid and role are required")
    if not role:
        raise BadRequest("uid and role are required")
    role = parse_role(role).value

    permissions = defaults_for(role)
    claims = {"role": role, "permissions": permissions}

    try:
        await stores.claims.set_claims(uid, claims)

        snapshot = await stores.documents.get(uid)
        if snapshot.exists:
            await stores.documents.update(uid, {"role": role, "permissions": permissions})
        else:
            await stores.documents.set(uid, {"role": role, "permissions": permissions, "createdAt": utcnow()})
    except ApiError:
        raise
    except Exception as e:
        log.exception("Set role error for user %s", uid)
        raise UpstreamFailure("Failed to set role", str(e)) from e

    log.info(f"Role {role} assigned to user {uid} by {caller.get('uid')}")
    return {
        "success": True,
        "message": f'Role "{role}" assigned to user {uid}',
    }


async def update_permissions(
    stores: Stores,
    caller: Mapping[str, Any],
    uid: Any,
    patch: Any,
) -> Dict[str, Any]:
    """
    Merge a partial permission update into the user's stored permissions.

    The role is left untouched and is re-read from the document so both
    stores keep the same role.
    """
    ensure_admin(caller)

    uid = _require_uid(uid, "uid and permissions are required")
    if not patch:
        raise BadRequest("uid and permissions are required")
    if not isinstance(patch, Mapping):
        raise BadRequest("permissions must be an object mapping modules to grants")

    try:
        snapshot = await stores.documents.get(uid)
        if not snapshot.exists:
            raise NotFound("User not found in document store")

        current = snapshot.data or {}
        merged = merge_permissions(current.get("permissions") or {}, patch).unwrap()

        await stores.documents.update(uid, {"permissions": merged})
        await stores.claims.set_claims(uid, {"role": current.get("role"), "permissions": merged})
    except ApiError:
        raise
    except Exception as e:
        log.exception("Update permissions error for user %s", uid)
        raise UpstreamFailure("Failed to update permissions", str(e)) from e

    log.info(f"Permissions of user {uid} updated by {caller.get('uid')}: {sorted(patch)}")
    return {
        "success": True,
        "message": "Permissions updated and synced to token",
        "permissions": merged,
    }


async def bootstrap_admin(
    stores: Stores,
    uid: Any,
    provided_secret: Optional[str],
    configured_secret: Optional[str],
) -> Dict[str, Any]:
    """
    Create the first admin, gated by a shared secret instead of a role check.

    Nothing stops this from running again once an admin exists; operators
    must unset BOOTSTRAP_ADMIN_SECRET after use.
    """
    check_bootstrap_secret(provided_secret, configured_secret)
    uid = _require_uid(uid, "uid is required")

    role = Role.ADMIN.value
    permissions = defaults_for(role)

    log.warning("Bootstrapping admin user %s; disable BOOTSTRAP_ADMIN_SECRET after use", uid)
    try:
        await stores.claims.set_claims(uid, {"role": role, "permissions": permissions})
        await stores.documents.set(uid, {"role": role, "permissions": permissions, "createdAt": utcnow()})
    except ApiError:
        raise
    except Exception as e:
        log.exception("Bootstrap error for user %s", uid)
        raise UpstreamFailure("Bootstrap failed", str(e)) from e

    return {
        "success": True,
        "message": "Admin bootstrapped successfully. Unset BOOTSTRAP_ADMIN_SECRET now!",
    }


async def resync_claims(stores: Stores, uid: str) -> Dict[str, Any]:
    """
    Rewrite the claims of ``uid`` from its document.

    The document store is treated as the source of truth; legacy boolean
    grants are normalized on the way through.
    """
    snapshot = await stores.documents.get(uid)
    if not snapshot.exists:
        raise NotFound("User not found in document store")

    data = snapshot.data or {}
    permissions: PermissionSet = normalize_permissions(data.get("permissions"))
    claims = {"role": data.get("role"), "permissions": permissions}

    await stores.claims.set_claims(uid, claims)
    log.info("Claims of user %s re-synced from document (role=%s)", uid, claims["role"])
    return claims
