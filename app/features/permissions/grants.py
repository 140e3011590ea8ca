"""
Grant validation, role defaults lookup and the permission merge engine.

A grant is canonically ``{"read": bool, "write": bool}``. A bare boolean is the
legacy single-flag form and is normalized to ``{"read": v, "write": v}``
before it is merged or written anywhere.

Everything in this module is pure: no I/O, inputs are never mutated.
"""
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.errors import BadRequest, InvalidGrantShape, InvalidRole, UnknownModule
from app.features.permissions.constants import MODULES, ROLE_DEFAULTS, Role


Grant = Dict[str, bool]
PermissionSet = Dict[str, Grant]

GRANT_FIELDS = frozenset({"read", "write"})


def is_valid_module(name: object) -> bool:
    return isinstance(name, str) and name in MODULES


def is_valid_grant(value: object) -> bool:
    """True for a boolean or for a mapping with exactly boolean ``read`` and ``write``."""
    if isinstance(value, bool):
        return True
    if isinstance(value, Mapping):
        return set(value.keys()) == GRANT_FIELDS and all(
            isinstance(value[key], bool) for key in GRANT_FIELDS
        )
    return False


def normalize_grant(value: Any) -> Any:
    """
    Convert a legacy boolean grant to ``{"read": v, "write": v}``.

    Valid structured grants are copied; anything else is returned as-is so
    stored data that predates validation is carried over untouched.
    """
    if isinstance(value, bool):
        return {"read": value, "write": value}
    if is_valid_grant(value):
        return {"read": value["read"], "write": value["write"]}
    return value


def normalize_permissions(permissions: Optional[Mapping[str, Any]]) -> PermissionSet:
    if not permissions:
        return {}
    return {module: normalize_grant(grant) for module, grant in permissions.items()}


def parse_role(role: object) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise InvalidRole(role, Role.values())


def defaults_for(role: Role | str) -> PermissionSet:
    """
    Return a fresh, complete PermissionSet for ``role``.

    Raises:
        InvalidRole: if ``role`` is not one of admin, sub_admin, cashier, user
    """
    defaults = ROLE_DEFAULTS[parse_role(role)]
    return {module: dict(grant) for module, grant in defaults.items()}


@dataclass(frozen=True)
class MergeResult:
    """Either the merged permissions or the validation error that stopped the merge."""
    permissions: Optional[PermissionSet] = None
    error: Optional[BadRequest] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> PermissionSet:
        if self.error is not None:
            raise self.error
        return self.permissions


def merge_permissions(current: Optional[Mapping[str, Any]], patch: Mapping[str, Any]) -> MergeResult:
    """
    Merge a partial permission update into ``current``.

    Each patch entry replaces the whole grant of its module; grants are never
    merged field by field, so ``{"read": True}`` alone is rejected rather
    than silently dropping write access. Modules absent from the patch are
    carried over unchanged.
    """
    unknown = [key for key in patch if not is_valid_module(key)]
    if unknown:
        return MergeResult(error=UnknownModule([str(key) for key in unknown]))

    for key, value in patch.items():
        if not is_valid_grant(value):
            return MergeResult(error=InvalidGrantShape(key))

    merged = normalize_permissions(current)
    for key, value in patch.items():
        merged[key] = normalize_grant(value)
    return MergeResult(permissions=merged)
