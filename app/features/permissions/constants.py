"""
Permission modules, roles and the role defaults table.

Policy lives here and only here: changing what a role gets by default is a
change to ROLE_DEFAULTS.
"""
import enum
from typing import Dict


MODULES: tuple[str, ...] = (
    "dashboard",
    "reports",
    "inventory",
    "orders",
    "customers",
    "settings",
)


class Role(str, enum.Enum):
    ADMIN = "admin"
    SUB_ADMIN = "sub_admin"
    CASHIER = "cashier"
    USER = "user"

    @classmethod
    def values(cls) -> list[str]:
        return [role.value for role in cls]


FULL = {"read": True, "write": True}
READ_ONLY = {"read": True, "write": False}
NONE = {"read": False, "write": False}


ROLE_DEFAULTS: Dict[Role, Dict[str, Dict[str, bool]]] = {
    Role.ADMIN: {
        "dashboard": FULL,
        "reports": FULL,
        "inventory": FULL,
        "orders": FULL,
        "customers": FULL,
        "settings": FULL,
    },
    Role.SUB_ADMIN: {
        "dashboard": FULL,
        "reports": NONE,
        "inventory": NONE,
        "orders": NONE,
        "customers": NONE,
        "settings": NONE,
    },
    Role.CASHIER: {
        "dashboard": READ_ONLY,
        "reports": NONE,
        "inventory": READ_ONLY,
        "orders": FULL,
        "customers": FULL,
        "settings": NONE,
    },
    Role.USER: {
        "dashboard": NONE,
        "reports": NONE,
        "inventory": NONE,
        "orders": NONE,
        "customers": NONE,
        "settings": NONE,
    },
}
