# Overview: Permission system package.
# Re-exports the capability table and lookup helpers.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    PRODUCT_PERMISSIONS,
    GROUP_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import Role, APPROVABLE_ROLES, ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    validate_permission_code,
    describe_role,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "PRODUCT_PERMISSIONS",
    "GROUP_PERMISSIONS",
    "USER_PERMISSIONS",
    "Role",
    "APPROVABLE_ROLES",
    "ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permission_definition",
    "validate_permission_code",
    "describe_role",
]
