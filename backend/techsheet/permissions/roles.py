# Overview: Closed role enumeration and the role -> permission capability table.

from enum import Enum


class Role(str, Enum):
    """
    The four account roles.

    Values are the strings persisted in users.role and exchanged over the API.
    """
    ADMINISTRATOR = "administrator"
    COMPILER = "compiler"
    VIEWER = "viewer"
    GUEST = "guest"

    @classmethod
    def parse(cls, value) -> "Role":
        """Return the Role for a string value, raising ValueError on unknown roles."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(r.value for r in cls)
            raise ValueError(f"Invalid role '{value}'. Must be one of: {allowed}")


# Roles an approval may promote an account to
APPROVABLE_ROLES = frozenset({Role.ADMINISTRATOR, Role.COMPILER, Role.VIEWER})


def _role_permissions(role: Role) -> frozenset[str]:
    # Exhaustive over Role; a new role must be added here explicitly
    if role is Role.ADMINISTRATOR:
        return frozenset({
            "VIEW_PRODUCTS",
            "CREATE_PRODUCT",
            "EDIT_PRODUCT",
            "DELETE_PRODUCT",
            "APPROVE_PRODUCT",
            "EXPORT_PRODUCT",
            "VIEW_SUGGESTIONS",
            "VIEW_GROUPS",
            "MANAGE_GROUPS",
            "DELETE_GROUP",
            "VIEW_USERS",
            "MANAGE_USERS",
        })
    if role is Role.COMPILER:
        return frozenset({
            "VIEW_PRODUCTS",
            "CREATE_PRODUCT",
            "EDIT_PRODUCT",
            "EXPORT_PRODUCT",
            "VIEW_SUGGESTIONS",
            "VIEW_GROUPS",
            "MANAGE_GROUPS",
        })
    if role is Role.VIEWER:
        return frozenset({
            "VIEW_PRODUCTS",
            "EXPORT_PRODUCT",
        })
    if role is Role.GUEST:
        return frozenset()
    raise ValueError(f"Unhandled role: {role!r}")


ROLE_PERMISSIONS = {role: _role_permissions(role) for role in Role}
