# Overview: Lookups over the permission definitions and the role capability table.

from .definitions import PERMISSION_DEFINITIONS
from .roles import Role, ROLE_PERMISSIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def describe_role(role):
    """Role name plus the full definitions of every permission it grants."""
    role = Role.parse(role)
    codes = ROLE_PERMISSIONS[role]
    return {
        "role": role.value,
        "permissions": [
            get_permission_definition(code)
            for code in get_all_permission_codes()
            if code in codes
        ],
    }
