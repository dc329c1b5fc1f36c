# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- PRODUCTS --

PRODUCT_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "List and open technical datasheets (viewers are further limited by group)",
        PermissionCategory.PRODUCTS,
    ),
    (
        "CREATE_PRODUCT",
        "Create Product",
        "Create cosmetic and supplement datasheets",
        PermissionCategory.PRODUCTS,
    ),
    (
        "EDIT_PRODUCT",
        "Edit Product",
        "Edit datasheet fields, detail records and autosave drafts",
        PermissionCategory.PRODUCTS,
    ),
    (
        "DELETE_PRODUCT",
        "Delete Product",
        "Delete a datasheet and its detail record",
        PermissionCategory.PRODUCTS,
    ),
    (
        "APPROVE_PRODUCT",
        "Approve Product",
        "Stamp or clear the review approval of a datasheet",
        PermissionCategory.PRODUCTS,
    ),
    (
        "EXPORT_PRODUCT",
        "Export Product",
        "Download a datasheet as Markdown",
        PermissionCategory.PRODUCTS,
    ),
    (
        "VIEW_SUGGESTIONS",
        "View Suggestions",
        "Autocomplete field values while editing",
        PermissionCategory.PRODUCTS,
    ),
]


# -- GROUPS --

GROUP_PERMISSIONS = [
    (
        "VIEW_GROUPS",
        "View Groups",
        "List groups and their members",
        PermissionCategory.GROUPS,
    ),
    (
        "MANAGE_GROUPS",
        "Manage Groups",
        "Create and edit groups",
        PermissionCategory.GROUPS,
    ),
    (
        "DELETE_GROUP",
        "Delete Group",
        "Delete a group (its products become ungrouped)",
        PermissionCategory.GROUPS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List user accounts and their approval state",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Approve accounts, change roles and allowed groups",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    PRODUCT_PERMISSIONS
    + GROUP_PERMISSIONS
    + USER_PERMISSIONS
)
