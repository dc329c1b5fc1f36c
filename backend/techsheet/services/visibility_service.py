# Overview: Decides which products a principal may see; applied at the API boundary.

"""
Visibility Filter

- administrator, compiler: every product
- viewer: products whose group id (as a string) is in allowed_groups;
  ungrouped products are never visible to viewers
- guest: nothing

The product repository stays role-agnostic; routes pass its queries through
filter_visible_products() and single fetches through require_product_visible().
A viewer asking for a product outside their groups gets 403, not 404.
"""
from __future__ import annotations

from sqlalchemy import false

from ..models import Product, User
from ..permissions import Role
from .permission_service import PermissionDeniedError, log_security_event


def _allowed_group_ids(user: User) -> list[int]:
    ids = []
    for key in user.allowed_groups or []:
        try:
            ids.append(int(key))
        except (TypeError, ValueError):
            continue
    return ids


def sees_all_products(user: User) -> bool:
    if user is None or not user.approved:
        return False
    role = user.role_enum
    if role in (Role.ADMINISTRATOR, Role.COMPILER):
        return True
    if role in (Role.VIEWER, Role.GUEST):
        return False
    raise ValueError(f"Unhandled role: {role!r}")


def can_view_product(user: User, product: Product) -> bool:
    if sees_all_products(user):
        return True
    if user is None or not user.approved or user.role_enum is not Role.VIEWER:
        return False
    if product.group_id is None:
        return False
    return str(product.group_id) in (user.allowed_groups or [])


def filter_visible_products(user: User, query):
    """Restrict a Product query to what the user may see."""
    if sees_all_products(user):
        return query
    if user is None or not user.approved or user.role_enum is not Role.VIEWER:
        return query.filter(false())

    group_ids = _allowed_group_ids(user)
    if not group_ids:
        return query.filter(false())
    return query.filter(Product.group_id.in_(group_ids))


def require_product_visible(
    user: User,
    product: Product,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    if can_view_product(user, product):
        return

    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource or f"product:{product.id}",
        action="VIEW_PRODUCT",
        reason="Product outside allowed groups",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError("You do not have access to this product")
