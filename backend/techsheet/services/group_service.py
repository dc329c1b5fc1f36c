# Overview: Service-layer operations for groups; encapsulates business logic and database work.

"""
Group Registry

Groups are named visibility partitions over products. Viewers see exactly
the products whose group id appears in their allowed_groups list.

Deleting a group never fails because products reference it: those products
are detached (group_id=NULL) and from then on are visible only to
administrators and compilers.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Group, Product, User
from ..permissions import Role
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    validate_payload,
)

GROUP_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)


class DuplicateGroupNameError(ConflictError):
    """Raised when a group name is already taken."""
    pass


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Group).filter(Group.name == name)
    if exclude_id is not None:
        query = query.filter(Group.id != exclude_id)
    if query.first():
        raise DuplicateGroupNameError("Group name already exists")


def get_group(group_id: int) -> Group:
    group = db.session.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


def list_groups() -> list[Group]:
    return db.session.query(Group).order_by(Group.name.asc(), Group.id.asc()).all()


def create_group(payload: dict) -> Group:
    patch = validate_payload(model=Group, payload=payload, policy=GROUP_POLICY, partial=False)
    _ensure_unique_name(patch["name"])

    group = Group(**patch)
    db.session.add(group)
    db.session.commit()
    return group


def update_group(group_id: int, payload: dict) -> Group:
    group = get_group(group_id)
    patch = validate_payload(model=Group, payload=payload, policy=GROUP_POLICY, partial=True)

    if "name" in patch and patch["name"] != group.name:
        _ensure_unique_name(patch["name"], exclude_id=group.id)

    for k, v in patch.items():
        setattr(group, k, v)

    db.session.commit()
    return group


def delete_group(group_id: int) -> int:
    """
    Delete a group, detaching its products.

    Returns the number of products that became ungrouped.
    """
    group = get_group(group_id)

    products = db.session.query(Product).filter(Product.group_id == group.id).all()
    for product in products:
        product.group_id = None

    db.session.delete(group)
    db.session.commit()
    return len(products)


def list_group_products(group_id: int) -> list[Product]:
    group = get_group(group_id)
    return (
        db.session.query(Product)
        .filter(Product.group_id == group.id)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def list_group_users(group_id: int) -> list[User]:
    """Viewers whose allowed_groups grant access to this group."""
    group = get_group(group_id)
    key = str(group.id)
    viewers = (
        db.session.query(User)
        .filter(User.role == Role.VIEWER.value)
        .order_by(User.username.asc())
        .all()
    )
    return [u for u in viewers if key in (u.allowed_groups or [])]


def group_exists(group_id) -> bool:
    try:
        return db.session.get(Group, int(group_id)) is not None
    except (TypeError, ValueError):
        return False


def normalize_group_ids(group_ids) -> list[str]:
    """
    Validate a list of group ids and return them as an ordered, de-duplicated
    list of strings (the allowed_groups storage format).
    """
    if group_ids is None:
        return []
    if not isinstance(group_ids, (list, tuple)):
        raise ValidationError("allowed_groups must be a list of group ids")

    normalized: list[str] = []
    for raw in group_ids:
        key = str(raw).strip()
        if not group_exists(key):
            raise ValidationError(f"Group not found: {raw}")
        key = str(int(key))
        if key not in normalized:
            normalized.append(key)
    return normalized
