# Overview: Service-layer operations for account administration (approval, roles, allowed groups).

"""
Account State Machine

    [unapproved guest] --approve (optional role override)--> [approved admin/compiler/viewer]
    [approved viewer]  --set allowed groups-->               [approved viewer, scoped]
    [approved role]    --change role-->                      [other approved role]

There is no transition back to unapproved.

RULES:
1. Approving without a role override promotes a guest to viewer.
2. Approving an already approved account is an invalid transition.
3. Roles can only be changed on approved accounts.
4. The last approved administrator cannot be demoted.
"""
from __future__ import annotations

from ..extensions import db
from ..models import User
from ..permissions import Role, APPROVABLE_ROLES
from ..validation import InvalidTransitionError, ValidationError
from . import permission_service
from .auth_service import require_user
from .group_service import normalize_group_ids


def _parse_approvable_role(role) -> Role:
    try:
        role = Role.parse(role)
    except ValueError as e:
        raise ValidationError(str(e))
    if role not in APPROVABLE_ROLES:
        allowed = ", ".join(sorted(r.value for r in APPROVABLE_ROLES))
        raise ValidationError(f"Role must be one of: {allowed}")
    return role


def _count_administrators() -> int:
    return db.session.query(User).filter(
        User.role == Role.ADMINISTRATOR.value,
        User.approved.is_(True),
    ).count()


def approve_user(
    user_id: int,
    *,
    acting_user_id: int | None = None,
    role=None,
    allowed_groups=None,
) -> User:
    user = require_user(user_id)
    if user.approved:
        raise InvalidTransitionError("User is already approved")

    if role is not None:
        new_role = _parse_approvable_role(role)
    elif user.role_enum is Role.GUEST:
        new_role = Role.VIEWER
    else:
        new_role = user.role_enum

    if allowed_groups is not None:
        user.allowed_groups = normalize_group_ids(allowed_groups)

    user.role = new_role.value
    user.approved = True
    db.session.commit()

    permission_service.log_security_event(
        user_id=acting_user_id,
        event_type="USER_APPROVED",
        success=True,
        resource=f"user:{user.id}",
        action=new_role.value,
        reason=f"Approved {user.username} as {new_role.value}",
    )
    return user


def change_role(user_id: int, role, *, acting_user_id: int | None = None) -> User:
    user = require_user(user_id)
    if not user.approved:
        raise InvalidTransitionError("Role can only be changed on approved accounts")

    new_role = _parse_approvable_role(role)
    old_role = user.role_enum
    if new_role is old_role:
        return user

    if old_role is Role.ADMINISTRATOR and _count_administrators() <= 1:
        raise InvalidTransitionError("Cannot demote the last administrator")

    user.role = new_role.value
    db.session.commit()

    permission_service.log_security_event(
        user_id=acting_user_id,
        event_type="ROLE_CHANGED",
        success=True,
        resource=f"user:{user.id}",
        action=new_role.value,
        reason=f"{old_role.value} -> {new_role.value}",
    )
    return user


def set_allowed_groups(user_id: int, group_ids, *, acting_user_id: int | None = None) -> User:
    """
    Replace the user's allowed groups.

    Stored for any role but only consulted while the role is viewer.
    """
    user = require_user(user_id)
    user.allowed_groups = normalize_group_ids(group_ids)
    db.session.commit()

    permission_service.log_security_event(
        user_id=acting_user_id,
        event_type="ALLOWED_GROUPS_CHANGED",
        success=True,
        resource=f"user:{user.id}",
        reason=",".join(user.allowed_groups) or "(none)",
    )
    return user
