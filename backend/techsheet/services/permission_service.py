# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging

Every role check in the application goes through one capability table
(permissions.ROLE_PERMISSIONS).

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- Unapproved accounts hold no permissions regardless of role
- Role is read at call time, so a role change applies to the next check
"""

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import Role, ROLE_PERMISSIONS
from techsheet.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission (HTTP 403)."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGIN_PENDING_APPROVAL
    - USER_REGISTERED
    - USER_APPROVED
    - ROLE_CHANGED
    - PRODUCT_APPROVED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_role_permissions(role) -> frozenset[str]:
    """Permission codes granted to a role by the capability table."""
    return ROLE_PERMISSIONS[Role.parse(role)]


def get_user_permissions(user: User) -> set[str]:
    """
    Get all permission codes for a user.

    Returns an empty set for unapproved accounts.
    """
    if user is None or not user.approved:
        return set()
    return set(get_role_permissions(user.role))


def user_has_permission(user: User, permission_code: str) -> bool:
    """Check if user has a specific permission."""
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are written to security_events.

    Usage:
        require_permission(g.current_user, "APPROVE_PRODUCT", resource=request.path)
    """
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"Permission denied: {permission_code}")
