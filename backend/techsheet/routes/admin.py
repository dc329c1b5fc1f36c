# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/techsheet/routes/admin.py
"""
Admin routes for account management.

Provides endpoints for:
- User listing and profile edits
- Account approval (with optional role override and allowed groups)
- Role changes and viewer group assignments
- Role capability lookup and security event review

All endpoints require authentication and appropriate permissions.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import SecurityEvent
from ..permissions import Role, describe_role
from ..services import auth_service, account_service, permission_service
from ..services.auth_service import DuplicateUsernameError
from ..decorators import require_auth, require_permission
from ..validation import ValidationError, NotFoundError, InvalidTransitionError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

_STATUS_FILTERS = {"pending": False, "approved": True}


def _user_payload(user) -> dict:
    user_dict = user.to_dict()
    user_dict["permissions"] = sorted(permission_service.get_user_permissions(user))
    return user_dict


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission("VIEW_USERS")
def list_users():
    """
    List accounts.

    Query params:
    - status: "pending" | "approved" (optional) - filter on approval state
    """
    status = request.args.get("status")
    if status is not None and status not in _STATUS_FILTERS:
        return jsonify({"error": "status must be 'pending' or 'approved'"}), 400

    users = auth_service.list_users(approved=_STATUS_FILTERS.get(status))
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user(user_id: int):
    """Get a specific user by ID, with effective permissions."""
    user = auth_service.get_user(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"user": _user_payload(user)})


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user(user_id: int):
    """
    Update profile fields.

    Request body (all optional): username, email, name, company
    """
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.update_user(user_id, data)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DuplicateUsernameError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "User updated successfully"})


@admin_bp.post("/users/<int:user_id>/approve")
@require_auth
@require_permission("MANAGE_USERS")
def approve_user(user_id: int):
    """
    Approve a pending account.

    Request body (all optional):
    - role: "administrator" | "compiler" | "viewer" (default: viewer for guests)
    - allowed_groups: list of group ids (consulted while the role is viewer)
    """
    data = request.get_json(silent=True) or {}

    try:
        user = account_service.approve_user(
            user_id,
            acting_user_id=g.current_user.id,
            role=data.get("role"),
            allowed_groups=data.get("allowed_groups"),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, InvalidTransitionError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to approve user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s approved as %s", user.username, user.role)
    return jsonify({"user": _user_payload(user), "message": "User approved"})


@admin_bp.post("/users/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def change_role(user_id: int):
    """
    Change the role of an approved account.

    Request body:
    - role: "administrator" | "compiler" | "viewer" (required)
    """
    data = request.get_json(silent=True) or {}
    role = data.get("role")
    if not role:
        return jsonify({"error": "role is required"}), 400

    try:
        user = account_service.change_role(user_id, role, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, InvalidTransitionError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change role for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": _user_payload(user), "message": "Role updated"})


@admin_bp.put("/users/<int:user_id>/groups")
@require_auth
@require_permission("MANAGE_USERS")
def set_allowed_groups(user_id: int):
    """
    Replace the groups a viewer may see.

    Request body:
    - allowed_groups: list of group ids (required, may be empty)
    """
    data = request.get_json(silent=True) or {}
    if "allowed_groups" not in data:
        return jsonify({"error": "allowed_groups is required"}), 400

    try:
        user = account_service.set_allowed_groups(
            user_id,
            data["allowed_groups"],
            acting_user_id=g.current_user.id,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to set groups for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "Allowed groups updated"})


# =============================================================================
# ROLES AND AUDIT
# =============================================================================

@admin_bp.get("/roles")
@require_auth
@require_permission("VIEW_USERS")
def list_roles():
    """List every role with the permissions it grants."""
    roles = [describe_role(role) for role in Role]
    return jsonify({"roles": roles, "count": len(roles)})


@admin_bp.get("/security-events")
@require_auth
@require_permission("MANAGE_USERS")
def list_security_events():
    """
    Recent security events, newest first.

    Query params:
    - event_type: str (optional)
    - user_id: int (optional)
    - limit: int (optional, default 100, max 500)
    """
    event_type = request.args.get("event_type")
    user_id = request.args.get("user_id", type=int)
    limit = min(request.args.get("limit", 100, type=int), 500)

    query = db.session.query(SecurityEvent)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)

    events = query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
    return jsonify({"events": [e.to_dict() for e in events], "count": len(events)})
