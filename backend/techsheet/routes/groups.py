# Overview: Flask API routes for product groups; parses input and returns JSON responses.

# backend/techsheet/routes/groups.py
"""
Group registry routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_GROUPS permission
- Create/update require MANAGE_GROUPS (administrator, compiler)
- Delete requires DELETE_GROUP (administrator); products of a deleted group
  become ungrouped
"""
from flask import Blueprint, request, current_app

from ..extensions import db
from ..services import group_service
from ..services.group_service import DuplicateGroupNameError
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth, require_permission

groups_bp = Blueprint("groups", __name__, url_prefix="/api/groups")


@groups_bp.get("")
@require_auth
@require_permission("VIEW_GROUPS")
def list_groups_route():
    groups = group_service.list_groups()
    return {"items": [grp.to_dict() for grp in groups], "count": len(groups)}


@groups_bp.post("")
@require_auth
@require_permission("MANAGE_GROUPS")
def create_group_route():
    """
    Create a group.

    Request body: name (required, unique), description (optional)
    """
    payload = request.get_json(silent=True) or {}

    try:
        group = group_service.create_group(payload)
    except DuplicateGroupNameError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create group")
        return {"error": "Internal server error"}, 500

    return group.to_dict(), 201


@groups_bp.get("/<int:group_id>")
@require_auth
@require_permission("VIEW_GROUPS")
def get_group_route(group_id: int):
    try:
        group = group_service.get_group(group_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return group.to_dict()


@groups_bp.put("/<int:group_id>")
@groups_bp.patch("/<int:group_id>")
@require_auth
@require_permission("MANAGE_GROUPS")
def update_group_route(group_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        group = group_service.update_group(group_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except DuplicateGroupNameError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update group %s", group_id)
        return {"error": "Internal server error"}, 500

    return group.to_dict()


@groups_bp.delete("/<int:group_id>")
@require_auth
@require_permission("DELETE_GROUP")
def delete_group_route(group_id: int):
    """
    Delete a group.

    Products that referenced it are kept with group_id set to null.
    """
    try:
        detached = group_service.delete_group(group_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete group %s", group_id)
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Deleted group %s, %s products ungrouped", group_id, detached)
    return {"ok": True, "ungrouped_products": detached}


@groups_bp.get("/<int:group_id>/products")
@require_auth
@require_permission("VIEW_GROUPS")
def list_group_products_route(group_id: int):
    try:
        products = group_service.list_group_products(group_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@groups_bp.get("/<int:group_id>/users")
@require_auth
@require_permission("VIEW_USERS")
def list_group_users_route(group_id: int):
    """Viewers whose allowed groups include this group."""
    try:
        users = group_service.list_group_users(group_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [u.to_dict() for u in users], "count": len(users)}
