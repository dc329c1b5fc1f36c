# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/techsheet/routes/products.py
"""
Product datasheet routes.

Request bodies for create/update carry two objects:
    {"product": {...}, "details": {...}}
where "details" holds the cosmetic or supplement fields matching product.type.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS and pass the visibility filter
  (viewers only see products of their allowed groups)
- Create/update/autosave require CREATE_PRODUCT / EDIT_PRODUCT
- Delete and approval are administrator-only (DELETE_PRODUCT, APPROVE_PRODUCT)
"""
from flask import Blueprint, request, g, current_app, Response

from ..extensions import db
from ..services import (
    products_service,
    approval_service,
    export_service,
    visibility_service,
)
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError, NotFoundError, InvalidTransitionError
from ..decorators import require_auth, require_permission

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _load_visible(product_id: int):
    """Fetch a product the caller may see; raises NotFoundError or PermissionDeniedError."""
    product = products_service.get_product(product_id)
    visibility_service.require_product_visible(
        g.current_user,
        product,
        resource=request.path,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return product


def _split_body(payload: dict):
    product = payload.get("product")
    details = payload.get("details")
    if product is not None and not isinstance(product, dict):
        raise ValidationError("product must be an object")
    if details is not None and not isinstance(details, dict):
        raise ValidationError("details must be an object")
    return product, details


def _int_arg(name: str):
    """Optional integer query parameter; raises ValidationError on junk."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List the products visible to the caller.

    Query params:
    - type: "cosmetic" | "supplement" (optional)
    - group_id: int (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    product_type = request.args.get("type")

    try:
        group_id = _int_arg("group_id")
        page = _int_arg("page")
        per_page = _int_arg("per_page")
        query = products_service.product_query(product_type=product_type, group_id=group_id)
    except ValidationError as e:
        return {"error": str(e)}, 400

    query = visibility_service.filter_visible_products(g.current_user, query)
    return products_service.paginate(query, page, per_page)


@products_bp.post("")
@require_auth
@require_permission("CREATE_PRODUCT")
def create_product_route():
    """
    Create a product together with its detail record.

    Requires CREATE_PRODUCT permission.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product, details = _split_body(payload)
        if product is None:
            return {"error": "product is required"}, 400
        created = products_service.create_product(product=product, details=details)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Product %s created by %s", created.id, g.current_user.username)
    return products_service.serialize_product(created), 201


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        product = _load_visible(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except PermissionDeniedError as e:
        return {"error": str(e)}, 403

    return products_service.serialize_product(product)


@products_bp.put("/<int:product_id>")
@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("EDIT_PRODUCT")
def update_product_route(product_id: int):
    """
    Partially update a product and/or its details.

    Only provided keys change. The product type is fixed at creation.

    Requires EDIT_PRODUCT permission.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product, details = _split_body(payload)
        updated = products_service.update_product(product_id, product=product, details=details)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except (ValidationError, InvalidTransitionError) as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", product_id)
        return {"error": "Internal server error"}, 500

    return products_service.serialize_product(updated)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("DELETE_PRODUCT")
def delete_product_route(product_id: int):
    """
    Delete a product and its details.

    Requires DELETE_PRODUCT permission.
    """
    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product %s", product_id)
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Product %s deleted by %s", product_id, g.current_user.username)
    return {"ok": True}, 200


# =============================================================================
# APPROVAL
# =============================================================================

def _approval_action(product_id: int, action):
    try:
        product = action(product_id, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except PermissionDeniedError as e:
        return {"error": str(e)}, 403
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change approval of product %s", product_id)
        return {"error": "Internal server error"}, 500

    return products_service.serialize_product(product)


@products_bp.post("/<int:product_id>/approve")
@require_auth
@require_permission("APPROVE_PRODUCT")
def approve_product_route(product_id: int):
    """Mark a product as approved by the calling administrator."""
    return _approval_action(product_id, approval_service.approve_product)


@products_bp.post("/<int:product_id>/unapprove")
@require_auth
@require_permission("APPROVE_PRODUCT")
def unapprove_product_route(product_id: int):
    """Clear a product's approval."""
    return _approval_action(product_id, approval_service.unapprove_product)


# =============================================================================
# AUTOSAVE
# =============================================================================

@products_bp.put("/<int:product_id>/autosave")
@require_auth
@require_permission("EDIT_PRODUCT")
def put_autosave_route(product_id: int):
    """
    Store a draft snapshot of the editor state.

    The body is kept as-is and never touches the committed fields.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return {"error": "JSON body required"}, 400

    try:
        products_service.autosave_product(product_id, payload)
        result = products_service.get_autosave(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to autosave product %s", product_id)
        return {"error": "Internal server error"}, 500

    return result


@products_bp.get("/<int:product_id>/autosave")
@require_auth
@require_permission("EDIT_PRODUCT")
def get_autosave_route(product_id: int):
    try:
        return products_service.get_autosave(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


# =============================================================================
# EXPORT
# =============================================================================

def _export(product_id: int, render, extension: str, mimetype: str):
    try:
        product = _load_visible(product_id)
        body = render(product)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except PermissionDeniedError as e:
        return {"error": str(e)}, 403
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to export product %s", product_id)
        return {"error": "Internal server error"}, 500

    filename = export_service.export_filename(product, extension)
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@products_bp.get("/<int:product_id>/export.md")
@require_auth
@require_permission("EXPORT_PRODUCT")
def export_markdown_route(product_id: int):
    """Download the datasheet as Markdown."""
    return _export(product_id, export_service.render_markdown, "md", "text/markdown")


@products_bp.get("/<int:product_id>/export.html")
@require_auth
@require_permission("EXPORT_PRODUCT")
def export_html_route(product_id: int):
    """Download the printable HTML datasheet (print to PDF from the browser)."""
    return _export(product_id, export_service.render_html, "html", "text/html")
