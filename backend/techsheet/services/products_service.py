# backend/techsheet/services/products_service.py
"""
Product Repository

CRUD over datasheets and their type-specific detail records, plus autosave
draft storage. This module is role-agnostic: authorization and visibility
are enforced by the routes (see visibility_service).

MUTATION HOOK: every committed write goes through _after_product_mutation(),
which recomputes is_complete and records autocomplete values in the same
transaction. No write path commits without it.

CONCURRENCY: mutations load the row with lock_for_update() and run under
run_with_retry(); the products.version_id column catches lost updates on
backends that ignore row locks.
"""
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, CosmeticDetails, SupplementDetails
from ..models.catalog import (
    PRODUCT_TYPES,
    PRODUCT_TEXT_FIELDS,
    COSMETIC_DETAIL_FIELDS,
    SUPPLEMENT_DETAIL_FIELDS,
)
from ..validation import (
    InvalidTransitionError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from . import completeness_service, suggestion_service
from .concurrency import lock_for_update, run_with_retry
from .group_service import group_exists
from techsheet.time_utils import utcnow

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(PRODUCT_TEXT_FIELDS) | {"type", "group_id"},
    required_on_create={"name", "type"},
)

COSMETIC_DETAILS_POLICY = ModelValidationPolicy(writable_fields=set(COSMETIC_DETAIL_FIELDS))
SUPPLEMENT_DETAILS_POLICY = ModelValidationPolicy(writable_fields=set(SUPPLEMENT_DETAIL_FIELDS))

# product.type -> (detail model, relationship attribute, validation policy)
DETAIL_MODELS = {
    "cosmetic": (CosmeticDetails, "cosmetic_details", COSMETIC_DETAILS_POLICY),
    "supplement": (SupplementDetails, "supplement_details", SUPPLEMENT_DETAILS_POLICY),
}


def _validate_group_reference(patch: dict) -> None:
    group_id = patch.get("group_id")
    if group_id is not None and not group_exists(group_id):
        raise ValidationError("Group not found")


def _validate_details(product_type: str, details: dict | None) -> dict:
    if details is None:
        return {}
    model, _, policy = DETAIL_MODELS[product_type]
    return validate_payload(model=model, payload=details, policy=policy, partial=True)


def _after_product_mutation(product: Product) -> None:
    """Recompute derived state; must run before every product commit."""
    product.is_complete = completeness_service.is_complete(product, product.details)
    suggestion_service.record_product(product)


def serialize_product(product: Product) -> dict:
    """Product with its joined detail record (None when the record is missing)."""
    details = product.details
    return {
        "product": product.to_dict(),
        "details": details.to_dict() if details is not None else None,
        "missing_fields": completeness_service.missing_fields(product, details),
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def product_query(*, product_type: str | None = None, group_id: int | None = None):
    """Plain filter over products; visibility is layered on by the caller."""
    query = db.session.query(Product)
    if product_type is not None:
        if product_type not in PRODUCT_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(PRODUCT_TYPES)}")
        query = query.filter(Product.type == product_type)
    if group_id is not None:
        query = query.filter(Product.group_id == group_id)
    return query.order_by(Product.name.asc(), Product.id.asc())


def paginate(query, page: int | None = None, per_page: int | None = None) -> dict:
    """
    Serialize a product query with optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    if page is None:
        products = query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def list_products(
    *,
    product_type: str | None = None,
    group_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    return paginate(product_query(product_type=product_type, group_id=group_id), page, per_page)


def create_product(*, product: dict, details: dict | None = None) -> Product:
    """
    Create a product and its matching detail record in one transaction.

    Raises:
        ValidationError: bad payload, unknown type or missing group
    """
    patch = validate_payload(model=Product, payload=product, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    _validate_group_reference(patch)
    detail_patch = _validate_details(patch["type"], details)

    model, relation, _ = DETAIL_MODELS[patch["type"]]

    try:
        p = Product(**patch)
        setattr(p, relation, model(**detail_patch))
        db.session.add(p)
        _after_product_mutation(p)
        db.session.commit()
    except SQLAlchemyError:
        # No product survives without its detail record
        db.session.rollback()
        raise

    return p


def update_product(product_id: int, *, product: dict | None = None, details: dict | None = None) -> Product:
    """
    Partial update: only provided keys change.

    Raises:
        NotFoundError: unknown product
        InvalidTransitionError: attempt to change the product type
        ValidationError: bad payload or missing group
    """
    patch = validate_payload(model=Product, payload=product or {}, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    _validate_group_reference(patch)

    def _op() -> Product:
        p = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if p is None:
            raise NotFoundError("Product not found")

        if "type" in patch and patch["type"] != p.type:
            raise InvalidTransitionError("Product type cannot be changed after creation")

        detail_patch = _validate_details(p.type, details)

        for k, v in patch.items():
            setattr(p, k, v)

        record = p.details
        if record is None:
            model, relation, _ = DETAIL_MODELS[p.type]
            record = model()
            setattr(p, relation, record)
        for k, v in detail_patch.items():
            setattr(record, k, v)

        _after_product_mutation(p)
        db.session.commit()
        return p

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Hard-delete a product; its detail record goes with it.

    Callers must restrict this to administrators.
    """
    p = get_product(product_id)
    db.session.delete(p)
    db.session.commit()


def autosave_product(product_id: int, blob) -> Product:
    """
    Overwrite the product's draft snapshot.

    The blob is stored as-is: committed fields and is_complete are untouched.
    """
    def _op() -> Product:
        p = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if p is None:
            raise NotFoundError("Product not found")
        p.last_autosave = blob
        p.last_autosave_at = utcnow()
        db.session.commit()
        return p

    return run_with_retry(_op)


def get_autosave(product_id: int) -> dict:
    p = get_product(product_id)
    return {
        "product_id": p.id,
        "autosave": p.last_autosave,
        "autosaved_at": p.to_dict()["last_autosave_at"],
    }
