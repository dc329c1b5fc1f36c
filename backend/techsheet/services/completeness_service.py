# Overview: Derives a product's is_complete flag from its required field set.

"""
Completeness Evaluator

A datasheet is complete when every required header field and every required
field of its type-specific detail record holds a non-blank value. None,
empty strings and whitespace-only strings all count as missing.

is_complete() is a pure function of current state; callers recompute it,
never patch it incrementally.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError

REQUIRED_PRODUCT_FIELDS = (
    "name",
    "type",
    "code",
    "date",
    "content",
    "category",
    "packaging",
    "ingredients",
    "characteristics",
    "usage",
)

REQUIRED_DETAIL_FIELDS = {
    "cosmetic": ("color", "fragrance", "ph"),
    "supplement": ("nutritional_info", "indications", "dosage"),
}


def _is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def missing_fields(product, details) -> list[str]:
    """Required fields without a value; detail fields are prefixed 'details.'."""
    missing = [f for f in REQUIRED_PRODUCT_FIELDS if not _is_filled(getattr(product, f, None))]

    for f in REQUIRED_DETAIL_FIELDS.get(getattr(product, "type", None), ()):
        if details is None or not _is_filled(getattr(details, f, None)):
            missing.append(f"details.{f}")

    return missing


def is_complete(product, details) -> bool:
    return not missing_fields(product, details)


def update_product_completeness(product_id: int) -> bool:
    """Recompute and persist is_complete for one product; returns the new value."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    complete = is_complete(product, product.details)
    if product.is_complete != complete:
        product.is_complete = complete
        db.session.commit()
    return complete
