# Overview: Autocomplete index of previously entered datasheet field values.

"""
Suggestion Index

Every non-empty text value written to a product or detail record is kept
per field name (deduplicated). suggest() returns case-insensitive substring
matches once the query reaches the minimum length.

The index is advisory: rebuild_index() recreates it from the products table.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import FieldSuggestion, Product
from ..models.catalog import (
    PRODUCT_TEXT_FIELDS,
    COSMETIC_DETAIL_FIELDS,
    SUPPLEMENT_DETAIL_FIELDS,
)

SUGGESTABLE_FIELDS = frozenset(
    PRODUCT_TEXT_FIELDS + COSMETIC_DETAIL_FIELDS + SUPPLEMENT_DETAIL_FIELDS
)


def _clean(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def record(field: str, value) -> bool:
    """
    Stage a value for a field. Does not commit; the caller's transaction does.

    Returns True if a new suggestion was added.
    """
    value = _clean(value)
    if value is None or field not in SUGGESTABLE_FIELDS:
        return False

    exists = (
        db.session.query(FieldSuggestion.id)
        .filter(FieldSuggestion.field == field, FieldSuggestion.value == value)
        .first()
    )
    if exists:
        return False

    db.session.add(FieldSuggestion(field=field, value=value, value_folded=value.casefold()))
    # Flush so a repeated value later in the same transaction is seen as existing
    db.session.flush()
    return True


def record_record(obj, fields) -> int:
    """Record every listed field of a product or detail record."""
    return sum(1 for f in fields if record(f, getattr(obj, f, None)))


def record_product(product) -> int:
    added = record_record(product, PRODUCT_TEXT_FIELDS)
    if product.cosmetic_details is not None:
        added += record_record(product.cosmetic_details, COSMETIC_DETAIL_FIELDS)
    if product.supplement_details is not None:
        added += record_record(product.supplement_details, SUPPLEMENT_DETAIL_FIELDS)
    return added


def suggest(field: str, prefix: str | None, limit: int | None = None) -> list[str]:
    """
    Up to `limit` stored values for `field` containing `prefix`.

    Matching is a casefolded substring search, so accented capitals match
    their lowercase forms. The length floor is measured on the query as
    typed; queries shorter than the minimum return [].
    """
    min_length = current_app.config.get("SUGGESTION_MIN_QUERY_LENGTH", 3)
    if limit is None:
        limit = current_app.config.get("SUGGESTION_LIMIT", 10)

    prefix = prefix or ""
    if len(prefix) < min_length:
        return []

    rows = (
        db.session.query(FieldSuggestion.value)
        .filter(
            FieldSuggestion.field == field,
            FieldSuggestion.value_folded.contains(prefix.casefold(), autoescape=True),
        )
        .order_by(FieldSuggestion.value.asc())
        .limit(limit)
        .all()
    )
    return [r[0] for r in rows]


def rebuild_index() -> int:
    """Drop every suggestion and re-record all products. Returns the new row count."""
    db.session.query(FieldSuggestion).delete(synchronize_session=False)
    db.session.flush()

    for product in db.session.query(Product).order_by(Product.id.asc()).all():
        record_product(product)

    db.session.commit()
    return db.session.query(FieldSuggestion).count()
