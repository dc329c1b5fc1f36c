# Overview: Administrator approval stamp on products.

"""
Approval Workflow

STATE MACHINE:
    unapproved --approve--> approved
    approved --unapprove--> unapproved

RULES:
1. Only a user whose role is administrator at call time may approve or
   unapprove. Anyone else gets PermissionDeniedError and the product is
   left untouched.
2. Approval is independent of completeness: incomplete products may be
   approved.
3. Editing an approved product does not revoke approval.
4. Repeating a transition into the current state is a no-op (the original
   approver and timestamp are kept).
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, User
from ..validation import NotFoundError
from . import permission_service
from .concurrency import lock_for_update, run_with_retry
from techsheet.time_utils import utcnow


def _require_approver(acting_user_id: int, action: str) -> User:
    user = db.session.get(User, acting_user_id) if acting_user_id is not None else None
    if user is None:
        raise permission_service.PermissionDeniedError("Permission denied: APPROVE_PRODUCT")
    permission_service.require_permission(user, "APPROVE_PRODUCT", resource=action)
    return user


def _load_for_update(product_id: int) -> Product:
    p = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
    if p is None:
        raise NotFoundError("Product not found")
    return p


def approve_product(product_id: int, acting_user_id: int) -> Product:
    user = _require_approver(acting_user_id, f"product:{product_id}:approve")

    def _op() -> Product:
        p = _load_for_update(product_id)
        if p.is_approved:
            return p
        p.is_approved = True
        p.approved_by_user_id = user.id
        p.approved_at = utcnow()
        db.session.commit()
        return p

    product = run_with_retry(_op)
    permission_service.log_security_event(
        user_id=user.id,
        event_type="PRODUCT_APPROVED",
        success=True,
        resource=f"product:{product.id}",
        action="APPROVE_PRODUCT",
    )
    return product


def unapprove_product(product_id: int, acting_user_id: int) -> Product:
    user = _require_approver(acting_user_id, f"product:{product_id}:unapprove")

    def _op() -> Product:
        p = _load_for_update(product_id)
        if not p.is_approved:
            return p
        p.is_approved = False
        p.approved_by_user_id = None
        p.approved_at = None
        db.session.commit()
        return p

    product = run_with_retry(_op)
    permission_service.log_security_event(
        user_id=user.id,
        event_type="PRODUCT_UNAPPROVED",
        success=True,
        resource=f"product:{product.id}",
        action="APPROVE_PRODUCT",
    )
    return product
