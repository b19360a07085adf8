"""Product approval workflow.

    (create)  --seller-->  pending
    pending   --approve--> approved        admin
    pending   --reject-->  rejected        admin
    any       --override-> any             admin
    any       --resubmit-> pending         owning seller (content edit)
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from marketplace.config import Settings
from marketplace.errors import Forbidden, NotFound, PreconditionFailed, ValidationFailed
from marketplace.middleware.rbac import Identity
from marketplace.models.product import Product
from marketplace.services.ownership import is_owner
from marketplace.utils.enums import ApprovalStatus, TransitionAction

logger = logging.getLogger(__name__)

ADMIN_ACTIONS = {TransitionAction.APPROVE, TransitionAction.REJECT, TransitionAction.OVERRIDE}

_TARGETS = {
    TransitionAction.APPROVE: ApprovalStatus.APPROVED,
    TransitionAction.REJECT: ApprovalStatus.REJECTED,
    TransitionAction.RESUBMIT: ApprovalStatus.PENDING,
}


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def _authorize(product: Product, action: TransitionAction, identity: Identity) -> None:
    if action in ADMIN_ACTIONS:
        if not identity.is_admin:
            raise Forbidden("Access denied. Admins only.")
    elif action == TransitionAction.RESUBMIT:
        if not is_owner(product, identity):
            raise Forbidden("Only the owning seller can resubmit a product")


def apply_transition(
    product: Product,
    action: TransitionAction,
    identity: Identity,
    settings: Settings,
    target: Optional[ApprovalStatus] = None,
) -> bool:
    """Check and apply a transition in memory. Returns True if the status changed."""
    _authorize(product, action, identity)

    if action == TransitionAction.OVERRIDE:
        if target is None:
            raise ValidationFailed("approval_status is required")
        new_status = ApprovalStatus(target)
    else:
        new_status = _TARGETS[action]

    old_status = product.approval_status
    if old_status == new_status.value:
        if action in (TransitionAction.APPROVE, TransitionAction.REJECT) and not settings.reapprove_is_noop:
            raise PreconditionFailed(f"Product is already {old_status}")
        return False

    product.approval_status = new_status.value
    product.updated_at = datetime.utcnow()
    logger.info("product %s: %s -> %s (%s by user %s)",
                product.id, old_status, new_status.value, action.value, identity.user_id)
    return True


def transition(
    db: Session,
    product_id: int,
    action: TransitionAction,
    identity: Identity,
    settings: Settings,
    target: Optional[ApprovalStatus] = None,
) -> Product:
    product = get_product(db, product_id)
    if apply_transition(product, action, identity, settings, target):
        db.commit()
        db.refresh(product)
    return product


def list_by_status(db: Session, status: Optional[ApprovalStatus] = None) -> List[Product]:
    """Products in the given status (all when None), newest first."""
    q = db.query(Product).options(selectinload(Product.seller))
    if status is not None:
        q = q.filter(Product.approval_status == ApprovalStatus(status).value)
    return q.order_by(Product.created_at.desc(), Product.id.desc()).all()
