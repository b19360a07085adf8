from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.db import get_db
from marketplace.middleware.rbac import Identity, get_settings, require_admin
from marketplace.schemas import ProductMessage, ProductOut, PurgeOut, StatusOverride
from marketplace.services import approval, products
from marketplace.utils.enums import ApprovalStatus, TransitionAction

router = APIRouter(prefix="/products", tags=["admin-products"])


# ---- review queues ----
@router.get("/all", response_model=List[ProductOut])
def all_products(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return approval.list_by_status(db)


@router.get("/pending", response_model=List[ProductOut])
def pending_products(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return approval.list_by_status(db, ApprovalStatus.PENDING)


@router.get("/approved", response_model=List[ProductOut])
def approved_products(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return approval.list_by_status(db, ApprovalStatus.APPROVED)


@router.get("/rejected", response_model=List[ProductOut])
def rejected_products(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return approval.list_by_status(db, ApprovalStatus.REJECTED)


@router.delete("/rejected", response_model=PurgeOut)
def purge_rejected(
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    deleted = products.purge_rejected(db, settings)
    return {"message": f"{deleted} rejected products deleted successfully", "deleted": deleted}


# ---- transitions ----
@router.put("/{product_id}/approve", response_model=ProductMessage)
def approve_product(
    product_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    product = approval.transition(db, product_id, TransitionAction.APPROVE, admin, settings)
    return {"message": "Product approved successfully", "product": product}


@router.put("/{product_id}/reject", response_model=ProductMessage)
def reject_product(
    product_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    product = approval.transition(db, product_id, TransitionAction.REJECT, admin, settings)
    return {"message": "Product rejected successfully", "product": product}


@router.put("/{product_id}/status", response_model=ProductMessage)
def override_status(
    product_id: int,
    body: StatusOverride,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    product = approval.transition(
        db, product_id, TransitionAction.OVERRIDE, admin, settings, target=body.approval_status,
    )
    return {"message": f"Product {product.approval_status} successfully", "product": product}
