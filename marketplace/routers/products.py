from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.db import get_db
from marketplace.middleware.rbac import Identity, get_identity, get_optional_identity, get_settings
from marketplace.schemas import MessageOut, ProductMessage, ProductOut
from marketplace.services import approval, products
from marketplace.utils.enums import ApprovalStatus

router = APIRouter(prefix="/products", tags=["products"])


# public catalogue: approved only, newest first
@router.get("", response_model=List[ProductOut])
def list_public(db: Session = Depends(get_db)):
    return approval.list_by_status(db, ApprovalStatus.APPROVED)


@router.post("", status_code=201, response_model=ProductMessage)
def upload_product(
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    product = products.create_product(db, settings, identity, name, price, description, image)
    return {"message": "Product uploaded successfully", "product": product}


# seller's own products in every status
@router.get("/mine", response_model=List[ProductOut])
def my_products(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return products.seller_products(db, identity.user_id)


# public storefront of one seller
@router.get("/seller/{seller_id}", response_model=List[ProductOut])
def seller_storefront(seller_id: int, db: Session = Depends(get_db)):
    return products.seller_products(db, seller_id, approved_only=True)


@router.get("/{product_id}", response_model=ProductOut)
def product_detail(
    product_id: int,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    return products.visible_product(db, product_id, identity)


@router.put("/{product_id}", response_model=ProductMessage)
def update_product(
    product_id: int,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    product = products.update_product(
        db, settings, identity, product_id,
        name=name, price=price, description=description, image=image,
    )
    return {"message": "Product updated successfully", "product": product}


@router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    products.delete_product(db, settings, identity, product_id)
    return {"message": "Product deleted successfully"}


@router.post("/{product_id}/sold", response_model=MessageOut)
def mark_sold(
    product_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    products.mark_sold(db, settings, identity, product_id)
    return {"message": "Product marked as sold and deleted successfully"}
