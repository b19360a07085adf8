import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.errors import NotFound, ValidationFailed
from marketplace.middleware.rbac import Identity
from marketplace.models.product import Product
from marketplace.models.user import User
from marketplace.services import uploads
from marketplace.services.approval import apply_transition, get_product
from marketplace.services.ownership import authorize_mutation, is_owner
from marketplace.utils.enums import ApprovalStatus, TransitionAction

logger = logging.getLogger(__name__)

# products.price is Numeric(12, 2)
CENT = Decimal("0.01")
MAX_PRICE = Decimal("9999999999.99")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()


def parse_price(value) -> Decimal:
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationFailed("price must be a number") from e
    if not price.is_finite() or price <= 0:
        raise ValidationFailed("price must be positive")
    if price > MAX_PRICE:
        raise ValidationFailed(f"price must not exceed {MAX_PRICE}")
    try:
        return price.quantize(CENT)
    except InvalidOperation as e:
        raise ValidationFailed("price must be a number") from e


def create_product(
    db: Session,
    settings: Settings,
    identity: Identity,
    name: Optional[str],
    price,
    description: Optional[str],
    image: Optional[UploadFile],
) -> Product:
    name, description = _clean_text(name), _clean_text(description)
    if not name or not description or price in (None, "") or image is None or not image.filename:
        raise ValidationFailed("All fields are required")
    price = parse_price(price)

    seller = db.get(User, identity.user_id)
    if seller is None:
        raise NotFound("Seller not found")

    filename = uploads.save_image(image, settings)
    product = Product(
        name=name,
        price=price,
        description=description,
        image=filename,
        seller_id=seller.id,
        seller_whatsapp=seller.phone,
        approval_status=ApprovalStatus.PENDING.value,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("product %s created by user %s, pending review", product.id, seller.id)
    return product


def update_product(
    db: Session,
    settings: Settings,
    identity: Identity,
    product_id: int,
    name: Optional[str] = None,
    price=None,
    description: Optional[str] = None,
    image: Optional[UploadFile] = None,
) -> Product:
    product = get_product(db, product_id)
    authorize_mutation(product, identity)

    name, description = _clean_text(name), _clean_text(description)
    if name is not None:
        if not name:
            raise ValidationFailed("name must not be empty")
        product.name = name
    if description is not None:
        if not description:
            raise ValidationFailed("description must not be empty")
        product.description = description
    if price not in (None, ""):
        product.price = parse_price(price)

    old_image = None
    if image is not None and image.filename:
        old_image = product.image
        product.image = uploads.save_image(image, settings)

    product.updated_at = datetime.utcnow()
    if settings.reset_status_on_edit and is_owner(product, identity):
        apply_transition(product, TransitionAction.RESUBMIT, identity, settings)

    db.commit()
    db.refresh(product)
    uploads.remove_image(old_image, settings)
    logger.info("product %s updated by user %s (status %s)",
                product.id, identity.user_id, product.approval_status)
    return product


def delete_product(db: Session, settings: Settings, identity: Identity, product_id: int) -> None:
    product = get_product(db, product_id)
    required = None
    if not identity.is_admin and not settings.allow_delete_any_status:
        required = ApprovalStatus.PENDING
    authorize_mutation(product, identity, required_status=required)

    _remove(db, settings, product)
    logger.info("product %s deleted by user %s", product_id, identity.user_id)


def mark_sold(db: Session, settings: Settings, identity: Identity, product_id: int) -> None:
    """The sale happened off-platform; the listing is simply removed."""
    product = get_product(db, product_id)
    authorize_mutation(product, identity)

    _remove(db, settings, product)
    logger.info("product %s marked as sold by user %s", product_id, identity.user_id)


def _remove(db: Session, settings: Settings, product: Product) -> None:
    image = product.image
    db.delete(product)
    db.commit()
    uploads.remove_image(image, settings)


def purge_rejected(db: Session, settings: Settings) -> int:
    rejected = db.query(Product).filter(Product.approval_status == ApprovalStatus.REJECTED.value).all()
    if not rejected:
        raise NotFound("No rejected products found to delete")

    images = [p.image for p in rejected]
    for p in rejected:
        db.delete(p)
    db.commit()
    for image in images:
        uploads.remove_image(image, settings)
    logger.info("purged %d rejected products", len(rejected))
    return len(rejected)


def seller_products(db: Session, seller_id: int, approved_only: bool = False) -> List[Product]:
    q = db.query(Product).filter(Product.seller_id == seller_id)
    if approved_only:
        q = q.filter(Product.approval_status == ApprovalStatus.APPROVED.value)
    return q.order_by(Product.created_at.desc(), Product.id.desc()).all()


def visible_product(db: Session, product_id: int, identity: Optional[Identity]) -> Product:
    """Approved products are public; others only to their owner and admins."""
    product = get_product(db, product_id)
    if product.approval_status == ApprovalStatus.APPROVED.value:
        return product
    if identity is not None and (identity.is_admin or is_owner(product, identity)):
        return product
    raise NotFound("Product not found")
