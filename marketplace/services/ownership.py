from typing import Optional

from marketplace.errors import Forbidden, PreconditionFailed
from marketplace.middleware.rbac import Identity
from marketplace.models.product import Product
from marketplace.utils.enums import ApprovalStatus


def is_owner(product: Product, identity: Identity) -> bool:
    return product.seller_id == identity.user_id


def authorize_mutation(
    product: Product,
    identity: Identity,
    required_status: Optional[ApprovalStatus] = None,
) -> None:
    """Gate edit, delete and mark-as-sold on a product.

    Admins pass the ownership check; everybody else must own the product.
    ``required_status`` adds a state precondition checked after ownership.
    """
    if not identity.is_admin and not is_owner(product, identity):
        raise Forbidden("Unauthorized to modify this product")

    if required_status is not None and product.approval_status != required_status.value:
        raise PreconditionFailed(
            f"Product is {product.approval_status}; this action requires {required_status.value}"
        )
