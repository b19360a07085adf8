# marketplace/models/__init__.py
from .user import User          # noqa: F401
from .product import Product    # noqa: F401
