# Overview: Data model package; re-exports ORM models.

from .auth import User
from .inventory import Product, StockMovement

__all__ = [
    "User",
    "Product",
    "StockMovement",
]
