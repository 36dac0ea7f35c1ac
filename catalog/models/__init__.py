"""
SQLAlchemy models for the catalog service.
Import all models here to ensure they're registered with SQLAlchemy.
"""
from catalog.models.product import MAX_STOCK, Product, ProductStatus, derive_status, parse_status
from catalog.models.history import InventoryHistory, DEFAULT_ACTOR

__all__ = [
    "MAX_STOCK",
    "Product",
    "ProductStatus",
    "derive_status",
    "parse_status",
    "InventoryHistory",
    "DEFAULT_ACTOR",
]
