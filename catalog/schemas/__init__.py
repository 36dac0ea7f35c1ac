"""
Pydantic schemas for request/response validation.
"""
from catalog.schemas.product import (
    ProductBase, ProductCreate, ProductUpdate, ProductResponse,
    ProductListResponse, ProductSearchResponse, ProductDeleteResponse
)
from catalog.schemas.history import InventoryHistoryResponse
from catalog.schemas.imports import ImportRowFailure, ImportResult

__all__ = [
    # Product schemas
    "ProductBase", "ProductCreate", "ProductUpdate", "ProductResponse",
    "ProductListResponse", "ProductSearchResponse", "ProductDeleteResponse",

    # History schemas
    "InventoryHistoryResponse",

    # Import schemas
    "ImportRowFailure", "ImportResult",
]
