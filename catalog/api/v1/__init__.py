"""API v1 Router."""
from fastapi import APIRouter

from catalog.api.v1 import products

api_router = APIRouter(prefix="/api/v1")

# Include all route modules
api_router.include_router(products.router)

__all__ = ["api_router"]
