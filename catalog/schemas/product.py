"""
Pydantic schemas for Product model.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator

from catalog.models.product import MAX_STOCK, ProductStatus, parse_status


def _coerce_status(value):
    if value is None or isinstance(value, ProductStatus):
        return value
    status = parse_status(str(value))
    if status is None:
        raise ValueError(f"status must be one of: {', '.join(s.value for s in ProductStatus)}")
    return status


class ProductBase(BaseModel):
    """Base product schema."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    unit: str = Field(..., min_length=1, max_length=50)
    category: str = Field(..., min_length=1, max_length=255)
    brand: str = Field(..., min_length=1, max_length=255)
    image: Optional[str] = None


class ProductCreate(ProductBase):
    """Schema for creating a product."""
    stock: int = Field(..., ge=0, le=MAX_STOCK)
    status: Optional[ProductStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        return _coerce_status(value)


class ProductUpdate(BaseModel):
    """Schema for updating a product. Only provided fields are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[str] = Field(None, min_length=1, max_length=255)
    brand: Optional[str] = Field(None, min_length=1, max_length=255)
    stock: Optional[int] = Field(None, ge=0, le=MAX_STOCK)
    status: Optional[ProductStatus] = None
    image: Optional[str] = None
    actor: Optional[str] = Field(None, max_length=255, description="Who made the change")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        return _coerce_status(value)


class ProductResponse(ProductBase):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    stock: int
    status: ProductStatus
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Paginated product list response."""
    total: int
    page: int
    pages: int
    products: list[ProductResponse]


class ProductSearchResponse(BaseModel):
    """Name search response."""
    products: list[ProductResponse]


class ProductDeleteResponse(BaseModel):
    """Response for product deletion."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    product_id: int = Field(..., alias="productId")
