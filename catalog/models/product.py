"""
Product model for catalog and stock management.
"""
import enum
from typing import Optional
from sqlalchemy import String, Integer, Text, Enum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog.core.database import Base


class ProductStatus(str, enum.Enum):
    """Stock availability of a product."""
    IN_STOCK = "In Stock"
    OUT_OF_STOCK = "Out of Stock"


# Largest quantity a portable 32-bit INTEGER column holds
MAX_STOCK = 2**31 - 1

_STATUS_KEYS = {"instock": ProductStatus.IN_STOCK, "outofstock": ProductStatus.OUT_OF_STOCK}


def derive_status(stock: int) -> ProductStatus:
    """Availability implied by a stock quantity."""
    return ProductStatus.IN_STOCK if stock > 0 else ProductStatus.OUT_OF_STOCK


def parse_status(value: Optional[str]) -> Optional[ProductStatus]:
    """
    Map free text such as "In Stock", "InStock" or "out_of_stock" to a status.

    Returns None for empty or unrecognized text.
    """
    if isinstance(value, ProductStatus):
        return value
    if not value:
        return None
    key = "".join(ch for ch in value.lower() if ch.isalpha())
    return _STATUS_KEYS.get(key)


class Product(Base):
    """Catalog product with its current stock level."""

    __tablename__ = "products"

    # Product identification
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stock information
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ProductStatus] = mapped_column(
        Enum(
            ProductStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=ProductStatus.IN_STOCK,
        nullable=False
    )

    # Embedded data URI (or an opaque reference kept as given)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        # Ids are never reused, so retained history cannot attach to a new product
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name}, stock={self.stock})>"
