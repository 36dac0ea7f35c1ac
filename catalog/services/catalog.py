"""
Catalog queries and mutations over a database session.
"""
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.error_handlers import (
    ConflictError,
    DuplicateResourceError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)
from catalog.logging_config import get_logger
from catalog.models.history import InventoryHistory
from catalog.models.product import Product, derive_status
from catalog.schemas.product import ProductCreate, ProductUpdate
from catalog.services.audit import record_stock_change

logger = get_logger("catalog")

SORT_FIELDS = {
    "name": Product.name,
    "unit": Product.unit,
    "category": Product.category,
    "brand": Product.brand,
    "stock": Product.stock,
    "status": Product.status,
    "created_at": Product.created_at,
    "createdAt": Product.created_at,
    "updated_at": Product.updated_at,
    "updatedAt": Product.updated_at,
}


def parse_sort(sort: str) -> list:
    """Turn "name,-stock" into ORDER BY clauses."""
    clauses = []
    for token in (part.strip() for part in sort.split(",")):
        if not token:
            continue
        descending = token.startswith("-")
        column = SORT_FIELDS.get(token.lstrip("-+"))
        if column is None:
            raise ValidationError(
                f"Cannot sort by '{token}'",
                errors=[{"field": "sort", "allowed": sorted(SORT_FIELDS)}]
            )
        clauses.append(column.desc() if descending else column.asc())
    clauses.append(Product.id.asc())
    return clauses


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ProductCatalog:
    """Product storage operations bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    # Lookups

    def find_by_exact_name(self, name: str) -> Optional[Product]:
        """Case-sensitive exact name match."""
        return self.db.scalar(select(Product).where(Product.name == name))

    def get(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise ResourceNotFoundError("Product", product_id)
        return product

    def search(self, name: str) -> list[Product]:
        """Case-insensitive substring match on name."""
        query = select(Product).where(Product.name.ilike(_like_pattern(name), escape="\\"))
        return list(self.db.scalars(query.order_by(Product.name, Product.id)).all())

    def list_products(
        self,
        page: int = 1,
        limit: int = 7,
        sort: str = "name",
        name: Optional[str] = None
    ) -> tuple[int, list[Product]]:
        """Return (total matching, page of products)."""
        query = select(Product)
        if name:
            query = query.where(Product.name.ilike(_like_pattern(name), escape="\\"))

        total = self.db.scalar(select(func.count()).select_from(query.subquery()))

        query = query.order_by(*parse_sort(sort))
        query = query.offset((page - 1) * limit).limit(limit)
        return total, list(self.db.scalars(query).all())

    def all_products(self) -> list[Product]:
        return list(self.db.scalars(select(Product).order_by(Product.id)).all())

    def history(self, product_id: int) -> list[InventoryHistory]:
        """History entries for a product, newest first."""
        self.get(product_id)
        query = (
            select(InventoryHistory)
            .where(InventoryHistory.product_id == product_id)
            .order_by(InventoryHistory.created_at.desc(), InventoryHistory.id.desc())
        )
        return list(self.db.scalars(query).all())

    # Writes

    def insert(self, data: ProductCreate) -> Product:
        """
        Persist a new product, deriving status from stock when not given.

        Raises:
            ConflictError: the name was taken by a concurrent writer
        """
        product = Product(
            name=data.name,
            unit=data.unit,
            category=data.category,
            brand=data.brand,
            stock=data.stock,
            status=data.status or derive_status(data.stock),
            image=data.image or None,
        )
        self.db.add(product)
        self._commit(product.name)
        self.db.refresh(product)
        return product

    def create(self, data: ProductCreate) -> Product:
        """Insert after checking that the name is free."""
        if self.find_by_exact_name(data.name) is not None:
            raise DuplicateResourceError("Product", "name", data.name)
        return self.insert(data)

    def update(self, product_id: int, changes: ProductUpdate) -> Product:
        """
        Apply a partial update. Fields sent as null keep their current value.

        A stock change is written to history before the product is modified;
        if that write fails nothing is committed. Status is recomputed from
        stock unless the caller supplied one.
        """
        product = self.get(product_id)

        update_data = changes.model_dump(exclude_unset=True, exclude={"actor"})
        update_data = {field: value for field, value in update_data.items() if value is not None}

        new_name = update_data.get("name")
        if new_name and new_name != product.name:
            clash = self.db.scalar(
                select(Product).where(Product.name == new_name, Product.id != product.id)
            )
            if clash is not None:
                raise DuplicateResourceError("Product", "name", new_name)

        if "stock" in update_data:
            record_stock_change(self, product, update_data["stock"], changes.actor)

        for field, value in update_data.items():
            setattr(product, field, value)

        if "status" not in update_data:
            product.status = derive_status(product.stock)

        self._commit(product.name)
        self.db.refresh(product)
        return product

    def set_image(self, product_id: int, image: str) -> Product:
        product = self.get(product_id)
        product.image = image
        self._commit(product.name)
        self.db.refresh(product)
        return product

    def delete(self, product_id: int) -> None:
        """Hard delete a product. Its stock history rows are kept."""
        product = self.get(product_id)
        name = product.name
        self.db.delete(product)
        self.db.commit()
        logger.info(f"Deleted product {product_id} ({name})")

    def append_history(self, entry: InventoryHistory) -> None:
        """Stage a history entry and flush it so storage errors surface now."""
        self.db.add(entry)
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"History write failed for product {entry.product_id}: {e}", exc_info=True)
            raise StorageError("could not record stock history", original_error=str(e)) from e

    def _commit(self, name: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Product", "name", name, original_error=str(e.orig)) from e
