"""
Stock change auditing.

Every update that moves a product's stock to a different quantity leaves one
InventoryHistory row, written in the same transaction as the product change
and flushed before it.
"""
from typing import Optional, TYPE_CHECKING

from catalog.models.history import InventoryHistory, DEFAULT_ACTOR
from catalog.models.product import Product
from catalog.logging_config import get_logger

if TYPE_CHECKING:
    from catalog.services.catalog import ProductCatalog

logger = get_logger("audit")


def record_stock_change(
    catalog: "ProductCatalog",
    product: Product,
    new_qty: int,
    actor: Optional[str] = None
) -> Optional[InventoryHistory]:
    """
    Append a history entry if new_qty differs from the persisted stock.

    Must run before the new stock is assigned to the product.

    Returns:
        The entry written, or None when the quantity is unchanged

    Raises:
        StorageError: the entry could not be written; the session is rolled back
    """
    old_qty = product.stock
    if new_qty == old_qty:
        return None

    entry = InventoryHistory(
        product_id=product.id,
        old_qty=old_qty,
        new_qty=new_qty,
        actor=actor or DEFAULT_ACTOR
    )
    catalog.append_history(entry)

    logger.info(f"Stock of product {product.id} ({product.name}) {old_qty} -> {new_qty} by {entry.actor}")
    return entry
