"""
Inventory history model: append-only audit trail of stock changes.
"""
from datetime import datetime
from sqlalchemy import String, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from catalog.core.database import Base

DEFAULT_ACTOR = "System"


class InventoryHistory(Base):
    """
    One stock change of one product. Rows are written once and never updated.

    product_id is a plain reference rather than a foreign key: the trail
    outlives the product it describes.
    """

    __tablename__ = "inventory_history"

    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    old_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    new_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False, default=DEFAULT_ACTOR)

    __table_args__ = (
        Index("idx_inventory_history_product", "product_id", "created_at"),
    )

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    def __repr__(self) -> str:
        return (
            f"<InventoryHistory(id={self.id}, product_id={self.product_id}, "
            f"{self.old_qty}->{self.new_qty}, actor={self.actor})>"
        )
