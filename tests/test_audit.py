"""Tests for catalog updates and the stock history they record."""
from datetime import datetime

import pytest
from freezegun import freeze_time
from sqlalchemy.exc import OperationalError

from catalog.error_handlers import DuplicateResourceError, ResourceNotFoundError, StorageError
from catalog.models import InventoryHistory, ProductStatus
from catalog.schemas.product import ProductCreate, ProductUpdate


class TestStockHistory:
    """A history entry exists iff stock changes to a different value."""

    def test_same_stock_records_nothing(self, catalog, sample_products, test_db):
        milk = sample_products[0]

        catalog.update(milk.id, ProductUpdate(stock=5))

        assert test_db.query(InventoryHistory).count() == 0

    def test_changed_stock_records_one_entry(self, catalog, sample_products):
        milk = sample_products[0]

        updated = catalog.update(milk.id, ProductUpdate(stock=8))

        history = catalog.history(milk.id)
        assert updated.stock == 8
        assert len(history) == 1
        assert history[0].old_qty == 5
        assert history[0].new_qty == 8
        assert history[0].actor == "System"
        assert history[0].product_id == milk.id

    def test_actor_recorded(self, catalog, sample_products):
        milk = sample_products[0]

        catalog.update(milk.id, ProductUpdate(stock=2, actor="warehouse-bot"))

        assert catalog.history(milk.id)[0].actor == "warehouse-bot"

    def test_update_without_stock_records_nothing(self, catalog, sample_products, test_db):
        milk = sample_products[0]

        catalog.update(milk.id, ProductUpdate(name="Whole Milk 1.5L", brand="Sek", actor="alice"))

        assert test_db.query(InventoryHistory).count() == 0

    def test_null_stock_treated_as_absent(self, catalog, sample_products, test_db):
        milk = sample_products[0]

        updated = catalog.update(milk.id, ProductUpdate(stock=None, unit="carton"))

        assert updated.stock == 5
        assert updated.unit == "carton"
        assert test_db.query(InventoryHistory).count() == 0

    def test_creation_records_nothing(self, catalog, test_db):
        catalog.create(ProductCreate(name="Tea", unit="box", category="Drinks", brand="Caykur", stock=40))

        assert test_db.query(InventoryHistory).count() == 0

    def test_entries_append_newest_first(self, catalog, sample_products):
        milk = sample_products[0]

        with freeze_time("2026-03-01 09:00:00"):
            catalog.update(milk.id, ProductUpdate(stock=8))
        with freeze_time("2026-03-02 09:00:00"):
            catalog.update(milk.id, ProductUpdate(stock=3))

        history = catalog.history(milk.id)
        assert [(h.old_qty, h.new_qty) for h in history] == [(8, 3), (5, 8)]

    @freeze_time("2026-03-01 12:30:00")
    def test_timestamp_is_creation_time(self, catalog, sample_products):
        milk = sample_products[0]

        catalog.update(milk.id, ProductUpdate(stock=6))

        entry = catalog.history(milk.id)[0]
        assert entry.timestamp.replace(tzinfo=None) == datetime(2026, 3, 1, 12, 30)

    def test_history_write_failure_aborts_update(self, catalog, sample_products, test_db, monkeypatch):
        milk = sample_products[0]

        def failing_flush(*args, **kwargs):
            raise OperationalError("INSERT INTO inventory_history", {}, Exception("disk I/O error"))

        monkeypatch.setattr(test_db, "flush", failing_flush)
        with pytest.raises(StorageError):
            catalog.update(milk.id, ProductUpdate(stock=8, name="Renamed"))
        monkeypatch.undo()

        reloaded = catalog.get(milk.id)
        assert reloaded.stock == 5
        assert reloaded.name == "Whole Milk 1L"
        assert test_db.query(InventoryHistory).count() == 0

    def test_history_of_unknown_product(self, catalog):
        with pytest.raises(ResourceNotFoundError):
            catalog.history(999)


class TestStatusOnUpdate:
    """Status follows stock unless given explicitly."""

    def test_stock_to_zero_marks_out_of_stock(self, catalog, sample_products):
        updated = catalog.update(sample_products[0].id, ProductUpdate(stock=0))
        assert updated.status == ProductStatus.OUT_OF_STOCK

    def test_restock_marks_in_stock(self, catalog, sample_products):
        chocolate = sample_products[1]
        assert chocolate.status == ProductStatus.OUT_OF_STOCK

        updated = catalog.update(chocolate.id, ProductUpdate(stock=20))
        assert updated.status == ProductStatus.IN_STOCK

    def test_explicit_status_wins(self, catalog, sample_products):
        updated = catalog.update(sample_products[0].id, ProductUpdate(stock=0, status="In Stock"))
        assert updated.status == ProductStatus.IN_STOCK

    def test_status_rederived_without_stock_change(self, catalog, sample_products, test_db):
        milk = sample_products[0]
        milk.status = ProductStatus.OUT_OF_STOCK
        test_db.commit()

        updated = catalog.update(milk.id, ProductUpdate(category="Milk"))
        assert updated.status == ProductStatus.IN_STOCK


class TestCatalogWrites:

    def test_create_rejects_existing_name(self, catalog, sample_products):
        with pytest.raises(DuplicateResourceError):
            catalog.create(ProductCreate(name="Dark Chocolate", unit="bar", category="Snacks", brand="X", stock=1))

    def test_rename_to_taken_name_rejected(self, catalog, sample_products):
        with pytest.raises(DuplicateResourceError):
            catalog.update(sample_products[0].id, ProductUpdate(name="Dark Chocolate"))

    def test_rename_to_own_name_allowed(self, catalog, sample_products):
        updated = catalog.update(sample_products[0].id, ProductUpdate(name="Whole Milk 1L", unit="jug"))
        assert updated.unit == "jug"

    def test_update_unknown_product(self, catalog):
        with pytest.raises(ResourceNotFoundError):
            catalog.update(42, ProductUpdate(stock=1))

    def test_delete_keeps_history(self, catalog, sample_products, test_db):
        milk = sample_products[0]
        catalog.update(milk.id, ProductUpdate(stock=9))

        catalog.delete(milk.id)

        entry = test_db.query(InventoryHistory).one()
        assert (entry.product_id, entry.old_qty, entry.new_qty) == (milk.id, 5, 9)
        with pytest.raises(ResourceNotFoundError):
            catalog.get(milk.id)

    def test_search_is_case_insensitive_substring(self, catalog, sample_products):
        names = [p.name for p in catalog.search("MILK")]
        assert names == ["Whole Milk 1L"]

    def test_search_treats_wildcards_literally(self, catalog, sample_products):
        assert catalog.search("%") == []
        assert catalog.search("_") == []
