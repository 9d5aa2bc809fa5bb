# Overview: Pytest coverage for the inventory ledger and the inventory API.

"""
Inventory Ledger Tests

INVARIANT under test: for every (product, warehouse, lot-or-null) key the
level row's stock_quantity equals the sum of its logged quantity changes,
whatever mix of movements produced it.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import stock_of
from erp.models import InventoryTransaction, ProductInventoryLevel, ProductLot, ProductLotInventory
from erp.services import inventory_service
from erp.validation import NotFoundError, ValidationError


def _move(company, product, warehouse, delta, lot_id=None, tx_type=inventory_service.TX_MANUAL_ADJUSTMENT):
    return inventory_service.apply_movement(
        company_id=company.id,
        product_id=product.id,
        warehouse_id=warehouse.id,
        lot_id=lot_id,
        quantity_delta=delta,
        transaction_type=tx_type,
        reference_document_type="Test",
        reference_document_id=None,
    )


class TestApplyMovement:
    """apply_movement is the only writer of stock_quantity."""

    def test_creates_level_seeded_with_delta(self, db_session, company_a, warehouse_a, product_a):
        level = _move(company_a, product_a, warehouse_a, 7)
        db_session.commit()

        assert level.stock_quantity == 7
        txs = db_session.query(InventoryTransaction).filter_by(product_id=product_a.id).all()
        assert len(txs) == 1
        assert txs[0].quantity_change == 7
        assert txs[0].transaction_type == "ManualAdjustment"

    def test_conservation_over_mixed_movements(self, db_session, company_a, warehouse_a, product_a):
        for delta in (10, -3, 4.5, -20, 1):
            _move(company_a, product_a, warehouse_a, delta)
        db_session.commit()

        assert stock_of(product_a.id, warehouse_a.id) == pytest.approx(-7.5)
        assert inventory_service.logged_quantity(product_a.id, warehouse_a.id) == pytest.approx(-7.5)

    def test_negative_stock_allowed(self, db_session, company_a, warehouse_a, product_a):
        level = _move(company_a, product_a, warehouse_a, -2)

        assert level.stock_quantity == -2

    def test_lot_and_null_lot_are_separate_keys(self, db_session, company_a, warehouse_a, lot_product_a):
        lot = ProductLot(company_id=company_a.id, product_id=lot_product_a.id, lot_number="L1")
        db_session.add(lot)
        db_session.commit()

        _move(company_a, lot_product_a, warehouse_a, 5, lot_id=lot.id)
        _move(company_a, lot_product_a, warehouse_a, 2)
        db_session.commit()

        assert stock_of(lot_product_a.id, warehouse_a.id, lot.id) == 5
        assert stock_of(lot_product_a.id, warehouse_a.id) == 2
        assert db_session.query(ProductInventoryLevel).filter_by(product_id=lot_product_a.id).count() == 2

    def test_single_level_row_per_key_without_lot(self, db_session, company_a, warehouse_a, product_a):
        _move(company_a, product_a, warehouse_a, 4)
        db_session.commit()

        db_session.add(ProductInventoryLevel(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, stock_quantity=1,
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

        assert stock_of(product_a.id, warehouse_a.id) == 4

    def test_level_lookup_is_company_scoped(self, db_session, company_a, company_b, warehouse_a, product_a):
        _move(company_a, product_a, warehouse_a, 3)
        db_session.commit()

        assert inventory_service.lock_level(company_b.id, product_a.id, warehouse_a.id, None) is None
        assert inventory_service.lock_level(company_a.id, product_a.id, warehouse_a.id, None).stock_quantity == 3

    def test_lot_inventory_follows_ledger(self, db_session, company_a, warehouse_a, lot_product_a):
        lot = ProductLot(company_id=company_a.id, product_id=lot_product_a.id, lot_number="L2")
        db_session.add(lot)
        db_session.commit()

        _move(company_a, lot_product_a, warehouse_a, 8, lot_id=lot.id)
        _move(company_a, lot_product_a, warehouse_a, -3, lot_id=lot.id)
        db_session.commit()

        row = db_session.query(ProductLotInventory).filter_by(product_lot_id=lot.id).one()
        assert row.quantity == 5


class TestSetLevel:
    """Absolute targets still log a true delta."""

    def test_logs_difference(self, db_session, company_a, warehouse_a, product_a):
        _move(company_a, product_a, warehouse_a, 4)

        level, delta = inventory_service.set_level(
            company_id=company_a.id,
            product_id=product_a.id,
            warehouse_id=warehouse_a.id,
            lot_id=None,
            target_quantity=10,
            reference_document_type="Test",
        )
        db_session.commit()

        assert delta == 6
        assert level.stock_quantity == 10
        assert inventory_service.logged_quantity(product_a.id, warehouse_a.id) == 10

    def test_no_movement_when_already_at_target(self, db_session, company_a, warehouse_a, product_a):
        _move(company_a, product_a, warehouse_a, 3)

        _, delta = inventory_service.set_level(
            company_id=company_a.id,
            product_id=product_a.id,
            warehouse_id=warehouse_a.id,
            lot_id=None,
            target_quantity=3,
            reference_document_type="Test",
        )

        assert delta == 0
        assert db_session.query(InventoryTransaction).count() == 1


class TestBulkSave:
    """set_levels skips foreign entries instead of failing the batch."""

    def test_applies_owned_and_skips_foreign(
        self, db_session, company_a, warehouse_a, product_a, product_a2, product_b, warehouse_b
    ):
        updated = inventory_service.set_levels(
            company_id=company_a.id,
            employee_id=None,
            entries=[
                {"product_id": product_a.id, "warehouse_id": warehouse_a.id, "stock_quantity": 12,
                 "min_stock_level": 2, "max_stock_level": 50},
                {"product_id": product_a2.id, "warehouse_id": warehouse_a.id, "stock_quantity": 0,
                 "min_stock_level": 1},
                {"product_id": product_b.id, "warehouse_id": warehouse_b.id, "stock_quantity": 99},
                {"product_id": product_a.id, "warehouse_id": warehouse_b.id, "stock_quantity": 99},
            ],
        )
        db_session.commit()

        assert updated == 2
        assert stock_of(product_a.id, warehouse_a.id) == 12
        assert stock_of(product_b.id, warehouse_b.id) == 0
        level_a2 = inventory_service.lock_level(company_a.id, product_a2.id, warehouse_a.id, None)
        assert level_a2.stock_quantity == 0
        assert level_a2.min_stock_level == 1
        assert inventory_service.logged_quantity(product_a2.id, warehouse_a.id) == 0

    def test_empty_entries_rejected(self, db_session, company_a):
        with pytest.raises(ValidationError):
            inventory_service.set_levels(company_id=company_a.id, employee_id=None, entries=[])


class TestAdjust:
    def test_zero_change_rejected(self, db_session, company_a, warehouse_a, product_a):
        with pytest.raises(ValidationError):
            inventory_service.adjust(
                company_id=company_a.id, employee_id=None,
                product_id=product_a.id, warehouse_id=warehouse_a.id, quantity_change=0,
            )

    def test_foreign_product_not_found(self, db_session, company_a, warehouse_a, product_b):
        with pytest.raises(NotFoundError):
            inventory_service.adjust(
                company_id=company_a.id, employee_id=None,
                product_id=product_b.id, warehouse_id=warehouse_a.id, quantity_change=5,
            )


class TestInventoryApi:
    """/api/inventory"""

    def test_adjust_then_levels_and_transactions(self, client, headers_a, warehouse_a, product_a):
        resp = client.post(
            "/api/inventory/adjust",
            json={"ProductID": product_a.id, "WarehouseID": warehouse_a.id, "QuantityChange": 15, "Reason": "count"},
            headers=headers_a,
        )
        assert resp.status_code == 201
        assert resp.json["StockQuantity"] == 15

        levels = client.get(f"/api/inventory/levels?productId={product_a.id}", headers=headers_a)
        assert levels.status_code == 200
        assert [lvl["StockQuantity"] for lvl in levels.json] == [15]

        txs = client.get(f"/api/inventory/transactions?productId={product_a.id}", headers=headers_a)
        assert txs.json[0]["QuantityChange"] == 15
        assert txs.json[0]["Notes"] == "count"

    def test_bulk_save(self, client, headers_a, warehouse_a, product_a):
        resp = client.post(
            "/api/inventory/levels/bulk-save",
            json={"entries": [{"ProductID": product_a.id, "WarehouseID": warehouse_a.id, "StockQuantity": 30}]},
            headers=headers_a,
        )

        assert resp.status_code == 200
        assert resp.json == {"updated": 1}
        assert stock_of(product_a.id, warehouse_a.id) == 30

    def test_cashier_cannot_adjust(self, client, cashier_headers_a, warehouse_a, product_a):
        resp = client.post(
            "/api/inventory/adjust",
            json={"ProductID": product_a.id, "WarehouseID": warehouse_a.id, "QuantityChange": 1},
            headers=cashier_headers_a,
        )

        assert resp.status_code == 403
        assert resp.json["required_permission"] == "inventory.adjust"
