# Overview: Pytest coverage for product lots (FEFO, absolute quantities) and serial intake.

from conftest import stock_of
from erp.extensions import db
from erp.models import InventoryTransaction, ProductLotInventory, ProductSerial


def _upsert(client, headers, product, warehouse, lot_number, quantity, expiration=None):
    body = {"ProductID": product.id, "WarehouseID": warehouse.id, "LotNumber": lot_number, "Quantity": quantity}
    if expiration is not None:
        body["ExpirationDate"] = expiration
    return client.post("/api/product-lots", json=body, headers=headers)


class TestProductLots:
    """/api/product-lots"""

    def test_create_then_update(self, client, headers_a, lot_product_a, warehouse_a):
        created = _upsert(client, headers_a, lot_product_a, warehouse_a, "L-100", 12, "2027-01-31")
        updated = _upsert(client, headers_a, lot_product_a, warehouse_a, "L-100", 5)

        assert created.status_code == 201
        assert created.json["Quantity"] == 12
        assert created.json["ExpirationDate"] == "2027-01-31"
        assert updated.status_code == 200
        assert updated.json["ProductLotID"] == created.json["ProductLotID"]
        assert updated.json["Quantity"] == 5

        lot_id = created.json["ProductLotID"]
        assert stock_of(lot_product_a.id, warehouse_a.id, lot_id) == 5
        changes = [
            tx.quantity_change
            for tx in db.session.query(InventoryTransaction)
            .filter_by(product_lot_id=lot_id)
            .order_by(InventoryTransaction.id)
        ]
        assert changes == [12, -7]

    def test_fefo_prefers_earliest_expiry(self, client, headers_a, lot_product_a, warehouse_a):
        _upsert(client, headers_a, lot_product_a, warehouse_a, "NO-EXP", 4)
        _upsert(client, headers_a, lot_product_a, warehouse_a, "LATE", 4, "2027-06-30")
        early = _upsert(client, headers_a, lot_product_a, warehouse_a, "EARLY", 4, "2026-12-01").json

        resp = client.get(
            f"/api/product-lots/fefo?productId={lot_product_a.id}&warehouseId={warehouse_a.id}", headers=headers_a
        )

        assert resp.status_code == 200
        assert resp.json["ProductLotID"] == early["ProductLotID"]

        listed = client.get(
            f"/api/product-lots?productId={lot_product_a.id}&warehouseId={warehouse_a.id}", headers=headers_a
        )
        assert [lot["LotNumber"] for lot in listed.json] == ["EARLY", "LATE", "NO-EXP"]

    def test_fefo_skips_empty_lots(self, client, headers_a, lot_product_a, warehouse_a):
        _upsert(client, headers_a, lot_product_a, warehouse_a, "EMPTY", 0, "2026-11-01")
        later = _upsert(client, headers_a, lot_product_a, warehouse_a, "FULL", 3, "2027-11-01").json

        resp = client.get(
            f"/api/product-lots/fefo?productId={lot_product_a.id}&warehouseId={warehouse_a.id}", headers=headers_a
        )

        assert resp.json["ProductLotID"] == later["ProductLotID"]

    def test_fefo_not_found(self, client, headers_a, lot_product_a, warehouse_a):
        resp = client.get(
            f"/api/product-lots/fefo?productId={lot_product_a.id}&warehouseId={warehouse_a.id}", headers=headers_a
        )

        assert resp.status_code == 404
        assert resp.json["error"] == "No available lot for this product"

    def test_fefo_requires_params(self, client, headers_a):
        assert client.get("/api/product-lots/fefo", headers=headers_a).status_code == 400

    def test_zero_lots_hidden_unless_requested(self, client, headers_a, lot_product_a, warehouse_a):
        _upsert(client, headers_a, lot_product_a, warehouse_a, "ZERO", 0)

        hidden = client.get(f"/api/product-lots?productId={lot_product_a.id}", headers=headers_a)
        shown = client.get(f"/api/product-lots?productId={lot_product_a.id}&includeZero=true", headers=headers_a)

        assert hidden.json == []
        assert [lot["LotNumber"] for lot in shown.json] == ["ZERO"]

    def test_product_without_lots_rejected(self, client, headers_a, product_a, warehouse_a):
        resp = _upsert(client, headers_a, product_a, warehouse_a, "L-1", 1)

        assert resp.status_code == 400
        assert resp.json["error"] == "Product does not use lots"

    def test_update_quantity_in_other_warehouse(self, client, headers_a, lot_product_a, warehouse_a, warehouse_a2):
        lot_id = _upsert(client, headers_a, lot_product_a, warehouse_a, "L-200", 2).json["ProductLotID"]

        resp = client.put(
            f"/api/product-lots/{lot_id}",
            json={"LotNumber": "L-201", "WarehouseID": warehouse_a2.id, "Quantity": 9},
            headers=headers_a,
        )

        assert resp.status_code == 200
        assert resp.json["LotNumber"] == "L-201"
        assert resp.json["Quantity"] == 9
        rows = db.session.query(ProductLotInventory).filter_by(product_lot_id=lot_id).count()
        assert rows == 2


class TestSerialIntake:
    """/api/product-serials/intake"""

    def test_intake_with_duplicates(self, client, headers_a, serial_product_a, warehouse_a):
        first = client.post(
            "/api/product-serials/intake",
            json={"ProductID": serial_product_a.id, "WarehouseID": warehouse_a.id, "serials": ["SN-1", "SN-2", "sn-1", " "]},
            headers=headers_a,
        )
        second = client.post(
            "/api/product-serials/intake",
            json={"ProductID": serial_product_a.id, "WarehouseID": warehouse_a.id, "serials": ["sn-2", "SN-3"]},
            headers=headers_a,
        )

        assert first.status_code == 200
        assert first.json["created"] == 2
        assert first.json["duplicates"] == []
        assert second.json["created"] == 1
        assert second.json["duplicates"] == ["sn-2"]
        assert stock_of(serial_product_a.id, warehouse_a.id) == 3

        txs = db.session.query(InventoryTransaction).filter_by(transaction_type="SerialIntake").all()
        assert sorted(tx.quantity_change for tx in txs) == [1, 1, 1]
        assert all(tx.product_serial_id is not None for tx in txs)

    def test_list_by_status(self, client, headers_a, serial_product_a, warehouse_a):
        client.post(
            "/api/product-serials/intake",
            json={"ProductID": serial_product_a.id, "WarehouseID": warehouse_a.id,
                  "serials": ["SN-A", {"SerialNumber": "SN-B", "Status": "Defective"}]},
            headers=headers_a,
        )

        resp = client.get(
            f"/api/product-serials?productId={serial_product_a.id}&status=InStock", headers=headers_a
        )

        assert [s["SerialNumber"] for s in resp.json] == ["SN-A"]
        assert db.session.query(ProductSerial).count() == 2

    def test_product_must_be_serial_tracked(self, client, headers_a, product_a, warehouse_a):
        resp = client.post(
            "/api/product-serials/intake",
            json={"ProductID": product_a.id, "WarehouseID": warehouse_a.id, "serials": ["X"]},
            headers=headers_a,
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "Product is not serial-tracked."

    def test_blank_serials_rejected(self, client, headers_a, serial_product_a, warehouse_a):
        resp = client.post(
            "/api/product-serials/intake",
            json={"ProductID": serial_product_a.id, "WarehouseID": warehouse_a.id, "serials": ["  ", ""]},
            headers=headers_a,
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "No valid serials provided."

    def test_missing_list(self, client, headers_a, serial_product_a, warehouse_a):
        resp = client.post(
            "/api/product-serials/intake",
            json={"ProductID": serial_product_a.id, "WarehouseID": warehouse_a.id},
            headers=headers_a,
        )

        assert resp.json["error"] == "Serial list is required."
