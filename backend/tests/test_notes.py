# Overview: Pytest coverage for credit notes (capped returns) and debit notes.

"""
Credit / Debit Note Tests

Credit notes bring stock back and can never return more of a product than
the original sale sold, counting every earlier credit note against it.
Debit notes move stock out with no cap.
"""

from conftest import stock_of
from erp.extensions import db
from erp.models import InventoryTransaction, ProductSerial, Sale


def _sell(client, headers, customer, items, document_type="FACTURA"):
    resp = client.post(
        "/api/sales",
        json={"CustomerID": customer.id, "DocumentType": document_type, "Items": items},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.json["SaleID"]


def _credit(client, headers, sale_id, warehouse, items, **extra):
    body = {"OriginalSaleID": sale_id, "WarehouseID": warehouse.id, "Items": items}
    body.update(extra)
    return client.post("/api/sales/credit-note", json=body, headers=headers)


class TestCreditNote:
    """POST /api/sales/credit-note"""

    def test_string_ids_are_accepted(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 2, "UnitPrice": 10}])

        resp = client.post(
            "/api/sales/credit-note",
            json={"OriginalSaleID": str(sale_id), "WarehouseID": str(warehouse_a.id),
                  "Items": [{"ProductID": str(product_a.id), "Quantity": 1}]},
            headers=headers_a,
        )

        assert resp.status_code == 201
        assert resp.json["OriginalSaleID"] == sale_id
        assert stock_of(product_a.id, warehouse_a.id) == -1

    def test_non_integer_id_rejected(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 2, "UnitPrice": 10}])

        resp = _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": "abc", "Quantity": 1}])

        assert resp.status_code == 400
        assert resp.json["error"] == "ProductID must be an integer"

    def test_returns_stock_and_links_original(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 5, "UnitPrice": 30}])

        resp = _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 3}])

        assert resp.status_code == 201
        assert resp.json["OriginalSaleID"] == sale_id
        # Unit price defaults to the original sale's price
        assert resp.json["FinalAmount"] == 90
        assert resp.json["DocumentNumber"].startswith("NOTA_CREDITO-")
        assert stock_of(product_a.id, warehouse_a.id) == -2

        tx = db.session.query(InventoryTransaction).filter_by(
            reference_document_id=resp.json["CreditNoteID"], transaction_type="CreditNote"
        ).one()
        assert tx.quantity_change == 3
        assert tx.reference_document_type == "NOTA_CREDITO"

    def test_over_return_rejected_across_notes(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 5, "UnitPrice": 10}])

        first = _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 3}])
        second = _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 3}])

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json["details"]["remaining"] == 2
        assert db.session.query(Sale).filter_by(document_type="NOTA_CREDITO").count() == 1
        assert stock_of(product_a.id, warehouse_a.id) == -2

    def test_split_lines_in_one_request_are_summed(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 4, "UnitPrice": 10}])

        resp = _credit(client, headers_a, sale_id, warehouse_a, [
            {"ProductID": product_a.id, "Quantity": 3},
            {"ProductID": product_a.id, "Quantity": 2},
        ])

        assert resp.status_code == 400

    def test_full_return_allowed_exactly(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 4, "UnitPrice": 10}])

        assert _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 1}]).status_code == 201
        assert _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 3}]).status_code == 201
        assert stock_of(product_a.id, warehouse_a.id) == 0

    def test_product_not_on_original(self, client, headers_a, customer_a, product_a, product_a2, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 10}])

        resp = _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a2.id, "Quantity": 1}])

        assert resp.status_code == 400
        assert "was not sold" in resp.json["error"]

    def test_only_against_factura_or_boleta(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(
            client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 10}],
            document_type="COTIZACION",
        )

        resp = _credit(client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 1}])

        assert resp.status_code == 400

    def test_missing_original(self, client, headers_a, warehouse_a, product_a):
        resp = _credit(client, headers_a, 999999, warehouse_a, [{"ProductID": product_a.id, "Quantity": 1}])

        assert resp.status_code == 400
        assert resp.json["error"] == "Original sale not found"

    def test_warehouse_required(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 10}])

        resp = client.post(
            "/api/sales/credit-note",
            json={"OriginalSaleID": sale_id, "Items": [{"ProductID": product_a.id, "Quantity": 1}]},
            headers=headers_a,
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "WarehouseID is required"

    def test_serial_returns_to_stock(
        self, client, headers_a, db_session, company_a, customer_a, serial_product_a, warehouse_a
    ):
        serial = ProductSerial(
            company_id=company_a.id, product_id=serial_product_a.id, warehouse_id=warehouse_a.id,
            serial_number="SN-RET", status="InStock",
        )
        db_session.add(serial)
        db_session.commit()
        line = {"ProductID": serial_product_a.id, "Quantity": 1, "UnitPrice": 500, "ProductSerialID": serial.id}
        sale_id = _sell(client, headers_a, customer_a, [line])

        resp = _credit(client, headers_a, sale_id, warehouse_a, [line])

        assert resp.status_code == 201
        assert db_session.get(ProductSerial, serial.id).status == "InStock"

    def test_read_endpoints(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 2, "UnitPrice": 10}])
        note_id = _credit(
            client, headers_a, sale_id, warehouse_a, [{"ProductID": product_a.id, "Quantity": 1}]
        ).json["CreditNoteID"]

        detail = client.get(f"/api/sales/credit-note/{note_id}", headers=headers_a)
        listed = client.get(f"/api/sales/{sale_id}/credit-notes", headers=headers_a)
        wrong_kind = client.get(f"/api/sales/debit-note/{note_id}", headers=headers_a)

        assert detail.status_code == 200
        assert detail.json["header"]["OriginalSaleID"] == sale_id
        assert [n["SaleID"] for n in listed.json] == [note_id]
        assert wrong_kind.status_code == 404


class TestDebitNote:
    """POST /api/sales/debit-note"""

    def test_moves_stock_out_without_cap(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 10}])

        resp = client.post(
            "/api/sales/debit-note",
            json={"OriginalSaleID": sale_id, "WarehouseID": warehouse_a.id,
                  "Items": [{"ProductID": product_a.id, "Quantity": 5, "UnitPrice": 12}]},
            headers=headers_a,
        )

        assert resp.status_code == 201
        assert resp.json["FinalAmount"] == 60
        assert stock_of(product_a.id, warehouse_a.id) == -6
        tx = db.session.query(InventoryTransaction).filter_by(
            reference_document_id=resp.json["DebitNoteID"], transaction_type="DebitNote"
        ).one()
        assert tx.quantity_change == -5

    def test_unit_price_required(self, client, headers_a, customer_a, product_a, warehouse_a):
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 10}])

        resp = client.post(
            "/api/sales/debit-note",
            json={"OriginalSaleID": sale_id, "WarehouseID": warehouse_a.id,
                  "Items": [{"ProductID": product_a.id, "Quantity": 1}]},
            headers=headers_a,
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "Each item must include ProductID, Quantity and UnitPrice."

    def test_uses_configured_sequence(
        self, client, headers_a, db_session, company_a, customer_a, product_a, warehouse_a
    ):
        from erp.models import DocumentSequence

        db_session.add(DocumentSequence(company_id=company_a.id, document_type="NOTA_DEBITO", prefix="ND-"))
        db_session.commit()
        sale_id = _sell(client, headers_a, customer_a, [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 10}])

        resp = client.post(
            "/api/sales/debit-note",
            json={"OriginalSaleID": sale_id, "WarehouseID": warehouse_a.id,
                  "Items": [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 0}]},
            headers=headers_a,
        )

        assert resp.json["DocumentNumber"] == "ND-1"
