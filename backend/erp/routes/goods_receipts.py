# Overview: Flask API routes for goods receipts (stock in from suppliers).

from flask import Blueprint, g, jsonify

from ..decorators import require_auth, require_permission
from ..services import receive_service
from ..services.transactions import atomic
from ..validation import DomainError
from . import datetime_field, error_response, int_arg, json_body, server_error


goods_receipts_bp = Blueprint("goods_receipts", __name__, url_prefix="/api/goods-receipts")


def _receipt_body(receipt, items=None) -> dict:
    return {
        "header": receipt.to_dict(),
        "items": [item.to_dict() for item in (items if items is not None else receipt.items)],
    }


@goods_receipts_bp.get("")
@require_auth
@require_permission("purchaseOrders.manage")
def list_goods_receipts_route():
    try:
        receipts = receive_service.list_goods_receipts(
            g.company_id, purchase_order_id=int_arg("purchaseOrderId")
        )
        return jsonify([r.to_dict() for r in receipts])
    except Exception:
        return server_error("list goods receipts")


@goods_receipts_bp.get("/<int:receipt_id>")
@require_auth
@require_permission("purchaseOrders.manage")
def get_goods_receipt_route(receipt_id: int):
    try:
        receipt = receive_service.get_goods_receipt(g.company_id, receipt_id)
        return jsonify(_receipt_body(receipt))
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch goods receipt")


@goods_receipts_bp.post("")
@require_auth
@require_permission("purchaseOrders.manage")
def create_goods_receipt_route():
    """
    Receive stock.

    Request body:
    {
        "SupplierID": 1,             // required
        "WarehouseID": 1,            // required
        "ReceiptNumber": "GR-001",   // required, unique per company
        "PurchaseOrderID": 1,        // optional
        "Items": [{"ProductID", "QuantityReceived", "PurchaseOrderItemID"?, "UnitPrice"?, "ProductLotID"?}]
    }

    Returns:
        201 {header, items}; 409 on a duplicate receipt number
    """
    try:
        data = json_body()
        with atomic():
            receipt, rows = receive_service.create_goods_receipt(
                company_id=g.company_id,
                employee_id=g.employee_id,
                supplier_id=data.get("supplier_id"),
                warehouse_id=data.get("warehouse_id"),
                receipt_number=data.get("receipt_number"),
                items=data.get("items"),
                purchase_order_id=data.get("purchase_order_id"),
                receipt_date=datetime_field(data, "receipt_date", "ReceiptDate"),
                supplier_guia_despacho_number=data.get("supplier_guia_despacho_number"),
                notes=data.get("notes"),
            )
            body = _receipt_body(receipt, rows)
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create goods receipt")
