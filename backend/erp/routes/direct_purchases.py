# Overview: Flask API routes for direct purchases and their later receipt into stock.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import purchase_service
from ..services.transactions import atomic
from ..validation import DomainError
from . import datetime_field, error_response, json_body, server_error


direct_purchases_bp = Blueprint("direct_purchases", __name__, url_prefix="/api/direct-purchases")


def _purchase_body(purchase, items=None) -> dict:
    return {
        "header": purchase.to_dict(),
        "items": [item.to_dict() for item in (items if items is not None else purchase.items)],
    }


@direct_purchases_bp.get("")
@require_auth
@require_permission("purchaseOrders.manage")
def list_direct_purchases_route():
    try:
        purchases = purchase_service.list_direct_purchases(g.company_id, status=request.args.get("status"))
        return jsonify([p.to_dict() for p in purchases])
    except Exception:
        return server_error("list direct purchases")


@direct_purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_permission("purchaseOrders.manage")
def get_direct_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_direct_purchase(g.company_id, purchase_id)
        return jsonify(_purchase_body(purchase))
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch direct purchase")


@direct_purchases_bp.post("")
@require_auth
@require_permission("purchaseOrders.manage")
def create_direct_purchase_route():
    """
    Record a purchase without a purchase order. No stock moves yet.

    Request body: {SupplierID, ReceiptNumber, Items[{ProductID, Quantity, UnitPrice, TaxAmount?}], PurchaseDate?, WarehouseID?, Notes?}

    Returns:
        201 {header, items}; 409 on a duplicate receipt number
    """
    try:
        data = json_body()
        with atomic():
            purchase, rows = purchase_service.create_direct_purchase(
                company_id=g.company_id,
                employee_id=g.employee_id,
                supplier_id=data.get("supplier_id"),
                receipt_number=data.get("receipt_number"),
                items=data.get("items"),
                purchase_date=datetime_field(data, "purchase_date", "PurchaseDate"),
                notes=data.get("notes"),
                warehouse_id=data.get("warehouse_id"),
            )
            body = _purchase_body(purchase, rows)
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create direct purchase")


@direct_purchases_bp.post("/<int:purchase_id>/receive")
@require_auth
@require_permission("purchaseOrders.manage")
def receive_direct_purchase_route(purchase_id: int):
    """
    Move a direct purchase into stock through a goods receipt.

    Request body: {WarehouseID?, Items?[{DirectPurchaseItemID, QuantityReceived}], Notes?}
    Without Items every outstanding quantity is received.

    Returns:
        201 {header, goodsReceipt: {header, items}}
    """
    try:
        data = json_body()
        with atomic():
            purchase, receipt, rows = purchase_service.receive_direct_purchase(
                company_id=g.company_id,
                employee_id=g.employee_id,
                direct_purchase_id=purchase_id,
                warehouse_id=data.get("warehouse_id"),
                items=data.get("items"),
                notes=data.get("notes"),
            )
            body = {
                "header": purchase.to_dict(),
                "goodsReceipt": {
                    "header": receipt.to_dict(),
                    "items": [row.to_dict() for row in rows],
                },
            }
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("receive direct purchase")


@direct_purchases_bp.put("/<int:purchase_id>")
@require_auth
@require_permission("purchaseOrders.manage")
def update_direct_purchase_route(purchase_id: int):
    """Body: {Status?: Pending|Cancelled, Notes?}"""
    try:
        data = json_body()
        with atomic():
            purchase = purchase_service.update_direct_purchase(
                company_id=g.company_id,
                direct_purchase_id=purchase_id,
                fields=data,
            )
            body = purchase.to_dict()
        return jsonify(body)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("update direct purchase")


@direct_purchases_bp.delete("/<int:purchase_id>")
@require_auth
@require_permission("purchaseOrders.manage")
def delete_direct_purchase_route(purchase_id: int):
    try:
        with atomic():
            purchase_service.delete_direct_purchase(company_id=g.company_id, direct_purchase_id=purchase_id)
        return jsonify({"message": "Direct purchase deleted"})
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("delete direct purchase")
