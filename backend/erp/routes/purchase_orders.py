# Overview: Flask API routes for purchase orders.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import purchase_order_service
from ..services.transactions import atomic
from ..validation import DomainError
from . import datetime_field, error_response, json_body, server_error


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
@require_permission("purchaseOrders.manage")
def list_purchase_orders_route():
    try:
        orders = purchase_order_service.list_purchase_orders(g.company_id, status=request.args.get("status"))
        return jsonify([o.to_dict() for o in orders])
    except Exception:
        return server_error("list purchase orders")


@purchase_orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("purchaseOrders.manage")
def get_purchase_order_route(order_id: int):
    try:
        order = purchase_order_service.get_purchase_order(g.company_id, order_id)
        return jsonify({"header": order.to_dict(), "items": [i.to_dict() for i in order.items]})
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch purchase order")


@purchase_orders_bp.post("")
@require_auth
@require_permission("purchaseOrders.manage")
def create_purchase_order_route():
    """
    Request body:
    {
        "SupplierID": 1,                 // required
        "PurchaseOrderNumber": "PO-1",   // required, unique per company
        "Status": "Draft",               // Draft (default) or Submitted
        "ExpectedDeliveryDate": "...",   // optional
        "Items": [{"ProductID", "Quantity", "UnitPrice", "TaxAmount"?}]
    }
    """
    try:
        data = json_body()
        with atomic():
            order = purchase_order_service.create_purchase_order(
                company_id=g.company_id,
                employee_id=g.employee_id,
                supplier_id=data.get("supplier_id"),
                purchase_order_number=data.get("purchase_order_number"),
                items=data.get("items"),
                status=data.get("status"),
                order_date=datetime_field(data, "order_date", "OrderDate"),
                expected_delivery_date=datetime_field(data, "expected_delivery_date", "ExpectedDeliveryDate"),
                notes=data.get("notes"),
                shipping_address=data.get("shipping_address"),
            )
            body = {"header": order.to_dict(), "items": [i.to_dict() for i in order.items]}
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create purchase order")


@purchase_orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("purchaseOrders.manage")
def cancel_purchase_order_route(order_id: int):
    """Cancels (Status=Cancelled); refused once anything was received."""
    try:
        with atomic():
            order = purchase_order_service.cancel_purchase_order(company_id=g.company_id, purchase_order_id=order_id)
            body = order.to_dict()
        return jsonify(body)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("cancel purchase order")
