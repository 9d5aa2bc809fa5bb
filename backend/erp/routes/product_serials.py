# Overview: Flask API routes for product serials (listing and intake).

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import serial_service
from ..services.transactions import atomic
from ..validation import DomainError
from . import error_response, int_arg, json_body, server_error


product_serials_bp = Blueprint("product_serials", __name__, url_prefix="/api/product-serials")


@product_serials_bp.get("")
@require_auth
@require_permission("inventory.view")
def list_serials_route():
    """?productId, ?status; newest first, at most 500 rows."""
    try:
        serials = serial_service.list_serials(
            company_id=g.company_id,
            product_id=int_arg("productId"),
            status=request.args.get("status"),
        )
        return jsonify([s.to_dict() for s in serials])
    except Exception:
        return server_error("fetch product serials")


@product_serials_bp.post("/intake")
@require_auth
@require_permission("inventory.adjust")
def intake_serials_route():
    """
    Request body: {ProductID, WarehouseID, serials: ["SN1", {"SerialNumber": "SN2", "Status"?: "InStock"}]}

    Returns:
        {created, duplicates, createdItems}
    """
    try:
        data = json_body()
        with atomic():
            result = serial_service.intake_serials(
                company_id=g.company_id,
                employee_id=g.employee_id,
                product_id=data.get("product_id"),
                warehouse_id=data.get("warehouse_id"),
                serials=data.get("serials"),
            )
        return jsonify(result)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("intake serials")
