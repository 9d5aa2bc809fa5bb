# Overview: Flask API routes for inventory levels, manual adjustments and the movement log.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..payloads import query_flag
from ..services import inventory_service
from ..services.transactions import atomic
from ..validation import DomainError, ValidationError, coerce_line_numbers
from . import error_response, int_arg, json_body, server_error


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/levels")
@require_auth
@require_permission("inventory.view")
def list_levels_route():
    """
    On-hand stock.

    Query parameters:
    - productId, warehouseId: optional filters
    - includeZero: include rows whose stock is 0
    """
    try:
        levels = inventory_service.list_levels(
            company_id=g.company_id,
            product_id=int_arg("productId"),
            warehouse_id=int_arg("warehouseId"),
            include_zero=query_flag(request.args.get("includeZero")),
        )
        return jsonify([level.to_dict() for level in levels])
    except Exception:
        return server_error("fetch inventory levels")


@inventory_bp.post("/levels/bulk-save")
@require_auth
@require_permission("inventory.adjust")
def bulk_save_levels_route():
    """
    Set absolute stock targets.

    Request body: {"entries": [{ProductID, WarehouseID, StockQuantity, MinStockLevel?, MaxStockLevel?, ProductLotID?}]}
    Entries for another company's product or warehouse are skipped.
    """
    try:
        data = json_body()
        entries = data.get("entries")
        if entries is not None and not isinstance(entries, list):
            raise ValidationError("entries must be a list")
        with atomic():
            updated = inventory_service.set_levels(
                company_id=g.company_id,
                entries=entries or [],
                employee_id=g.employee_id,
            )
        return jsonify({"updated": updated})
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("save inventory levels")


@inventory_bp.post("/adjust")
@require_auth
@require_permission("inventory.adjust")
def adjust_route():
    """
    Manual stock correction.

    Request body: {ProductID, WarehouseID, QuantityChange, Reason?, ProductLotID?}

    Returns:
        201 updated level row
    """
    try:
        data = json_body()
        product_id = data.get("product_id")
        warehouse_id = data.get("warehouse_id")
        change = data.get("quantity_change")
        if not product_id or not warehouse_id or change in (None, ""):
            raise ValidationError("ProductID, WarehouseID and QuantityChange are required")
        change = coerce_line_numbers({"quantity": change})["quantity"]
        with atomic():
            level = inventory_service.adjust(
                company_id=g.company_id,
                employee_id=g.employee_id,
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity_change=change,
                reason=data.get("reason"),
                lot_id=data.get("product_lot_id"),
            )
            body = level.to_dict()
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("adjust inventory")


@inventory_bp.get("/transactions")
@require_auth
@require_permission("inventory.view")
def list_transactions_route():
    """Movement log, newest first. ?productId, ?warehouseId, ?limit (1..500, default 100)."""
    try:
        rows = inventory_service.list_transactions(
            company_id=g.company_id,
            product_id=int_arg("productId"),
            warehouse_id=int_arg("warehouseId"),
            limit=request.args.get("limit", 100, type=int),
        )
        return jsonify([row.to_dict() for row in rows])
    except Exception:
        return server_error("fetch inventory transactions")
