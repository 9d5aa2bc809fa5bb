# Overview: Flask API routes for product lots (FEFO listing, lot quantities).

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..payloads import query_flag
from ..services import lot_service
from ..services.transactions import atomic
from ..validation import DomainError, coerce_line_numbers
from . import date_field, error_response, int_arg, json_body, server_error


product_lots_bp = Blueprint("product_lots", __name__, url_prefix="/api/product-lots")


@product_lots_bp.get("")
@require_auth
@require_permission("inventory.view")
def list_lots_route():
    """?productId, ?warehouseId (per-warehouse quantity, summed otherwise), ?includeZero"""
    try:
        lots = lot_service.list_lots(
            company_id=g.company_id,
            product_id=int_arg("productId"),
            warehouse_id=int_arg("warehouseId"),
            include_zero=query_flag(request.args.get("includeZero")),
        )
        return jsonify(lots)
    except Exception:
        return server_error("fetch product lots")


@product_lots_bp.get("/fefo")
@require_auth
@require_permission("inventory.view")
def fefo_lot_route():
    """First lot with stock in the warehouse, earliest expiry first."""
    try:
        lot = lot_service.fefo_lot(
            company_id=g.company_id,
            product_id=int_arg("productId"),
            warehouse_id=int_arg("warehouseId"),
        )
        return jsonify(lot)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch FEFO lot")


@product_lots_bp.post("")
@require_auth
@require_permission("inventory.adjust")
def upsert_lot_route():
    """
    Create or update a lot and set its absolute quantity in a warehouse.

    Request body: {ProductID, WarehouseID, LotNumber, ExpirationDate?, Quantity?}

    Returns:
        201 when the lot was created, 200 when it already existed
    """
    try:
        data = json_body()
        quantity = coerce_line_numbers({"quantity": data.get("quantity")})["quantity"]
        with atomic():
            lot, created = lot_service.upsert_lot(
                company_id=g.company_id,
                employee_id=g.employee_id,
                product_id=data.get("product_id"),
                warehouse_id=data.get("warehouse_id"),
                lot_number=data.get("lot_number"),
                expiration_date=date_field(data, "expiration_date", "ExpirationDate"),
                quantity=quantity,
            )
        return jsonify(lot), 201 if created else 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("save product lot")


@product_lots_bp.put("/<int:lot_id>")
@require_auth
@require_permission("inventory.adjust")
def update_lot_route(lot_id: int):
    """Body: {LotNumber?, ExpirationDate?, WarehouseID? + Quantity?}"""
    try:
        data = json_body()
        fields = {}
        if "lot_number" in data:
            fields["lot_number"] = data["lot_number"]
        if "expiration_date" in data:
            fields["expiration_date"] = date_field(data, "expiration_date", "ExpirationDate")
        if data.get("warehouse_id"):
            fields["warehouse_id"] = data["warehouse_id"]
            fields["quantity"] = coerce_line_numbers({"quantity": data.get("quantity")})["quantity"]
        with atomic():
            lot = lot_service.update_lot(
                company_id=g.company_id,
                employee_id=g.employee_id,
                lot_id=lot_id,
                fields=fields,
            )
        return jsonify(lot)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("update product lot")
